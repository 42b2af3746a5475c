"""gherkin-steps: step definition indexing, validation and completion for Gherkin."""

__version__ = "0.1.0"
