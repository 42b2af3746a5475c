"""File-system helpers shared by the step index and the usage tracker.

Glob resolution, reading, comment stripping that keeps line numbers intact,
doc-comment harvesting and content ids.  Nothing here knows about steps.
"""

from __future__ import annotations

import glob
import hashlib
import logging
import os
import re
from pathlib import Path

from gherkin_steps.models import Position, Range

logger = logging.getLogger(__name__)

# Files whose line comments start with '#' rather than '//'
HASH_COMMENT_SUFFIXES = {".py", ".rb"}

_TAG_LINE = re.compile(r"@(\w+)\s*(.*)")


def split_lines(text: str) -> list[str]:
    """Split on LF or CRLF only, so indices match what editors report."""
    return re.split(r"\r?\n", text)


def content_id(text: str) -> str:
    """Stable content hash used for step ids."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def read_text(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


def resolve_glob(root: str | Path, pattern: str) -> list[str]:
    """Return the files matched by one glob, relative to ``root`` unless already under it."""
    root_str = os.path.abspath(str(root))
    if os.path.isabs(pattern) and os.path.abspath(pattern).startswith(root_str):
        full = pattern
    else:
        full = os.path.join(root_str, pattern.lstrip("/\\"))
    matches = glob.glob(full, recursive=True)
    return sorted(os.path.abspath(p) for p in matches if os.path.isfile(p))


def resolve_globs(root: str | Path, patterns: list[str]) -> list[str]:
    """Resolve several globs, keeping the first occurrence of every file."""
    seen: set[str] = set()
    files: list[str] = []
    for pattern in patterns:
        for path in resolve_glob(root, pattern):
            if path not in seen:
                seen.add(path)
                files.append(path)
    return files


def clear_comments(content: str, hash_comments: bool = False) -> str:
    """Blank out comments while keeping every line and column in place.

    Block comments and ``//`` line comments are replaced by spaces; with
    ``hash_comments`` a ``#`` starts a line comment too (except Ruby's ``#{``).
    Quotes are tracked per line so comment markers inside strings survive.
    """
    out: list[str] = []
    quote: str | None = None
    i = 0
    n = len(content)
    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""

        if quote is not None:
            out.append(ch)
            if ch == "\\" and nxt and nxt != "\n":
                out.append(nxt)
                i += 2
                continue
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = None
            i += 1
            continue

        if ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            stop = n if end == -1 else end + 2
            out.append(_blank(content[i:stop]))
            i = stop
            continue

        if (ch == "/" and nxt == "/") or (hash_comments and ch == "#" and nxt != "{"):
            end = content.find("\n", i)
            stop = n if end == -1 else end
            out.append(_blank(content[i:stop]))
            i = stop
            continue

        if ch in ("'", '"', "`"):
            quote = ch
        out.append(ch)
        i += 1

    return "".join(out)


def _blank(text: str) -> str:
    return "".join(c if c in "\r\n" else " " for c in text)


def collect_doc_comments(content: str, hash_comments: bool = False) -> dict[int, str]:
    """Map the index of the first code line after a comment block to the raw comment.

    Recognizes ``/* ... */`` blocks that start a line and, with
    ``hash_comments``, runs of ``#`` comment lines.
    """
    lines = split_lines(content)
    comments: dict[int, str] = {}
    current: list[str] = []
    in_block = False
    in_hash_run = False

    for i, line in enumerate(lines):
        stripped = line.strip()
        if in_block:
            current.append(line)
            if "*/" in stripped:
                in_block = False
                _attach(comments, lines, i, current)
                current = []
            continue

        if stripped.startswith("/*"):
            current = [line]
            if "*/" in stripped[2:]:
                _attach(comments, lines, i, current)
                current = []
            else:
                in_block = True
            continue

        if hash_comments and stripped.startswith("#") and not stripped.startswith("#!"):
            if not in_hash_run:
                current = []
                in_hash_run = True
            current.append(line)
            continue

        if in_hash_run:
            in_hash_run = False
            _attach(comments, lines, i - 1, current)
            current = []

    return comments


def _attach(comments: dict[int, str], lines: list[str], end: int, block: list[str]) -> None:
    target = end + 1
    while target < len(lines) and not lines[target].strip():
        target += 1
    if target < len(lines):
        comments[target] = "\n".join(block) + "\n"


def parse_doc_comment(raw: str) -> str:
    """Extract human documentation from a JSDoc/JavaDoc block or ``#`` comment run.

    The free-text description wins; otherwise an ``@description``/``@desc``
    tag; otherwise the raw comment.
    """
    description: list[str] = []
    tags: dict[str, str] = {}
    in_tags = False
    for line in raw.strip().splitlines():
        text = line.strip()
        text = re.sub(r"^/\*+", "", text)
        text = re.sub(r"\*+/$", "", text)
        text = re.sub(r"^\*\s?", "", text)
        text = re.sub(r"^#+\s?", "", text)
        text = text.rstrip()
        tag = _TAG_LINE.match(text)
        if tag:
            in_tags = True
            tags.setdefault(tag.group(1).lower(), tag.group(2).strip())
            continue
        if not in_tags:
            description.append(text)

    text = "\n".join(description).strip()
    return text or tags.get("description") or tags.get("desc") or raw.strip()


def find_text_range(path: str | Path, needle: str) -> Range | None:
    """Locate the first occurrence of ``needle`` in a file as a single-line range."""
    try:
        lines = split_lines(read_text(path))
    except OSError:
        return None
    for i, line in enumerate(lines):
        col = line.find(needle)
        if col != -1:
            return Range(Position(i, col), Position(i, col + len(needle)))
    return None
