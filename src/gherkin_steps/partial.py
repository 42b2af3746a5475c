"""Relaxed patterns for step text that is still being typed.

A partial pattern accepts any word-aligned prefix of what the full pattern
accepts, plus any literal prefix of the final word.  For ``I do something``::

    ^(?:I|$)(?: |$)(?:do|$)(?: |$)(?:|s|so|som|...|something)

It is a superset matcher used only to pick completion candidates.
"""

from __future__ import annotations

import re

REGEX_SYNTAX = frozenset("\\^$.|?*+()[]{}")


def escape_literal(text: str) -> str:
    """re.escape without escaping spaces, so escaped text still splits on them."""
    return re.escape(text).replace("\\ ", " ")


def strip_anchors(text: str) -> str:
    if text.startswith("^"):
        text = text[1:]
    if text.endswith("$") and not text.endswith("\\$"):
        text = text[:-1]
    return text


def split_tokens(text: str) -> list[str]:
    """Split pattern text on spaces, keeping groups, braces and classes whole.

    >>> split_tokens('I do (a| ( b)) and "(.*)"')
    ['I', 'do', '(a| ( b))', 'and', '"(.*)"']
    """
    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    braces = 0
    in_class = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            current.append(text[i:i + 2])
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
            current.append(ch)
        elif ch == "[":
            in_class = True
            current.append(ch)
            # a ']' right after '[' or '[^' is a literal member
            if text.startswith("^", i + 1):
                current.append("^")
                i += 1
            if text.startswith("]", i + 1):
                current.append("]")
                i += 1
        elif ch == "(":
            depth += 1
            current.append(ch)
        elif ch == ")":
            depth = max(depth - 1, 0)
            current.append(ch)
        elif ch == "{":
            braces += 1
            current.append(ch)
        elif ch == "}":
            braces = max(braces - 1, 0)
            current.append(ch)
        elif ch == " " and depth == 0 and braces == 0:
            tokens.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    tokens.append("".join(current))
    return tokens


def literal_lead(token: str) -> tuple[str, bool]:
    """Literal text a regex token starts with, and whether that is the whole token."""
    lead: list[str] = []
    i = 0
    n = len(token)
    while i < n:
        ch = token[i]
        if ch == "\\":
            if i + 1 < n and not token[i + 1].isalnum():
                lead.append(token[i + 1])
                i += 2
                continue
            return "".join(lead), False
        if ch in REGEX_SYNTAX:
            # an optional quantifier takes the preceding char with it
            if ch in "?*{" and lead:
                lead.pop()
            return "".join(lead), False
        lead.append(ch)
        i += 1
    return "".join(lead), True


def build_partial_pattern(regex_text: str) -> str:
    """Partial regex source for unanchored pattern text."""
    *head, last = split_tokens(strip_anchors(regex_text))
    parts = [f"(?:{token}|$)" for token in head]
    lead, complete = literal_lead(last)
    alternatives = [escape_literal(lead[:i]) for i in range(len(lead) + 1)]
    if not complete:
        alternatives.append(last)
    parts.append("(?:" + "|".join(alternatives) + ")")
    return "^" + "(?: |$)".join(parts)
