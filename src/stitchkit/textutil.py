"""Line and indentation helpers shared by the editors."""

from __future__ import annotations

_BLANKS = " \t"


def detect_newline(text: str) -> str:
    """Return the newline sequence a document uses."""
    first = text.find("\n")
    if first > 0 and text[first - 1] == "\r":
        return "\r\n"
    return "\n"


def line_start(text: str, at: int) -> int:
    """Offset of the first character of the line holding ``at``."""
    return text.rfind("\n", 0, max(at, 0)) + 1


def line_end(text: str, at: int) -> int:
    """Offset just past the newline ending the line holding ``at``."""
    nl = text.find("\n", max(at, 0))
    if nl == -1:
        return len(text)
    return nl + 1


def leading_whitespace(line: str) -> str:
    """Spaces and tabs at the start of ``line``."""
    return line[: len(line) - len(line.lstrip(_BLANKS))]


def line_indent(text: str, at: int) -> str:
    """Indentation of the line holding ``at``."""
    start = line_start(text, at)
    end = start
    while end < len(text) and text[end] in _BLANKS:
        end += 1
    return text[start:end]


def normalize_file_ending(text: str) -> str:
    """Collapse trailing newlines into exactly one."""
    newline = detect_newline(text)
    return text.rstrip("\r\n") + newline
