"""Comment and string aware scanning of brace-delimited text.

The scanner is the only place that reasons about lexical state. Everything
that needs to know whether a brace, keyword or quote is live code asks it.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import StructuralError
from .models import BlockRegion

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# Backtick strings are Go raw strings: no escapes, may span lines.
_QUOTES = frozenset("\"'`")
_RAW_QUOTE = "`"


class ScanState(str, Enum):
    """Lexical state of a single character."""

    NORMAL = "normal"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    STRING = "string"


class Scanner:
    """Minimal lexer tracking comment and string state.

    After iteration, ``state`` holds the state in effect at end of text, so
    an unterminated block comment or string can be detected.
    """

    def __init__(self, text: str, start: int = 0) -> None:
        """Initialize scanner over ``text``.

        Args:
            text: Document to scan
            start: Offset to start from; assumed to lie in normal code
        """
        self.text = text
        self.start = start
        self.state = ScanState.NORMAL

    def __iter__(self) -> Iterator[tuple[int, ScanState]]:
        text = self.text
        quote = ""
        i = self.start
        n = len(text)
        while i < n:
            ch = text[i]
            if self.state is ScanState.LINE_COMMENT:
                if ch == "\n":
                    self.state = ScanState.NORMAL
                yield i, self.state
                i += 1
                continue

            if self.state is ScanState.BLOCK_COMMENT:
                if text.startswith("*/", i):
                    yield i, self.state
                    yield i + 1, self.state
                    self.state = ScanState.NORMAL
                    i += 2
                    continue
                yield i, self.state
                i += 1
                continue

            if self.state is ScanState.STRING:
                yield i, self.state
                if ch == "\\" and quote != _RAW_QUOTE and i + 1 < n:
                    yield i + 1, self.state
                    i += 2
                    continue
                if ch == quote:
                    self.state = ScanState.NORMAL
                i += 1
                continue

            if text.startswith("//", i) or text.startswith("/*", i):
                self.state = (
                    ScanState.LINE_COMMENT if text[i + 1] == "/" else ScanState.BLOCK_COMMENT
                )
                yield i, self.state
                yield i + 1, self.state
                i += 2
                continue
            if ch in _QUOTES:
                quote = ch
                self.state = ScanState.STRING
                yield i, self.state
                i += 1
                continue

            yield i, self.state
            i += 1

    def classify(self) -> list[ScanState]:
        """Lexical state of every character from the start offset on."""
        return [state for _, state in self]


def scan(text: str, start: int = 0) -> Iterator[tuple[int, ScanState]]:
    """Classify every character of ``text`` from ``start`` onwards.

    Yields:
        ``(offset, state)`` pairs, one per character
    """
    return iter(Scanner(text, start))


def classify(text: str) -> list[ScanState]:
    """Lexical state of every character in ``text``."""
    return Scanner(text).classify()


def find_matching(text: str, open_index: int, opener: str = "{", closer: str = "}") -> int:
    """Find the delimiter closing the one at ``open_index``.

    Only delimiters in normal code count towards the depth.

    Args:
        text: Document to scan
        open_index: Offset of the opening delimiter
        opener: Opening delimiter character
        closer: Closing delimiter character

    Returns:
        Offset of the matching closing delimiter

    Raises:
        StructuralError: If ``open_index`` is not an opener or the text ends first
    """
    if not 0 <= open_index < len(text) or text[open_index] != opener:
        msg = f"Expected {opener!r} at offset {open_index}"
        raise StructuralError(msg, details={"offset": open_index})

    depth = 0
    for i, state in scan(text, open_index):
        if state is not ScanState.NORMAL:
            continue
        ch = text[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i

    msg = "unbalanced braces" if opener == "{" else f"unbalanced {opener}{closer}"
    raise StructuralError(msg, details={"offset": open_index})


def find_matching_brace(text: str, open_index: int) -> int:
    """Find the ``}`` closing the ``{`` at ``open_index``."""
    return find_matching(text, open_index, "{", "}")


def locate_block(text: str, marker: str | re.Pattern[str]) -> BlockRegion | None:
    """Locate a named block from a marker ending at its opening brace.

    Occurrences inside comments or strings are skipped. When the marker
    occurs more than once in live code the first occurrence wins.

    Args:
        text: Document to search
        marker: Regex whose match ends with the block's ``{``

    Returns:
        The block region, or None when the marker does not occur

    Raises:
        StructuralError: If the block's braces are unbalanced
    """
    pattern = re.compile(marker) if isinstance(marker, str) else marker
    states: list[ScanState] | None = None
    found: BlockRegion | None = None

    for match in pattern.finditer(text):
        brace = match.group(0).rfind("{")
        if brace == -1:
            msg = f"Block marker must end at an opening brace: {pattern.pattern!r}"
            raise StructuralError(msg)
        open_index = match.start() + brace

        if states is None:
            states = classify(text)
        if states[open_index] is not ScanState.NORMAL:
            continue

        if found is not None:
            logger.warning(
                "Block marker %r occurs more than once; using the first occurrence",
                pattern.pattern,
            )
            break
        found = BlockRegion(open_index, find_matching_brace(text, open_index))

    return found
