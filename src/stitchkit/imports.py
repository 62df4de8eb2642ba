"""Import maintenance shared by the Go and proto editors."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .models import MutationResult
from .scanner import ScanState, classify, find_matching
from .textutil import detect_newline, line_end, line_indent

logger = logging.getLogger(__name__)

_COMMENT_STATES = (ScanState.LINE_COMMENT, ScanState.BLOCK_COMMENT)


@dataclass(frozen=True)
class ImportEntry:
    """One import found in a document."""

    path: str
    alias: str | None
    start: int
    end: int
    grouped: bool = False


class ImportDialect(ABC):
    """Language-specific knowledge about import statements."""

    name: str = ""

    #: Lines after which a first import may go, most preferred first.
    anchors: tuple[re.Pattern[str], ...] = ()

    #: Whether a first import anchored after a line is set off by blank lines.
    spaced: bool = False

    @abstractmethod
    def entries(self, text: str, states: list[ScanState]) -> list[ImportEntry]:
        """Find the live import entries of a document, in document order."""

    @abstractmethod
    def render(self, path: str, alias: str | None, grouped: bool) -> str:
        """Render one import entry without indentation or newline."""


class GoImports(ImportDialect):
    """Go ``import`` declarations, single or grouped."""

    name = "go"
    anchors = (re.compile(r"(?m)^[ \t]*package[ \t]+\w+"),)
    spaced = True

    _DECL = re.compile(r"(?m)^[ \t]*import\b[ \t]*")
    _SPEC = re.compile(
        r'(?m)^[ \t]*(?P<spec>(?:(?P<alias>[A-Za-z_]\w*|\.)[ \t]+)?"(?P<path>[^"\n]*)")',
    )
    _SINGLE = re.compile(r'(?:(?P<alias>[A-Za-z_]\w*|\.)[ \t]+)?"(?P<path>[^"\n]*)"')

    def entries(self, text: str, states: list[ScanState]) -> list[ImportEntry]:
        found: list[ImportEntry] = []
        for decl in self._DECL.finditer(text):
            keyword = decl.group(0).index("import") + decl.start()
            if states[keyword] is not ScanState.NORMAL:
                continue

            after = decl.end()
            if after < len(text) and text[after] == "(":
                close = find_matching(text, after, "(", ")")
                for spec in self._SPEC.finditer(text, after + 1, close):
                    if states[spec.start("spec")] in _COMMENT_STATES:
                        continue
                    found.append(
                        ImportEntry(
                            path=spec.group("path"),
                            alias=spec.group("alias"),
                            start=spec.start("spec"),
                            end=spec.end(),
                            grouped=True,
                        ),
                    )
                continue

            single = self._SINGLE.match(text, after)
            if single:
                found.append(
                    ImportEntry(
                        path=single.group("path"),
                        alias=single.group("alias"),
                        start=decl.start(),
                        end=single.end(),
                    ),
                )
        return found

    def render(self, path: str, alias: str | None, grouped: bool) -> str:
        spec = f'{alias} "{path}"' if alias else f'"{path}"'
        return spec if grouped else f"import {spec}"


class ProtoImports(ImportDialect):
    """Protocol Buffers ``import "path";`` statements."""

    name = "proto"
    anchors = (
        re.compile(r"(?m)^[ \t]*package[ \t]+[\w.]+[ \t]*;"),
        re.compile(r"(?m)^[ \t]*(?:syntax|edition)[ \t]*=[^;\n]*;"),
    )

    _IMPORT = re.compile(
        r'(?m)^[ \t]*(?P<kw>import)[ \t]+(?:(?:public|weak)[ \t]+)?"(?P<path>[^"\n]+)"[ \t]*;',
    )

    def entries(self, text: str, states: list[ScanState]) -> list[ImportEntry]:
        return [
            ImportEntry(
                path=match.group("path"),
                alias=None,
                start=match.start(),
                end=match.end(),
            )
            for match in self._IMPORT.finditer(text)
            if states[match.start("kw")] is ScanState.NORMAL
        ]

    def render(self, path: str, alias: str | None, grouped: bool) -> str:
        return f'import "{path}";'


GO = GoImports()
PROTO = ProtoImports()


def _first_live(pattern: re.Pattern[str], text: str, states: list[ScanState]) -> re.Match[str] | None:
    for match in pattern.finditer(text):
        head = match.start() + len(match.group(0)) - len(match.group(0).lstrip())
        if head < len(text) and states[head] is ScanState.NORMAL:
            return match
    return None


def ensure_import(
    text: str,
    import_path: str,
    alias: str | None = None,
    dialect: ImportDialect = GO,
) -> MutationResult:
    """Add an import entry unless the document already has it.

    The new entry goes on the line after the last existing import, with the
    same indentation. Without imports it follows the package line (set off
    by blank lines in Go), then the syntax line, then the top of the file.

    Args:
        text: Document to edit
        import_path: Imported path
        alias: Optional import alias (ignored by dialects without aliases)
        dialect: Import syntax of the document

    Returns:
        The edited text and whether it changed
    """
    states = classify(text)
    entries = dialect.entries(text, states)
    if any(entry.path == import_path for entry in entries):
        return MutationResult(text, False)

    grouped = False
    anchored = False
    if entries:
        last = max(entries, key=lambda entry: entry.start)
        insert_at = line_end(text, last.end)
        indent = line_indent(text, last.start)
        grouped = last.grouped
    else:
        insert_at, indent = 0, ""
        for anchor in dialect.anchors:
            match = _first_live(anchor, text, states)
            if match:
                insert_at = line_end(text, match.end())
                indent = line_indent(text, match.start())
                anchored = True
                break

    newline = detect_newline(text)
    line = indent + dialect.render(import_path, alias, grouped) + newline
    if anchored and dialect.spaced:
        line = newline + line
        if insert_at < len(text) and not text.startswith(("\n", "\r\n"), insert_at):
            line += newline
    if insert_at == len(text) and text and not text.endswith("\n"):
        line = newline + line

    logger.debug("Adding %s import %r", dialect.name, import_path)
    return MutationResult(text[:insert_at] + line + text[insert_at:], True)
