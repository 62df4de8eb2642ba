"""Structural editing of Go source files.

A file is split into top-level segments: the package clause, import, type,
func, var and const declarations, and the trivia (blank lines, comments)
between them. Joining the segment texts reproduces the input byte for byte,
so an edit only rewrites the segments it touches and a file that needs no
change renders back to exactly what was read.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import ParseError, StructuralError
from .imports import GO, ensure_import
from .models import MutationResult, TargetSpec
from .scanner import Scanner, ScanState, classify, find_matching, find_matching_brace
from .textutil import detect_newline, line_end, line_indent, line_start

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z_]\w*"
_BLANKS = " \t\r\f\v"
_OPENERS = "{(["
_CLOSERS = "})]"
_COMMENT_STATES = frozenset({ScanState.LINE_COMMENT, ScanState.BLOCK_COMMENT})
# A line ending in one of these continues the statement on the next line.
_CONTINUATION = frozenset(",.+-*/%&|^<>=!:")

_KEYWORD = re.compile(r"(package|import|type|func|var|const)\b")
_TYPE_GROUP = re.compile(r"type\s*\(")
_TYPE_KEYWORD = re.compile(r"type\s+")
_TYPE_SPEC = re.compile(
    rf"(?P<name>{_IDENT})\s*(?:\[[^\]\n]+\]\s*)?(?:=\s*)?"
    rf"(?:(?P<kind>interface|struct)\s*\{{)?",
)
_METHOD = re.compile(rf"(?P<name>{_IDENT})\s*\(")
_FUNC = re.compile(
    rf"func\s*(?:\(\s*(?:{_IDENT}\s+)?\*?\s*(?P<recv>{_IDENT})\s*(?:\[[^\]]*\])?\s*\)\s*)?"
    rf"(?P<name>{_IDENT})",
)


class DeclKind(str, Enum):
    """Tag of a top-level segment."""

    PACKAGE = "package"
    IMPORT = "import"
    TYPE = "type"
    FUNC = "func"
    VAR = "var"
    CONST = "const"
    TRIVIA = "trivia"


class TypeKind(str, Enum):
    """Shape of a type specification."""

    INTERFACE = "interface"
    STRUCT = "struct"
    OTHER = "other"


@dataclass(frozen=True)
class TypeSpec:
    """One type specification inside a ``type`` declaration.

    Offsets are relative to the owning segment's text.
    """

    name: str
    kind: TypeKind
    body_open: int = -1
    body_close: int = -1


@dataclass
class Segment:
    """A contiguous slice of the file with a declaration tag."""

    kind: DeclKind
    text: str

    def type_specs(self) -> list[TypeSpec]:
        """Type specifications declared by a ``type`` segment."""
        if self.kind is not DeclKind.TYPE:
            return []
        return _type_specs(self.text)

    def func_signature(self) -> tuple[str | None, str] | None:
        """``(receiver type, name)`` of a ``func`` segment."""
        if self.kind is not DeclKind.FUNC:
            return None
        match = _FUNC.match(self.text.lstrip())
        if not match:
            return None
        return match.group("recv"), match.group("name")


@dataclass
class SourceTree:
    """Structural parse of a Go file."""

    segments: list[Segment] = field(default_factory=list)

    def render(self) -> str:
        """Re-serialize the tree."""
        return "".join(segment.text for segment in self.segments)

    def declarations(self, kind: DeclKind) -> Iterator[Segment]:
        """Segments tagged ``kind``, in file order."""
        return (segment for segment in self.segments if segment.kind is kind)

    def find_type(self, name: str, kind: TypeKind) -> tuple[Segment, TypeSpec] | None:
        """Find the top-level type spec called ``name`` with the given shape."""
        for segment in self.declarations(DeclKind.TYPE):
            for spec in segment.type_specs():
                if spec.name == name and spec.kind is kind:
                    return segment, spec
        return None

    def has_method(self, receiver: str, name: str) -> bool:
        """Whether a method ``name`` is declared on ``receiver``."""
        for segment in self.declarations(DeclKind.FUNC):
            signature = segment.func_signature()
            if signature == (receiver, name):
                return True
        return False

    def append(self, kind: DeclKind, text: str) -> None:
        """Append a declaration at the end of the file."""
        newline = detect_newline(self.render())
        rendered = self.render()
        if rendered and not rendered.endswith("\n"):
            self.segments[-1].text += newline
            rendered += newline
        if rendered and not rendered.endswith(newline * 2):
            self.segments.append(Segment(DeclKind.TRIVIA, newline))
        self.segments.append(Segment(kind, text))


def parse_source(text: str) -> SourceTree:
    """Split Go source into top-level segments.

    Args:
        text: Go source text

    Returns:
        The structural tree of the file

    Raises:
        ParseError: If the text is not a structurally valid Go file
    """
    scanner = Scanner(text)
    states = scanner.classify()
    if scanner.state in (ScanState.BLOCK_COMMENT, ScanState.STRING):
        msg = f"Unterminated {scanner.state.value.replace('_', ' ')} at end of file"
        raise ParseError(msg, details={"line": text.count("\n") + 1})

    segments: list[Segment] = []
    depth = 0
    line = 1
    line_head_pending = True
    current_line_start = 0
    last_live = ""
    decl_start: int | None = None
    decl_kind = DeclKind.TRIVIA
    trivia_start = 0

    for i, ch in enumerate(text):
        state = states[i]
        # Comments before the first live character of a line do not end the search.
        if line_head_pending and ch not in _BLANKS and ch != "\n" and state not in _COMMENT_STATES:
            line_head_pending = False
            if decl_start is None:
                match = _KEYWORD.match(text, i) if state is ScanState.NORMAL else None
                if not match:
                    msg = f"Expected a declaration at line {line}"
                    raise ParseError(msg, details={"line": line})
                start = current_line_start if not text[current_line_start:i].strip(_BLANKS) else i
                if start > trivia_start:
                    segments.append(Segment(DeclKind.TRIVIA, text[trivia_start:start]))
                decl_start = start
                decl_kind = DeclKind(match.group(1))

        if state is ScanState.NORMAL:
            if ch in _OPENERS:
                depth += 1
            elif ch in _CLOSERS:
                depth -= 1
                if depth < 0:
                    msg = f"Unexpected {ch!r} at line {line}"
                    raise ParseError(msg, details={"line": line})
            if ch not in _BLANKS and ch != "\n":
                last_live = ch
        elif state is ScanState.STRING:
            last_live = ch

        if ch == "\n":
            ends_statement = last_live not in _CONTINUATION
            if decl_start is not None and depth == 0 and state is ScanState.NORMAL and ends_statement:
                segments.append(Segment(decl_kind, text[decl_start : i + 1]))
                decl_start = None
                trivia_start = i + 1
            line += 1
            line_head_pending = True
            current_line_start = i + 1
            last_live = ""

    if depth != 0:
        msg = "Unbalanced delimiters at end of file"
        raise ParseError(msg, details={"line": line})

    if decl_start is not None:
        segments.append(Segment(decl_kind, text[decl_start:]))
    elif trivia_start < len(text):
        segments.append(Segment(DeclKind.TRIVIA, text[trivia_start:]))

    declared = [segment for segment in segments if segment.kind is not DeclKind.TRIVIA]
    if not declared or declared[0].kind is not DeclKind.PACKAGE:
        msg = "Missing package clause"
        raise ParseError(msg)

    return SourceTree(segments)


def _members(text: str, states: list[ScanState], open_index: int, close_index: int) -> list[tuple[int, int]]:
    """Spans of the members between a pair of delimiters.

    A member starts at the first live character at the body's own depth,
    after any leading comments, and runs to the next newline or ``;`` at
    that depth.
    """
    members: list[tuple[int, int]] = []
    depth = 0
    head: int | None = None
    for i in range(open_index + 1, close_index):
        ch = text[i]
        if states[i] is not ScanState.NORMAL:
            continue
        if head is None and depth == 0 and ch not in _BLANKS and ch not in "\n;":
            head = i
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch in "\n;" and depth == 0 and head is not None:
            members.append((head, i + 1))
            head = None
    if head is not None:
        members.append((head, close_index))
    return members


def _type_specs(text: str) -> list[TypeSpec]:
    states = classify(text)
    offset = len(text) - len(text.lstrip())
    group = _TYPE_GROUP.match(text, offset)
    if group:
        close = find_matching(text, group.end() - 1, "(", ")")
        heads = [head for head, _ in _members(text, states, group.end() - 1, close)]
    else:
        keyword = _TYPE_KEYWORD.match(text, offset)
        heads = [keyword.end()] if keyword else []

    specs: list[TypeSpec] = []
    for head in heads:
        match = _TYPE_SPEC.match(text, head)
        if not match:
            continue
        if match.group("kind"):
            body_open = match.end() - 1
            specs.append(
                TypeSpec(
                    name=match.group("name"),
                    kind=TypeKind(match.group("kind")),
                    body_open=body_open,
                    body_close=_matching_brace(text, body_open),
                ),
            )
        else:
            specs.append(TypeSpec(name=match.group("name"), kind=TypeKind.OTHER))
    return specs


def _matching_brace(text: str, open_index: int) -> int:
    try:
        return find_matching_brace(text, open_index)
    except StructuralError as e:
        raise ParseError(f"Malformed type body: {e}", details=e.details) from e


def _comment_lines(comment: str, indent: str, newline: str) -> str:
    lines = []
    for line in comment.strip().splitlines():
        stripped = line.strip()
        lines.append(f"{indent}{stripped}" if stripped.startswith("//") else f"{indent}// {stripped}")
    return "".join(line.rstrip() + newline for line in lines)


def _add_interface_method(text: str, spec: TypeSpec, target: TargetSpec, newline: str) -> str | None:
    """Insert ``target``'s signature into an interface body.

    Returns None when the interface already declares the method.
    """
    states = classify(text)
    members = _members(text, states, spec.body_open, spec.body_close)
    for head, end in members:
        method = _METHOD.match(text, head, end)
        if method and method.group("name") == target.method_name:
            return None

    body = text[spec.body_open + 1 : spec.body_close]
    single_line = "\n" not in body
    outer = line_indent(text, spec.body_open)
    indent = line_indent(text, members[-1][0]) if members and not single_line else outer + "\t"
    addition = _comment_lines(target.doc_comment, indent, newline) if target.doc_comment else ""
    addition += f"{indent}{target.method_name}() {target.return_type}{newline}"

    if single_line:
        inline = body.strip()
        kept = f"{indent}{inline}{newline}" if inline else ""
        return (
            text[: spec.body_open + 1]
            + newline
            + kept
            + addition
            + outer
            + text[spec.body_close :]
        )

    close_line = line_start(text, spec.body_close)
    brace_alone = not text[close_line : spec.body_close].strip()
    # Members split on ";" can end mid-line; new text goes after the whole line.
    last_line_end = line_end(text, members[-1][1] - 1) if members else -1
    if members and last_line_end <= close_line:
        insert_at = last_line_end
    elif brace_alone:
        insert_at = close_line
    else:
        return text[: spec.body_close].rstrip(" \t") + newline + addition + outer + text[spec.body_close :]
    return text[:insert_at] + addition + text[insert_at:]


def _factory_method(target: TargetSpec, newline: str) -> str:
    doc = _comment_lines(target.factory_comment, "", newline) if target.factory_comment else ""
    return (
        f"{doc}func ({target.receiver} *{target.struct_name}) {target.method_name}() {target.return_type} {{{newline}"
        f"\treturn {target.factory_expression}{newline}"
        f"}}{newline}"
    )


def inject_method(text: str, target: TargetSpec) -> MutationResult:
    """Inject an interface method and its factory method into Go source.

    The interface named ``target.interface_name`` gains the method signature
    and the struct named ``target.struct_name`` gains a factory method
    returning ``target.factory_expression``. Either declaration may be
    absent; that step is then skipped. Existing methods are left untouched,
    so repeating the call is a no-op.

    Args:
        text: Go source text
        target: What to inject

    Returns:
        The edited text and whether it differs from ``text``

    Raises:
        ParseError: If the source cannot be parsed
    """
    tree = parse_source(text)
    newline = detect_newline(text)
    touched = False

    found = tree.find_type(target.interface_name, TypeKind.INTERFACE)
    if found is None:
        logger.debug("Interface %s not declared; skipping", target.interface_name)
    else:
        touched = True
        segment, spec = found
        updated = _add_interface_method(segment.text, spec, target, newline)
        if updated is None:
            logger.debug("%s.%s already declared", target.interface_name, target.method_name)
        else:
            segment.text = updated

    if tree.find_type(target.struct_name, TypeKind.STRUCT) is None:
        logger.debug("Struct %s not declared; skipping", target.struct_name)
    elif tree.has_method(target.struct_name, target.method_name):
        touched = True
        logger.debug("Method (*%s).%s already declared", target.struct_name, target.method_name)
    else:
        touched = True
        tree.append(DeclKind.FUNC, _factory_method(target, newline))

    rendered = tree.render()
    if target.import_path and touched:
        rendered = ensure_import(rendered, target.import_path, target.import_alias, GO).text

    if rendered == text:
        return MutationResult(text, False)
    return MutationResult(rendered, True)
