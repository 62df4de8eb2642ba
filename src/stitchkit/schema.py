"""Text-level editing of Protocol Buffers service definitions."""

from __future__ import annotations

import logging
import re

from .exceptions import BlockNotFoundError, InvalidKindError
from .imports import PROTO, ensure_import
from .models import RPC_METHOD_SET, BlockRegion, MutationResult, RPCMethod
from .scanner import ScanState, classify, locate_block
from .textutil import detect_newline, leading_whitespace, line_indent, normalize_file_ending

logger = logging.getLogger(__name__)

DEFAULT_INDENT = "  "

_KIND = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def service_marker(service_name: str) -> re.Pattern[str]:
    """Pattern matching the opening line of ``service <name> {``."""
    return re.compile(rf"(?m)^[ \t]*service[ \t]+{re.escape(service_name)}[ \t]*\{{")


def rpc_declaration(method: RPCMethod, kind: str) -> str:
    """Render the conventional RPC declaration for one verb and kind."""
    name = f"{method.value}{kind}"
    return f"rpc {name}({name}Request) returns ({name}Response);"


def _declared(body: str, states: list[ScanState], offset: int, method: RPCMethod, kind: str) -> bool:
    pattern = re.compile(rf"(?m)^[ \t]*(rpc)[ \t]+{method.value}{re.escape(kind)}[ \t]*\(")
    return any(states[offset + match.start(1)] is ScanState.NORMAL for match in pattern.finditer(body))


def _locate_service(text: str, service_name: str) -> BlockRegion:
    region = locate_block(text, service_marker(service_name))
    if region is None:
        msg = f"Service block not found: service {service_name} {{"
        raise BlockNotFoundError(msg, details={"service": service_name})
    return region


def missing_methods(text: str, kind: str, service_name: str) -> list[RPCMethod]:
    """RPC verbs not yet declared for ``kind`` in the service block.

    Raises:
        BlockNotFoundError: If the service block does not exist
    """
    return _missing(text, _locate_service(text, service_name), kind)


def _missing(text: str, region: BlockRegion, kind: str) -> list[RPCMethod]:
    states = classify(text)
    body = text[region.open_index + 1 : region.close_index]
    return [
        method
        for method in RPC_METHOD_SET
        if not _declared(body, states, region.open_index + 1, method, kind)
    ]


def infer_indent(body: str) -> str:
    """Indentation of the first non-blank line of a block body."""
    for line in body.split("\n")[1:]:
        if line.strip():
            return leading_whitespace(line) or DEFAULT_INDENT
    return DEFAULT_INDENT


def augment_service(
    text: str,
    kind: str,
    service_name: str,
    import_path: str | None = None,
) -> MutationResult:
    """Add the missing CRUD RPCs for ``kind`` to a service block.

    Missing declarations are appended in Create, Update, Delete, Get, List
    order directly after the last existing line of the block, with the
    block's own indentation. Whitespace that followed that line is kept
    before the closing brace.

    Args:
        text: Proto document
        kind: Resource kind in UpperCamelCase, e.g. ``CronJob``
        service_name: Name of the service block
        import_path: Proto file the new messages live in, added as an import

    Returns:
        The edited text and whether it changed

    Raises:
        InvalidKindError: If ``kind`` is not an identifier
        BlockNotFoundError: If the service block does not exist
        StructuralError: If the service block's braces are unbalanced
    """
    if not _KIND.match(kind):
        msg = f"Resource kind must be an identifier: {kind!r}"
        raise InvalidKindError(msg, details={"kind": kind})

    changed = False
    if import_path:
        result = ensure_import(text, import_path, dialect=PROTO)
        text, changed = result.text, result.changed

    region = _locate_service(text, service_name)
    missing = _missing(text, region, kind)
    if not missing:
        if not changed:
            logger.debug("Service %s already declares all %s RPCs", service_name, kind)
            return MutationResult(text, False)
        return MutationResult(normalize_file_ending(text), True)

    newline = detect_newline(text)
    head = text[: region.open_index + 1]
    body = text[region.open_index + 1 : region.close_index]
    tail = text[region.close_index :]

    indent = infer_indent(body)
    inserted = "".join(f"{indent}{rpc_declaration(method, kind)}{newline}" for method in missing)

    content = body.rstrip()
    trailing = body[len(content) :]
    first_break = trailing.find("\n")
    if first_break == -1:
        closing_indent = line_indent(text, region.open_index)
        body = content + newline + inserted + closing_indent
    else:
        body = content + trailing[: first_break + 1] + inserted + trailing[first_break + 1 :]

    logger.debug(
        "Adding %s to service %s",
        ", ".join(f"{method.value}{kind}" for method in missing),
        service_name,
    )
    return MutationResult(normalize_file_ending(head + body + tail), True)
