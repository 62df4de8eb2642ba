"""Naming and layout conventions of generated projects.

A resource kind added to a project touches three existing files per web
server: the proto service definition (gRPC servers only), the store
aggregate and the biz aggregate. This module turns a kind into the edit
jobs for those files.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from .driver import Job, SchemaJob, SourceJob
from .models import Layer, TargetSpec, WebFramework

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import ProjectConfig, WebServerConfig

_WORD_BREAK = re.compile(r"[^A-Za-z0-9]+")


def to_upper_camel(name: str) -> str:
    """Convert ``cron_job`` or ``cron-job`` to ``CronJob``."""
    return "".join(part[:1].upper() + part[1:] for part in _WORD_BREAK.split(name) if part)


def to_lower_camel(name: str) -> str:
    """Convert ``cron_job`` to ``cronJob``."""
    upper = to_upper_camel(name)
    return upper[:1].lower() + upper[1:]


def store_target(kind: str) -> TargetSpec:
    """Target adding a kind's store accessor to ``IStore`` and ``datastore``."""
    name = to_upper_camel(kind)
    return TargetSpec(
        interface_name="IStore",
        struct_name="datastore",
        method_name=name,
        return_type=f"{name}Store",
        doc_comment=f"{name} returns the {name}Store interface.",
        receiver="store",
        factory_expression=f"new{name}Store(store)",
        factory_doc=f"{name} returns an instance that implements the {name}Store.",
    )


def biz_target(kind: str, version: str, module_path: str, server: str) -> TargetSpec:
    """Target adding a kind's versioned biz accessor to ``IBiz`` and ``biz``.

    Args:
        kind: Resource kind, any casing
        version: API version, e.g. ``v1``
        module_path: Go module path of the project
        server: Component name of the web server, e.g. ``apiserver``

    Returns:
        Target importing the kind's biz package under the ``<kind><version>`` alias
    """
    name = to_upper_camel(kind)
    lower = name.lower()
    alias = f"{lower}{version}"
    method = f"{name}{version.upper()}"
    return TargetSpec(
        interface_name="IBiz",
        struct_name="biz",
        method_name=method,
        return_type=f"{alias}.{name}Biz",
        doc_comment=f"{method} returns an instance that implements the {name}Biz interface.",
        receiver="b",
        factory_expression=f"{alias}.New(b.store)",
        factory_doc=f"{method} returns an instance that implements the {name}Biz.",
        import_path=f"{module_path}/internal/{server}/biz/{version}/{lower}",
        import_alias=alias,
    )


def layer_path(root: Path, server: str, layer: Layer) -> Path:
    """Go file holding a layer's aggregate interface and struct."""
    return Path(root) / "internal" / server / layer.value / f"{layer.value}.go"


def proto_path(root: Path, server: str, version: str) -> Path:
    """Proto file holding a server's service definition."""
    return Path(root) / "pkg" / "api" / server / version / f"{server}.proto"


def plan_api_jobs(
    project: ProjectConfig,
    root: Path,
    server: WebServerConfig,
    kinds: Iterable[str],
    api_version: str | None = None,
) -> list[Job]:
    """Plan the edits adding ``kinds`` to a web server.

    For every kind, in order: the proto job when the server is built on
    gRPC, then the store job, then the biz job.

    Args:
        project: Loaded project configuration
        root: Project root directory
        server: Web server receiving the kinds
        kinds: Resource kinds, any casing
        api_version: Overrides the project's API version

    Returns:
        Jobs in the order they must be applied

    Raises:
        ValueError: If the project has no Go module path or a kind is empty
    """
    module_path = project.module_path
    if not module_path:
        msg = "Project module path is unknown; set metadata.modulePath or add go.mod"
        raise ValueError(msg)

    version = api_version or project.api_version
    component = server.name
    jobs: list[Job] = []
    for kind in kinds:
        name = to_upper_camel(kind)
        if not name:
            msg = f"Invalid resource kind: {kind!r}"
            raise ValueError(msg)

        if server.web_framework is WebFramework.GRPC:
            jobs.append(
                SchemaJob(
                    path=proto_path(root, component, version),
                    kind=name,
                    service_name=server.service_name,
                    import_path=f"{component}/{version}/{name.lower()}.proto",
                ),
            )
        jobs.append(SourceJob(path=layer_path(root, component, Layer.STORE), target=store_target(kind)))
        jobs.append(
            SourceJob(
                path=layer_path(root, component, Layer.BIZ),
                target=biz_target(kind, version, module_path, component),
            ),
        )
    return jobs
