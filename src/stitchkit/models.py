"""Core data models for the StitchKit mutation engine."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RPCMethod(str, Enum):
    """Verbs of the per-kind RPC convention, in insertion order."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    GET = "Get"
    LIST = "List"


RPC_METHOD_SET: tuple[RPCMethod, ...] = tuple(RPCMethod)


class Layer(str, Enum):
    """Generated layers that receive typed-source injections."""

    STORE = "store"
    BIZ = "biz"


class WebFramework(str, Enum):
    """Web frameworks a generated server can be built on."""

    GIN = "gin"
    GRPC = "grpc"


@dataclass(frozen=True)
class BlockRegion:
    """Offsets of a block's opening and matching closing brace."""

    open_index: int
    close_index: int

    def __post_init__(self) -> None:
        """Reject regions that do not enclose anything."""
        if not 0 <= self.open_index < self.close_index:
            msg = f"Invalid block region: {self.open_index}..{self.close_index}"
            raise ValueError(msg)


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one editor call: the resulting text and whether it differs."""

    text: str
    changed: bool


class TargetSpec(BaseModel):
    """What to inject into a Go file and where."""

    model_config = ConfigDict(frozen=True)

    interface_name: str = Field(..., description="Interface receiving the method signature")
    struct_name: str = Field(..., description="Struct receiving the factory method")
    method_name: str = Field(..., description="Name of the injected method")
    return_type: str = Field(..., description="Return type expression of the method")
    doc_comment: str = Field(default="", description="Doc comment for the interface method")
    receiver: str = Field(default="s", description="Receiver name of the factory method")
    factory_expression: str = Field(
        ...,
        description="Expression returned by the factory method body",
    )
    factory_doc: str | None = Field(
        default=None,
        description="Doc comment for the factory method (defaults to doc_comment)",
    )
    import_path: str | None = Field(
        default=None,
        description="Package the injected code depends on",
    )
    import_alias: str | None = Field(default=None, description="Alias for import_path")

    @field_validator("interface_name", "struct_name", "method_name", "receiver")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Validate names are plain identifiers."""
        if not _IDENTIFIER.match(v):
            msg = f"Not a valid identifier: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("import_alias")
    @classmethod
    def validate_alias(cls, v: str | None) -> str | None:
        """Validate the import alias is an identifier, '_' or '.'."""
        if v is not None and v != "." and not _IDENTIFIER.match(v):
            msg = f"Import alias must be an identifier: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("return_type", "factory_expression")
    @classmethod
    def validate_single_line(cls, v: str) -> str:
        """Validate expressions fit on one line."""
        if not v.strip() or "\n" in v:
            msg = "Expression must be a non-empty single line"
            raise ValueError(msg)
        return v.strip()

    @property
    def factory_comment(self) -> str:
        """Doc comment used for the generated factory method."""
        return self.factory_doc if self.factory_doc is not None else self.doc_comment


class WebServerConfig(BaseModel):
    """A web server component recorded in the project file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    binary_name: str = Field(..., alias="binaryName", description="Binary name, e.g. mb-apiserver")
    web_framework: WebFramework = Field(
        default=WebFramework.GIN,
        alias="webFramework",
        description="Framework the server is built on",
    )
    grpc_service_name: str | None = Field(
        default=None,
        alias="grpcServiceName",
        description="gRPC service name (defaults to the capitalized component name)",
    )

    @property
    def name(self) -> str:
        """Component name: 'apiserver' for 'mb-apiserver'."""
        parts = self.binary_name.split("-")
        if len(parts) == 2:
            return parts[1]
        return self.binary_name

    @property
    def service_name(self) -> str:
        """Name of the gRPC service block in the server's proto file."""
        if self.grpc_service_name and self.grpc_service_name.strip():
            return self.grpc_service_name.strip()
        return self.name[:1].upper() + self.name[1:]


class ProjectMetadata(BaseModel):
    """General project information."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    module_path: str | None = Field(
        default=None,
        alias="modulePath",
        description="Go module path as declared in go.mod",
    )


class ProjectConfig(BaseModel):
    """Project file contents relevant to incremental generation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(default="v1", alias="apiVersion", description="API version")
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)
    web_servers: list[WebServerConfig] = Field(
        default_factory=list,
        alias="webServers",
        description="Web server components",
    )

    @field_validator("api_version")
    @classmethod
    def validate_api_version(cls, v: str) -> str:
        """Validate API version looks like v1, v2beta1, ..."""
        if not re.match(r"^v\d+[a-z0-9]*$", v):
            msg = "API version must follow format: v1, v2beta1, ..."
            raise ValueError(msg)
        return v

    @property
    def module_path(self) -> str | None:
        """Go module path, if recorded."""
        return self.metadata.module_path
