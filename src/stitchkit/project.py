"""Project file loader with schema validation."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .exceptions import ProjectError, ProjectValidationError
from .models import ProjectConfig, WebServerConfig

PROJECT_FILE = "PROJECT"

PROJECT_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "StitchKit Project File",
    "type": "object",
    "properties": {
        "apiVersion": {"type": "string"},
        "metadata": {
            "type": "object",
            "properties": {"modulePath": {"type": "string"}},
        },
        "webServers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["binaryName"],
                "properties": {
                    "binaryName": {"type": "string", "minLength": 1},
                    "webFramework": {"enum": ["gin", "grpc"]},
                    "grpcServiceName": {"type": ["string", "null"]},
                },
            },
        },
    },
}

_MODULE_LINE = re.compile(r"(?m)^module[ \t]+(\S+)")


class ProjectRegistry:
    """Loads the project file of a generated project."""

    def __init__(self, root: Path) -> None:
        """Initialize registry with project root.

        Args:
            root: Directory containing the PROJECT file
        """
        self.root = Path(root)

    @property
    def project_file(self) -> Path:
        return self.root / PROJECT_FILE

    def _validate_against_schema(self, data: dict[str, Any]) -> None:
        try:
            jsonschema.validate(data, PROJECT_SCHEMA)
        except jsonschema.ValidationError as e:
            msg = f"Schema validation failed: {e.message}"
            raise ProjectValidationError(
                msg,
                details={"path": list(e.absolute_path), "file": str(self.project_file)},
            ) from e

    def load(self, validate: bool = True) -> ProjectConfig:
        """Load and validate the project file.

        The module path falls back to the ``module`` line of ``go.mod`` when
        the project file does not record it.

        Args:
            validate: Whether to perform schema validation

        Returns:
            Validated project configuration

        Raises:
            ProjectError: If the project file cannot be loaded
            ProjectValidationError: If validation fails
        """
        path = self.project_file
        if not path.exists():
            msg = f"Project file not found: {path}"
            raise ProjectError(msg)

        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Failed to parse project YAML: {e}"
            raise ProjectError(msg) from e
        except OSError as e:
            msg = f"Failed to read project file: {e}"
            raise ProjectError(msg) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            msg = f"Project file must contain a mapping: {path}"
            raise ProjectValidationError(msg)

        if validate:
            self._validate_against_schema(data)

        try:
            project = ProjectConfig.model_validate(data)
        except ValidationError as e:
            msg = f"Project validation failed: {e}"
            raise ProjectValidationError(msg) from e

        if not project.module_path:
            module_path = self.read_module_path()
            if module_path:
                project.metadata.module_path = module_path
        return project

    def read_module_path(self) -> str | None:
        """Module path declared in ``go.mod``, if any."""
        go_mod = self.root / "go.mod"
        if not go_mod.exists():
            return None
        try:
            content = go_mod.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read go.mod: {e}"
            raise ProjectError(msg) from e
        match = _MODULE_LINE.search(content)
        return match.group(1) if match else None


def find_web_server(project: ProjectConfig, name: str | None = None) -> WebServerConfig:
    """Resolve a web server by binary or component name.

    Args:
        project: Loaded project configuration
        name: Binary name (``mb-apiserver``) or component name (``apiserver``);
            may be omitted when the project has exactly one server

    Raises:
        ProjectError: If no single server matches
    """
    servers = project.web_servers
    if not servers:
        msg = "Project has no web servers"
        raise ProjectError(msg)

    if name is None:
        if len(servers) == 1:
            return servers[0]
        choices = ", ".join(server.binary_name for server in servers)
        msg = f"Project has several web servers, choose one with --binary-name: {choices}"
        raise ProjectError(msg, details={"servers": [s.binary_name for s in servers]})

    for server in servers:
        if name in (server.binary_name, server.name):
            return server
    msg = f"Web server not found: {name}"
    raise ProjectError(msg, details={"servers": [s.binary_name for s in servers]})
