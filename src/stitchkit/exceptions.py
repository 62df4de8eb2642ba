"""Custom exceptions for StitchKit."""

from typing import Any


class StitchKitError(Exception):
    """Base exception for all StitchKit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ParseError(StitchKitError):
    """Raised when Go source cannot be structurally understood."""


class StructuralError(StitchKitError):
    """Raised when a brace-delimited region cannot be safely bounded."""


class BlockNotFoundError(StitchKitError):
    """Raised when a required named block is absent from a document."""


class FileAccessError(StitchKitError):
    """Raised when a target file cannot be read or written."""


class ProjectError(StitchKitError):
    """Raised when the project file cannot be loaded."""


class ProjectValidationError(ProjectError):
    """Raised when the project file is invalid."""


class InvalidKindError(StitchKitError):
    """Raised when a resource kind is not a valid identifier."""
