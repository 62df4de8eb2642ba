"""StitchKit: incremental source mutation for scaffolded Go projects."""

__version__ = "0.1.0"
__author__ = "StitchKit Contributors"
__description__ = "Incremental source mutation for scaffolded Go projects"

from .driver import MutationDriver, MutationOutcome
from .gosource import inject_method
from .models import MutationResult, RPCMethod, TargetSpec
from .project import ProjectRegistry
from .schema import augment_service

__all__ = [
    "MutationDriver",
    "MutationOutcome",
    "MutationResult",
    "ProjectRegistry",
    "RPCMethod",
    "TargetSpec",
    "augment_service",
    "inject_method",
]
