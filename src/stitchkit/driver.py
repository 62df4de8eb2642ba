"""File-level driver running the source and schema editors."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Union

from .exceptions import FileAccessError, StitchKitError
from .gosource import inject_method
from .schema import augment_service

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .models import MutationResult, TargetSpec

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class SourceJob:
    """Inject a method into a Go file."""

    path: Path
    target: TargetSpec


@dataclass(frozen=True)
class SchemaJob:
    """Add the CRUD RPCs of a kind to a proto service block."""

    path: Path
    kind: str
    service_name: str
    import_path: str | None = None


Job = Union[SourceJob, SchemaJob]


@dataclass(frozen=True)
class MutationOutcome:
    """What one job did to its file."""

    path: Path
    changed: bool
    backup: Path | None = None


def backup_path(path: Path) -> Path:
    """Sibling file holding the pre-mutation bytes of ``path``."""
    return path.with_name(path.name + BACKUP_SUFFIX)


class MutationDriver:
    """Reads a file, runs an editor on it and writes only real changes."""

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize driver.

        Args:
            dry_run: Compute outcomes without touching the filesystem
        """
        self.dry_run = dry_run

    def inject_method(self, path: Path, target: TargetSpec) -> MutationOutcome:
        """Inject ``target`` into the Go file at ``path`` in place.

        Go files are never backed up.

        Raises:
            FileAccessError: If the file cannot be read or written
            ParseError: If the file is not structurally valid Go
        """
        return self._mutate(Path(path), lambda text: inject_method(text, target), backup=False)

    def augment_service(
        self,
        path: Path,
        kind: str,
        service_name: str,
        import_path: str | None = None,
    ) -> MutationOutcome:
        """Add the missing RPCs for ``kind`` to the proto file at ``path``.

        When the document changes, the original bytes are first written to
        ``<path>.bak``.

        Raises:
            FileAccessError: If a file cannot be read or written
            BlockNotFoundError: If the service block does not exist
            StructuralError: If the service block is unbalanced
        """
        return self._mutate(
            Path(path),
            lambda text: augment_service(text, kind, service_name, import_path),
            backup=True,
        )

    def apply(self, job: Job) -> MutationOutcome:
        """Run a single job."""
        if isinstance(job, SchemaJob):
            return self.augment_service(job.path, job.kind, job.service_name, job.import_path)
        return self.inject_method(job.path, job.target)

    def run(self, jobs: Iterable[Job], max_workers: int = 4) -> list[MutationOutcome]:
        """Run a batch of jobs, one worker per file.

        Jobs touching the same file run in submission order on one worker, so
        every file has a single writer. Different files are edited in
        parallel.

        Args:
            jobs: Jobs to run
            max_workers: Upper bound on concurrently edited files

        Returns:
            Outcomes in submission order

        Raises:
            StitchKitError: The first failure in submission order, after all
                workers have finished
        """
        jobs = list(jobs)
        groups: dict[Path, list[int]] = {}
        for index, job in enumerate(jobs):
            groups.setdefault(Path(job.path).resolve(), []).append(index)

        outcomes: list[MutationOutcome | None] = [None] * len(jobs)
        errors: dict[int, Exception] = {}

        def work(indices: list[int]) -> None:
            for index in indices:
                try:
                    outcomes[index] = self.apply(jobs[index])
                except StitchKitError as e:
                    # Later jobs on this file would edit an unknown state.
                    errors[index] = e
                    return

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            futures = [executor.submit(work, indices) for indices in groups.values()]
        for future in futures:
            future.result()

        if errors:
            raise errors[min(errors)]
        return [outcome for outcome in outcomes if outcome is not None]

    def _mutate(
        self,
        path: Path,
        edit: Callable[[str], MutationResult],
        backup: bool,
    ) -> MutationOutcome:
        original = self._read(path)
        try:
            result = edit(original.decode("utf-8"))
        except UnicodeDecodeError as e:
            msg = f"{path}: file is not valid UTF-8"
            raise FileAccessError(msg, details={"path": str(path)}) from e
        except FileAccessError:
            raise
        except StitchKitError as e:
            msg = f"{path}: {e}"
            raise type(e)(msg, details={**e.details, "path": str(path)}) from e

        if not result.changed:
            logger.debug("No changes needed for %s", path)
            return MutationOutcome(path=path, changed=False)

        saved = backup_path(path) if backup else None
        if self.dry_run:
            logger.info("Would update %s", path)
            return MutationOutcome(path=path, changed=True, backup=saved)

        if saved is not None:
            self._write(saved, original)
            logger.info("Backed up %s to %s", path, saved)
        self._write(path, result.text.encode("utf-8"))
        logger.info("Updated %s", path)
        return MutationOutcome(path=path, changed=True, backup=saved)

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            msg = f"Failed to read {path}: {e}"
            raise FileAccessError(msg, details={"path": str(path)}) from e

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        try:
            path.write_bytes(data)
        except OSError as e:
            msg = f"Failed to write {path}: {e}"
            raise FileAccessError(msg, details={"path": str(path)}) from e
