"""StitchKit command-line interface."""

from __future__ import annotations

import logging
import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .conventions import plan_api_jobs
from .driver import MutationDriver, MutationOutcome, SchemaJob
from .exceptions import StitchKitError
from .models import TargetSpec, WebFramework
from .project import ProjectRegistry, find_web_server

app = typer.Typer(
    name="stitch",
    help="StitchKit: incremental source mutation for scaffolded Go projects",
    add_completion=False,
)
console = Console()


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("stitchkit")
    except PackageNotFoundError:
        pass

    # Development checkouts have no installed metadata
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"StitchKit version {_get_version_string()}")
        raise typer.Exit


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _report(outcomes: list[MutationOutcome], dry_run: bool) -> None:
    label = "WOULD UPDATE" if dry_run else "UPDATED"
    for outcome in outcomes:
        if outcome.changed:
            console.print(f"[green]{label}[/green] {outcome.path}", soft_wrap=True)
            if outcome.backup is not None and not dry_run:
                console.print(f"  [dim]backup: {outcome.backup}[/dim]", soft_wrap=True)
    if not any(outcome.changed for outcome in outcomes):
        console.print("[dim]Nothing to update[/dim]")


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        envvar="STITCHKIT_LOG_LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """StitchKit: incremental source mutation for scaffolded Go projects."""
    _configure_logging(log_level)


@app.command()
def api(
    kinds: str = typer.Option(
        ...,
        "--kinds",
        "-k",
        help="Comma separated resource kinds, e.g. post,cron_job",
    ),
    binary_name: str | None = typer.Option(
        None,
        "--binary-name",
        "-b",
        help="Web server receiving the kinds (binary or component name)",
    ),
    root: Path = typer.Option(
        Path.cwd(),
        "--root",
        "-r",
        help="Project root containing the PROJECT file",
    ),
    api_version: str | None = typer.Option(
        None,
        "--api-version",
        help="Override the project's API version",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would change without writing files",
    ),
    workers: int = typer.Option(
        4,
        "--workers",
        "-w",
        min=1,
        help="Maximum number of files edited in parallel",
    ),
) -> None:
    """Register new resource kinds in the proto, store and biz layers."""
    names = [kind.strip() for kind in kinds.split(",") if kind.strip()]
    if not names:
        console.print("[red]Error:[/red] No resource kinds given")
        raise typer.Exit(1)

    try:
        project = ProjectRegistry(root).load()
        server = find_web_server(project, binary_name)
        jobs = plan_api_jobs(project, root, server, names, api_version=api_version)

        if dry_run:
            table = Table(title="Planned edits")
            table.add_column("File", style="cyan")
            table.add_column("Edit", style="magenta")
            for job in jobs:
                if isinstance(job, SchemaJob):
                    edit = f"service {job.service_name}: {job.kind} RPCs"
                else:
                    edit = f"{job.target.interface_name}.{job.target.method_name}"
                table.add_row(str(job.path), edit)
            console.print(table)

        outcomes = MutationDriver(dry_run=dry_run).run(jobs, max_workers=workers)
    except (StitchKitError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    _report(outcomes, dry_run)
    if not dry_run and server.web_framework is WebFramework.GRPC:
        console.print("\nRegenerate the gRPC code and rebuild:")
        console.print(f"  $ make protoc.{server.name}")
        console.print(f"  $ make build BINS={server.binary_name}")


@app.command()
def inject(
    file: Path = typer.Argument(..., help="Go source file to edit"),
    interface: str = typer.Option(..., "--interface", help="Interface receiving the method"),
    struct: str = typer.Option(..., "--struct", help="Struct receiving the factory method"),
    method: str = typer.Option(..., "--method", help="Method name"),
    returns: str = typer.Option(..., "--returns", help="Return type of the method"),
    factory: str = typer.Option(..., "--factory", help="Expression returned by the factory"),
    receiver: str = typer.Option("s", "--receiver", help="Receiver name of the factory method"),
    doc: str = typer.Option("", "--doc", help="Doc comment of the interface method"),
    factory_doc: str | None = typer.Option(
        None,
        "--factory-doc",
        help="Doc comment of the factory method (defaults to --doc)",
    ),
    import_path: str | None = typer.Option(None, "--import-path", help="Import to ensure"),
    import_alias: str | None = typer.Option(None, "--import-alias", help="Alias of --import-path"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the file"),
) -> None:
    """Add a method to an interface and a factory method to a struct."""
    try:
        target = TargetSpec(
            interface_name=interface,
            struct_name=struct,
            method_name=method,
            return_type=returns,
            doc_comment=doc,
            receiver=receiver,
            factory_expression=factory,
            factory_doc=factory_doc,
            import_path=import_path,
            import_alias=import_alias,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid target: {escape(str(e))}")
        raise typer.Exit(1) from e

    try:
        outcome = MutationDriver(dry_run=dry_run).inject_method(file, target)
    except StitchKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    _report([outcome], dry_run)


@app.command()
def augment(
    file: Path = typer.Argument(..., help="Proto file to edit"),
    kind: str = typer.Option(..., "--kind", help="Resource kind, e.g. CronJob"),
    service: str = typer.Option(..., "--service", help="Service block to extend"),
    import_path: str | None = typer.Option(None, "--import-path", help="Proto import to ensure"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the file"),
) -> None:
    """Add Create/Update/Delete/Get/List RPCs for a kind to a service block."""
    try:
        outcome = MutationDriver(dry_run=dry_run).augment_service(file, kind, service, import_path)
    except StitchKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    _report([outcome], dry_run)


if __name__ == "__main__":
    app()
