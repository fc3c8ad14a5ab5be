import asyncio
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from bicep_facts.config import get_bicep_path, get_connect_timeout, get_generator_name
from bicep_facts.core.generate import run_generate
from bicep_facts.errors import BicepFactsError
from bicep_facts.rpc import BicepRpcSession, ensure_bicep_available

console = Console()
err_console = Console(stderr=True)


class ComponentIdFrom(str, Enum):
    resource = "resource"
    file = "file"


def _validate_generated_at(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise typer.BadParameter("must be a valid ISO date-time string") from None
    return value


def _report_failure(exc: Exception) -> None:
    # Messages often contain ARM expressions like "[parameters('x')]", so no markup.
    err_console.print(str(exc), style="red", markup=False, highlight=False)
    stderr = getattr(exc, "stderr", None)
    if stderr:
        err_console.print("Compiler output:", style="bold", markup=False)
        err_console.print(stderr, markup=False, highlight=False)


def generate(
    input_dir: Annotated[
        Path,
        typer.Option("--in", "-i", help="Directory to scan for .bicep files.", file_okay=False),
    ] = Path("."),
    output_dir: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Write facts under this directory instead of beside each source file."),
    ] = None,
    component_id_from: Annotated[
        ComponentIdFrom,
        typer.Option(
            "--component-id-from",
            help="Derive componentId from the main resource type or from the file name.",
        ),
    ] = ComponentIdFrom.resource,
    generated_at: Annotated[
        str | None,
        typer.Option(
            "--generated-at",
            help="ISO-8601 timestamp for meta.generatedAt (defaults to each file's mtime).",
            callback=_validate_generated_at,
        ),
    ] = None,
    bicep_path: Annotated[
        str | None,
        typer.Option("--bicep-path", help="Bicep CLI executable (defaults to $BICEP_PATH or 'bicep')."),
    ] = None,
) -> None:
    """Generate facts.v1 JSON for every Bicep file under a directory."""
    executable = bicep_path or get_bicep_path()
    try:
        ensure_bicep_available(executable)
        session = BicepRpcSession(executable, connect_timeout=get_connect_timeout())
        written = asyncio.run(
            run_generate(
                session,
                input_dir,
                generator=get_generator_name(),
                out_dir=output_dir,
                component_id_from="file" if component_id_from is ComponentIdFrom.file else "resource",
                generated_at=generated_at,
                on_written=lambda path: console.print(f"[green]Wrote[/green] {path}"),
            )
        )
    except (BicepFactsError, ValueError, OSError) as exc:
        _report_failure(exc)
        raise typer.Exit(1) from None

    if not written:
        console.print("No .bicep files found.")
