import logging
from typing import Annotated

import typer

from bicep_facts.cli.generate import generate
from bicep_facts.config import get_generator_name, get_log_level

app = typer.Typer(
    name="bicep-facts",
    help="Bicep facts generator: compile Bicep templates into canonical facts.v1 records.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("generate")(generate)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(get_generator_name())
        raise typer.Exit()


@app.callback()
def root(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    version: Annotated[
        bool,
        typer.Option("--version", help="Show the version and exit.", callback=_version_callback, is_eager=True),
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    app()
