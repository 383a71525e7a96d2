# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Main CLI entry point for tssc-e2e."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tssc_e2e import __version__
from tssc_e2e.commands import config_app, gitops_app, pipelines_app

app = typer.Typer(
    name="tssc-e2e",
    help="End-to-end verification of trusted software supply chain pipelines",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

# Add subcommand groups
app.add_typer(pipelines_app, name="pipelines", help="Follow CI pipelines and verify their outcome")
app.add_typer(gitops_app, name="gitops", help="Inspect and patch GitOps deployment manifests")
app.add_typer(config_app, name="config", help="Inspect the harness configuration")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version information"
    ),
    verbose: Optional[bool] = typer.Option(
        False, "--verbose", "-V", help="Enable verbose logging"
    ),
) -> None:
    """End-to-end verification of trusted software supply chain pipelines."""
    if verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)

    if version:
        table = Table(title="tssc-e2e Information")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="magenta")

        table.add_row("Version", __version__)
        table.add_row("Purpose", "Supply chain pipeline verification")
        table.add_row("License", "Apache-2.0")
        table.add_row("Author", "LF Release Engineering")

        console.print(table)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
