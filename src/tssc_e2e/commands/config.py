# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Configuration inspection commands."""

import pathlib
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console

from tssc_e2e.core.config import CI_BACKENDS, CONFIG_FILE_ENV, SCM_PROVIDERS, load_config
from tssc_e2e.core.errors import ConfigError
from tssc_e2e.core.output import OUTPUT_FORMATS, format_and_output

console = Console()

config_app = typer.Typer(help="Inspect the harness configuration")


@config_app.command("show")
def show_config(
    config_file: Optional[pathlib.Path] = typer.Option(
        None, "--config-file", "-c", help="Path to the software templates file", envvar=CONFIG_FILE_ENV
    ),
    output_format: str = typer.Option(
        "table", "--format", "-f", help=f"Output format: {', '.join(OUTPUT_FORMATS)}"
    ),
) -> None:
    """Show which provider and CI combinations are enabled."""
    try:
        harness_config = load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    rows: List[Dict[str, Any]] = []
    for name in SCM_PROVIDERS:
        provider = harness_config.provider(name)
        row: Dict[str, Any] = {"provider": name, "active": provider.active, "host": provider.host}
        for ci in CI_BACKENDS:
            row[ci] = harness_config.is_enabled(name, ci)
        rows.append(row)

    if output_format == "table":
        console.print(f"[cyan]Templates:[/cyan] {', '.join(harness_config.templates)}")
        if harness_config.ocp_version:
            console.print(f"[cyan]OpenShift:[/cyan] {harness_config.ocp_version}")

    try:
        format_and_output(rows, output_format, {"title": "Enabled scenarios"})
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
