# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""GitOps manifest commands for image promotion between environments."""

import pathlib
import sys
from typing import Optional

import typer
from rich.console import Console

from tssc_e2e.core.errors import ImageNotFoundError
from tssc_e2e.core.promotion import extract_image, promote

console = Console()

gitops_app = typer.Typer(help="Inspect and patch GitOps deployment manifests")


def _read_manifest(path: pathlib.Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error: Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)


@gitops_app.command("extract-image")
def extract_image_command(
    manifest: pathlib.Path = typer.Argument(..., help="Deployment patch to read"),
) -> None:
    """Print the image of the first '- image:' line of a manifest."""
    try:
        image = extract_image(_read_manifest(manifest))
    except ImageNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print(image, file=sys.stdout)


@gitops_app.command("promote")
def promote_command(
    source: pathlib.Path = typer.Argument(..., help="Manifest of the environment to promote from"),
    target: pathlib.Path = typer.Argument(..., help="Manifest of the environment to promote to"),
    image: Optional[str] = typer.Option(
        None, "--image", "-i", help="Image to promote instead of the one found in SOURCE"
    ),
    in_place: bool = typer.Option(False, "--in-place", help="Write the result back to TARGET"),
) -> None:
    """Copy the image of SOURCE into TARGET.

    Only the first image line of TARGET changes; every other line stays
    byte-identical. The result goes to stdout unless --in-place is given.
    """
    source_text = _read_manifest(source)
    target_text = _read_manifest(target)

    try:
        promoted = promote(source_text, target_text, image=image)
    except ImageNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if in_place:
        target.write_text(promoted, encoding="utf-8")
        console.print(f"[green]✓ Promoted image written to {target}[/green]")
    else:
        sys.stdout.write(promoted)
