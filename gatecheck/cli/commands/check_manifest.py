"""``gatecheck check-manifest PATH``: read a manifest of any known version."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from gatecheck.core.errors import ManifestVersionError
from gatecheck.core.manifest_schema import load_manifest
from gatecheck.report.renderer import ManifestRenderer

console = Console()


def check_manifest_cmd(
    path: Path = typer.Argument(..., help="Run manifest JSON file."),
    json_output: bool = typer.Option(
        False, "--json", help="Print the manifest upgraded to the current schema."
    ),
) -> None:
    """Parse and upgrade a manifest, print its summary, exit 1 on recorded failures."""
    if not path.exists():
        console.print(f"[bold red]Manifest not found:[/bold red] {path}")
        raise typer.Exit(code=2)
    try:
        manifest = load_manifest(path)
    except (ManifestVersionError, ValidationError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Unreadable manifest:[/bold red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=2) from exc

    if json_output:
        typer.echo(manifest.to_json())
    else:
        ManifestRenderer(console).print_manifest(manifest)
    raise typer.Exit(code=manifest.exit_code)
