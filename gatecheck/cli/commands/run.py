"""``gatecheck run``: run gates against the host and write the manifest.

Exit codes: 0 when every gate passed or was skipped, 1 when any gate
failed, 2 when the run could not be carried out at all.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from gatecheck.cli.logging_setup import configure_logging
from gatecheck.config import GateCheckSettings
from gatecheck.core.errors import HostNotReadyError, RedactionSelfTestError
from gatecheck.core.orchestrator import Orchestrator, write_manifest
from gatecheck.models.gates import GATE_ORDER, GateName
from gatecheck.models.plugins import (
    DEFAULT_PLUGIN_TARGETS,
    PluginTarget,
    load_plugin_targets,
    select_plugin_targets,
)
from gatecheck.report.renderer import ManifestRenderer

console = Console()
logger = logging.getLogger(__name__)

EXIT_FATAL = 2


def parse_gates(values: list[str]) -> list[GateName]:
    """``["search", "all"]`` -> GateName list, order preserved, no duplicates."""
    gates: list[GateName] = []
    for value in values:
        expanded = GATE_ORDER if value.strip().lower() == "all" else [GateName.parse(value)]
        for gate in expanded:
            if gate not in gates:
                gates.append(gate)
    return gates


def _fatal(message: str) -> typer.Exit:
    logger.critical(message)
    console.print(f"[bold red]Fatal:[/bold red] {escape(message)}", highlight=False)
    return typer.Exit(code=EXIT_FATAL)


def run_cmd(
    gate: Optional[List[str]] = typer.Option(
        None,
        "--gate",
        "-g",
        help="Gate to run (schema, configure, search, grab, importlist, all). Repeatable.",
    ),
    plugin: Optional[List[str]] = typer.Option(
        None,
        "--plugin",
        "-p",
        help="Plugin to target. Repeatable; defaults to every known plugin.",
    ),
    plugins_file: Optional[Path] = typer.Option(
        None,
        "--plugins-file",
        help="JSON file with a list of plugin targets.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the manifest JSON instead of the console summary.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the manifest (default: settings.manifest_path).",
    ),
    skip_diagnostics: bool = typer.Option(
        False,
        "--skip-diagnostics",
        help="Do not write a diagnostics bundle; tolerate a failed redaction self-test.",
    ),
    host_url: Optional[str] = typer.Option(None, "--host-url", help="Host base URL."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Host API key."),
) -> None:
    """Run the selected gates for each plugin and write the run manifest."""
    try:
        settings = GateCheckSettings()
    except ValidationError as exc:
        raise _fatal(f"Invalid configuration: {exc}") from exc
    overrides = {
        key: value
        for key, value in (("host_url", host_url), ("api_key", api_key))
        if value
    }
    if overrides:
        settings = settings.model_copy(update=overrides)
    configure_logging(settings.log_level)

    gate_names = list(gate or ["schema"])
    try:
        gates = parse_gates(gate_names)
        targets: list[PluginTarget] = (
            load_plugin_targets(plugins_file) if plugins_file else list(DEFAULT_PLUGIN_TARGETS)
        )
        targets = select_plugin_targets(targets, list(plugin or []))
    except (ValueError, KeyError, OSError) as exc:
        raise _fatal(f"Invalid arguments: {exc}") from exc

    orchestrator = Orchestrator(settings)
    try:
        manifest = orchestrator.run(
            targets,
            gates,
            requested_gate_names=gate_names,
            requested_plugins=list(plugin or []),
            skip_diagnostics=skip_diagnostics,
            runner_args=sys.argv[1:],
        )
    except (RedactionSelfTestError, HostNotReadyError) as exc:
        raise _fatal(str(exc)) from exc

    write_manifest(manifest, output or settings.manifest_path)

    if json_output:
        typer.echo(manifest.to_json())
    else:
        ManifestRenderer(console).print_manifest(manifest)

    raise typer.Exit(code=manifest.exit_code)
