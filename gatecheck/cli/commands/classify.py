"""``gatecheck classify``: classify host error text.

Prints the load-failure classification and the E2E error code for the
given lines (or stdin when none are given).
"""

from __future__ import annotations

import json
import sys
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from gatecheck.core.classifier import classify_failure
from gatecheck.core.error_codes import classify_error_code

console = Console()


def classify_cmd(
    errors: Optional[List[str]] = typer.Argument(
        None, help="Error lines to classify. Reads stdin when omitted."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print JSON."),
) -> None:
    """Classify error text against the failure and error-code tables."""
    lines = list(errors or [])
    if not lines:
        lines = [line for line in sys.stdin.read().splitlines() if line.strip()]

    result = classify_failure(lines)
    code = classify_error_code(lines)

    if json_output:
        payload = result.model_dump(mode="json", by_alias=True)
        payload["errorCode"] = code.value if code else None
        typer.echo(json.dumps(payload, indent=2))
        return

    if not result.detected:
        body = "[dim]No load-failure rule matched.[/dim]"
    else:
        body = "\n".join([
            f"[bold]Classification:[/bold] {result.classification}",
            f"[bold]Severity:[/bold]       {result.severity}",
            f"[bold]Matched line:[/bold]   {escape(result.matched_line or '')}",
        ])
    body += f"\n[bold]Error code:[/bold]     {code.value if code else '-'}"
    console.print(Panel(body, title="[bold]classify[/bold]", border_style="cyan"))
