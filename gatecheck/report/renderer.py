"""Rich terminal renderer for run manifests.

Color scheme
------------
- green   : success
- red     : failed
- yellow  : skipped
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gatecheck.models.gates import GateOutcome
from gatecheck.models.manifest import RunManifest

_OUTCOME_LABELS: dict[GateOutcome, str] = {
    GateOutcome.SUCCESS: "[green]PASS[/green]",
    GateOutcome.FAILED: "[bold red]FAIL[/bold red]",
    GateOutcome.SKIPPED: "[yellow]SKIP[/yellow]",
}


class ManifestRenderer:
    """Renders a ``RunManifest`` as a Rich panel.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render(self, manifest: RunManifest) -> Panel:
        table = self._build_result_table(manifest)
        summary = manifest.summary

        parts = [
            f"[bold]Run:[/bold] {manifest.run_id or '-'}",
            f"[bold]Gates:[/bold] {summary.total_gates}",
            f"[green]passed {summary.passed}[/green]",
            f"[red]failed {summary.failed}[/red]",
            f"[yellow]skipped {summary.skipped}[/yellow]",
        ]
        persistence = manifest.component_ids.persistence
        parts.append(f"[bold]Component ids:[/bold] {persistence.reason.value}")
        footer: list[Text] = [Text.from_markup("  |  ".join(parts))]

        bug = manifest.host_bug_suspected
        if bug.detected:
            footer.append(Text.from_markup(
                f"[bold red]Host bug suspected:[/bold red] {escape(bug.classification or '')} "
                f"({bug.plugin}/{bug.gate})"
            ))

        status = "[green]PASSED[/green]" if summary.overall_success else "[bold red]FAILED[/bold red]"
        return Panel(
            Group(table, Text(""), *footer),
            title=f"[bold]gatecheck[/bold] {status}",
            subtitle=f"schema {manifest.schema_version}",
            border_style="green" if summary.overall_success else "red",
            padding=(1, 2),
        )

    def _build_result_table(self, manifest: RunManifest) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Plugin", style="cyan", min_width=10)
        table.add_column("Gate", min_width=10)
        table.add_column("Outcome", justify="center", width=9)
        table.add_column("Code", min_width=12)
        table.add_column("Details", min_width=20)
        table.add_column("ms", justify="right", width=8)

        for result in manifest.results:
            if result.errors:
                details = f"[red]{escape(result.errors[0])}[/red]"
            elif result.skip_reason:
                details = f"[dim]{escape(result.skip_reason)}[/dim]"
            else:
                details = "[dim]-[/dim]"
            unsafe = [k for k, r in result.component_resolution.items() if not r.safe_to_persist]
            if unsafe:
                details += f" [magenta](unsafe to persist: {', '.join(unsafe)})[/magenta]"
            table.add_row(
                result.plugin,
                result.gate,
                _OUTCOME_LABELS[result.outcome],
                result.error_code or "[dim]-[/dim]",
                details,
                str(result.duration_ms) if result.duration_ms is not None else "[dim]-[/dim]",
            )
        return table

    def print_manifest(self, manifest: RunManifest) -> None:
        self.console.print(self.render(manifest))
