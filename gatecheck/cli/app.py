"""Main Typer application: imports and registers all CLI commands.

Entry point: ``gatecheck`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from gatecheck.cli.commands.check_manifest import check_manifest_cmd
from gatecheck.cli.commands.classify import classify_cmd
from gatecheck.cli.commands.run import run_cmd
from gatecheck.cli.commands.self_test import self_test_cmd

app = typer.Typer(
    name="gatecheck",
    help="gatecheck: verify plugin components against a running host.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Run gates for each plugin and write the run manifest.")(run_cmd)
app.command(name="classify", help="Classify host plugin-loading error text.")(classify_cmd)
app.command(name="check-manifest", help="Parse a run manifest of any known version.")(
    check_manifest_cmd
)
app.command(name="self-test", help="Run the redaction self-test.")(self_test_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
