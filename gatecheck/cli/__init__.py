"""gatecheck CLI: Typer-based command-line interface.

Provides the ``gatecheck`` command with subcommands for running gates,
classifying host errors, checking manifests and running the redaction
self-test.

All output uses Rich for formatted terminal display.
"""
