"""Read-only credential probes.

A plugin whose credentials are absent cannot search. The probes report
what is missing; the Search gate turns that into a ``ConfigError`` skip.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path


class CredentialProbe:
    """Checks environment variables and token files.

    Parameters
    ----------
    environ:
        Mapping to read variables from. Defaults to ``os.environ``.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def missing_env_vars(self, names: list[str]) -> list[str]:
        """Names from *names* that are unset or blank, in order."""
        return [n for n in names if not (self._environ.get(n) or "").strip()]

    def file_exists(self, path: str | None) -> bool:
        if not path or not str(path).strip():
            return False
        return Path(path).expanduser().is_file()
