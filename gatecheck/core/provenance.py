"""Source provenance: which revision of each source repo a run exercised.

Lookup order per repo: ``GATECHECK_SOURCE_<NAME>_SHA`` / ``_VERSION``
environment variables, then ``git`` in the checkout, else unknown.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping
from pathlib import Path

from gatecheck.models.context import SourceOrigin, SourceProvenance

logger = logging.getLogger(__name__)

ENV_PREFIX = "GATECHECK_SOURCE_"


def _env_name(repo: str, suffix: str) -> str:
    return f"{ENV_PREFIX}{re.sub(r'[^A-Za-z0-9]+', '_', repo).upper()}_{suffix}"


def _git(args: list[str], cwd: Path) -> str | None:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("git %s in %s failed: %s", " ".join(args), cwd, exc)
        return None
    out = (proc.stdout or "").strip()
    return out if proc.returncode == 0 and out else None


def resolve_source(
    name: str,
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> SourceProvenance:
    env = os.environ if environ is None else environ
    sha = env.get(_env_name(name, "SHA")) or None
    version = env.get(_env_name(name, "VERSION")) or None
    if sha:
        return SourceProvenance(name=name, sha=sha, version=version, origin=SourceOrigin.ENV)

    if path is not None and Path(path).is_dir():
        sha = _git(["rev-parse", "HEAD"], Path(path))
        if sha:
            version = version or _git(["describe", "--tags", "--always"], Path(path))
            return SourceProvenance(name=name, sha=sha, version=version, origin=SourceOrigin.GIT)

    return SourceProvenance(name=name, version=version, origin=SourceOrigin.UNKNOWN)


def resolve_sources(
    repos: Mapping[str, Path],
    environ: Mapping[str, str] | None = None,
) -> list[SourceProvenance]:
    """Provenance for every configured repo, sorted by name."""
    return [resolve_source(name, repos[name], environ) for name in sorted(repos)]
