"""Build the RunContext once, before any gate executes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from gatecheck.config import GateCheckSettings
from gatecheck.core.hasher import compute_instance_key
from gatecheck.core.provenance import resolve_sources
from gatecheck.models.context import (
    ComponentIdPolicy,
    HostFingerprint,
    InstanceKeySource,
    RedactionSelfTestResult,
    RunContext,
)
from gatecheck.models.gates import GateName

logger = logging.getLogger(__name__)


def build_host_fingerprint(
    settings: GateCheckSettings, status: Mapping[str, Any] | None = None
) -> HostFingerprint:
    status = status or {}
    return HostFingerprint(
        url=settings.host_url,
        container_id=settings.container_id,
        container_started_at=settings.container_started_at,
        image_tag=settings.image_tag,
        image_id=settings.image_id,
        image_digest=settings.image_digest,
        reported_version=status.get("version"),
        reported_branch=status.get("branch"),
    )


def build_component_id_policy(settings: GateCheckSettings) -> ComponentIdPolicy:
    if settings.component_ids_instance_key:
        key = settings.component_ids_instance_key
        source = InstanceKeySource.EXPLICIT
    else:
        key = compute_instance_key(settings.host_url, settings.container_id)
        source = InstanceKeySource.COMPUTED
    return ComponentIdPolicy(
        enabled=settings.persist_component_ids,
        path=str(settings.component_ids_path),
        instance_key=key,
        instance_key_source=source,
        lock_policy=settings.lock_policy(),
    )


def build_run_context(
    settings: GateCheckSettings,
    *,
    requested_gates: list[str],
    effective_gates: list[GateName],
    requested_plugins: list[str],
    effective_plugins: list[str],
    host_status: Mapping[str, Any] | None = None,
    redaction_self_test: RedactionSelfTestResult | None = None,
    runner_args: list[str] | None = None,
    diagnostics_skipped: bool = False,
    environ: Mapping[str, str] | None = None,
) -> RunContext:
    """Assemble the immutable context of one run."""
    context = RunContext(
        host=build_host_fingerprint(settings, host_status),
        requested_gates=requested_gates,
        effective_gates=[g.value for g in effective_gates],
        requested_plugins=requested_plugins,
        effective_plugins=effective_plugins,
        sources=resolve_sources(settings.source_repos, environ),
        component_ids=build_component_id_policy(settings),
        redaction_self_test=redaction_self_test or RedactionSelfTestResult(),
        runner_args=runner_args or [],
        diagnostics_skipped=diagnostics_skipped,
    )
    logger.debug(
        "Run context: gates=%s plugins=%s instanceKey=%s",
        context.effective_gates,
        context.effective_plugins,
        context.component_ids.instance_key,
    )
    return context
