"""Component-id persistence: the lock-guarded store and its outcome record.

``ComponentIdStore.persist`` writes safe-to-persist component ids into a
JSON state file keyed by instance key, and reports what happened as a
``PersistenceContext``. ``derive_persistence_outcome`` turns that (possibly
contradictory) claim into the canonical ``PersistenceOutcome``.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from gatecheck.models.components import (
    ComponentResolution,
    PersistenceContext,
    PersistenceOutcome,
    PersistenceReason,
)
from gatecheck.models.context import LockPolicy

logger = logging.getLogger(__name__)

# Reasons a caller may pass through when nothing was written.
_PASS_THROUGH_REASONS: frozenset[PersistenceReason] = frozenset({
    PersistenceReason.LOCK_TIMEOUT,
    PersistenceReason.NO_CHANGES,
    PersistenceReason.IO_ERROR,
})


def derive_persistence_outcome(context: PersistenceContext | None) -> PersistenceOutcome:
    """Derive the canonical persistence outcome.

    Precedence, first applicable wins:

    1. not enabled     -> disabled (whatever else the caller claims)
    2. not eligible    -> not_eligible
    3. wrote           -> written, attempted forced true
    4. otherwise       -> caller's attempted and reason, updated=false
    5. no context      -> unknown
    """
    if context is None:
        return PersistenceOutcome(reason=PersistenceReason.UNKNOWN)

    if not context.enabled:
        return PersistenceOutcome(
            enabled=False,
            eligible=context.eligible,
            reason=PersistenceReason.DISABLED,
        )

    if not context.eligible:
        return PersistenceOutcome(
            enabled=True,
            eligible=False,
            reason=PersistenceReason.NOT_ELIGIBLE,
        )

    if context.wrote:
        return PersistenceOutcome(
            enabled=True,
            eligible=True,
            attempted=True,
            updated=True,
            reason=PersistenceReason.WRITTEN,
        )

    try:
        reason = PersistenceReason(context.reason or PersistenceReason.UNKNOWN.value)
    except ValueError:
        reason = PersistenceReason.UNKNOWN
    if reason not in _PASS_THROUGH_REASONS:
        reason = PersistenceReason.UNKNOWN
    return PersistenceOutcome(
        enabled=True,
        eligible=True,
        attempted=context.attempted,
        updated=False,
        reason=reason,
    )


class LockTimeoutError(TimeoutError):
    """The state-file lock could not be acquired within the lock timeout."""


class ComponentIdStore:
    """JSON state file of component ids, guarded by an exclusive lock file.

    Layout::

        {"instances": {"<instance key>": {"<plugin>": {"indexer": 12, ...}}}}

    The lock is a sibling ``<path>.lock`` created with ``O_EXCL``. A lock
    older than ``stale_seconds`` is taken over.

    Parameters
    ----------
    path:
        The state file.
    policy:
        Lock timeout, retry delay and stale threshold.
    sleep / clock:
        Injectable for tests.
    """

    def __init__(
        self,
        path: Path,
        policy: LockPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.policy = policy or LockPolicy()
        self._sleep = sleep
        self._clock = clock

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """Read the state file. Raises ``ValueError`` when it is not the expected layout."""
        if not self.path.exists():
            return {"instances": {}}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: root is not an object")
        instances = data.setdefault("instances", {})
        if not isinstance(instances, dict):
            raise ValueError(f"{self.path}: \"instances\" is not an object")
        for instance_key, plugins in instances.items():
            if not isinstance(plugins, dict) or not all(
                isinstance(ids, dict) for ids in plugins.values()
            ):
                raise ValueError(f"{self.path}: malformed entry for instance {instance_key!r}")
        return data

    def preferred_ids(self, instance_key: str, plugin: str) -> dict[str, int]:
        """Ids remembered for *plugin* on this instance, or ``{}``."""
        try:
            data = self.load()
        except (OSError, ValueError) as exc:
            logger.warning("Component-id state unreadable (%s); ignoring.", exc)
            return {}
        entry = data["instances"].get(instance_key, {}).get(plugin, {})
        return {
            k: v for k, v in entry.items() if isinstance(v, int) and not isinstance(v, bool)
        }

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def persist(
        self,
        instance_key: str,
        resolutions: Mapping[str, Mapping[str, ComponentResolution]],
        *,
        enabled: bool = True,
    ) -> PersistenceContext:
        """Write every safe-to-persist id under *instance_key*.

        *resolutions* maps plugin name -> component kind -> resolution.
        """
        safe = {
            plugin: {
                kind: r.selected_id
                for kind, r in by_kind.items()
                if r.safe_to_persist and r.selected_id is not None
            }
            for plugin, by_kind in resolutions.items()
        }
        safe = {plugin: ids for plugin, ids in safe.items() if ids}
        path = str(self.path)

        if not enabled:
            return PersistenceContext(enabled=False, eligible=bool(safe), path=path)
        if not safe:
            return PersistenceContext(enabled=True, eligible=False, path=path)

        try:
            self._acquire_lock()
        except LockTimeoutError:
            logger.warning(
                "Component-id lock %s not acquired within %.1fs.",
                self.lock_path,
                self.policy.timeout_seconds,
            )
            return PersistenceContext(
                enabled=True, eligible=True, attempted=True,
                reason=PersistenceReason.LOCK_TIMEOUT.value, path=path,
            )
        except OSError as exc:
            logger.warning("Component-id lock error: %s", exc)
            return PersistenceContext(
                enabled=True, eligible=True, attempted=True,
                reason=PersistenceReason.IO_ERROR.value, path=path,
            )

        try:
            data = self.load()
            instance = data["instances"].setdefault(instance_key, {})
            changed = False
            for plugin, ids in safe.items():
                current = instance.setdefault(plugin, {})
                for kind, component_id in ids.items():
                    if current.get(kind) != component_id:
                        current[kind] = component_id
                        changed = True
            if not changed:
                return PersistenceContext(
                    enabled=True, eligible=True, attempted=True,
                    reason=PersistenceReason.NO_CHANGES.value, path=path,
                )
            self._write_atomic(data)
        except (OSError, ValueError) as exc:
            logger.warning("Component-id state write failed: %s", exc)
            return PersistenceContext(
                enabled=True, eligible=True, attempted=True,
                reason=PersistenceReason.IO_ERROR.value, path=path,
            )
        finally:
            self._release_lock()

        logger.info("Persisted component ids for %s to %s.", sorted(safe), self.path)
        return PersistenceContext(
            enabled=True, eligible=True, attempted=True, wrote=True,
            reason=PersistenceReason.WRITTEN.value, path=path,
        )

    def _write_atomic(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # Lock
    # ------------------------------------------------------------------

    def _acquire_lock(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        deadline = self._clock() + self.policy.timeout_seconds
        delay = self.policy.retry_delay_ms / 1000.0
        while True:
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._lock_is_stale():
                    logger.warning("Taking over stale lock %s.", self.lock_path)
                    self.lock_path.unlink(missing_ok=True)
                    continue
                if self._clock() >= deadline:
                    raise LockTimeoutError(str(self.lock_path)) from None
                self._sleep(delay)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(f"{os.getpid()} {self._clock()}\n")
            return

    def _lock_is_stale(self) -> bool:
        try:
            age = self._clock() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return False
        return age > self.policy.stale_seconds

    def _release_lock(self) -> None:
        self.lock_path.unlink(missing_ok=True)
