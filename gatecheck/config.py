"""Runner configuration: env-driven via pydantic-settings.

Reads from a .env file and GATECHECK_* environment variables. Container
facts (id, start time, image) are passed in here by whatever started the
host; gatecheck never manages containers itself.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from gatecheck.models.context import LockPolicy, SettingSource


class GateCheckSettings(BaseSettings):
    """Gate runner configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export GATECHECK_HOST_URL=http://lidarr:8686
        export GATECHECK_API_KEY=...
        export GATECHECK_PERSIST_COMPONENT_IDS=true
        export GATECHECK_LOCK_TIMEOUT_SECONDS=30

    Or via .env file::

        GATECHECK_CONTAINER_ID=3f2a9c...
        GATECHECK_IMAGE_TAG=pr-plugins-2.9.6
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GATECHECK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Host API
    host_url: str = "http://localhost:8686"
    api_key: str = ""
    request_timeout_seconds: float = 30.0
    ready_timeout_seconds: float = 120.0
    ready_initial_delay_seconds: float = 1.0
    ready_max_delay_seconds: float = 10.0

    # Gate timing
    poll_interval_seconds: float = 2.0
    search_timeout_seconds: float = 120.0
    grab_timeout_seconds: float = 180.0
    import_list_timeout_seconds: float = 180.0

    # Container fingerprint
    container_id: str | None = None
    container_started_at: str | None = None
    image_tag: str | None = None
    image_id: str | None = None
    image_digest: str | None = None

    # Component-id persistence
    component_ids_path: Path = Path(".gatecheck/component-ids.json")
    persist_component_ids: bool = False
    component_ids_instance_key: str | None = None
    lock_timeout_seconds: float = 10.0
    lock_retry_delay_ms: int = 100
    lock_stale_seconds: float = 300.0

    # Source provenance: repo name -> checkout path.
    # GATECHECK_SOURCE_<NAME>_SHA / _VERSION override what git reports.
    source_repos: dict[str, Path] = {}

    # Output
    manifest_path: Path = Path(".gatecheck/run-manifest.json")
    diagnostics_dir: Path = Path(".gatecheck/diagnostics")
    log_level: str = "INFO"

    def _source_of(self, field_name: str) -> SettingSource:
        return SettingSource.ENV if field_name in self.model_fields_set else SettingSource.DEFAULT

    def lock_policy(self) -> LockPolicy:
        """Lock settings, each tagged with whether it was explicitly set."""
        return LockPolicy(
            timeout_seconds=self.lock_timeout_seconds,
            timeout_source=self._source_of("lock_timeout_seconds"),
            retry_delay_ms=self.lock_retry_delay_ms,
            retry_delay_source=self._source_of("lock_retry_delay_ms"),
            stale_seconds=self.lock_stale_seconds,
            stale_source=self._source_of("lock_stale_seconds"),
        )


# Module-level singleton: import as `from gatecheck.config import settings`
settings = GateCheckSettings()
