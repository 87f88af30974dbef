"""Plugin targets: what the gate runner needs to know about each plugin."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from gatecheck.models.components import ComponentKind


class PluginTarget(BaseModel):
    """Describes one plugin under test and the components it contributes.

    A plugin that leaves ``indexer_implementation`` unset expects no
    indexer; the Search gate is skipped for it rather than failed.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    indexer_implementation: str | None = None
    download_client_implementation: str | None = None
    import_list_implementation: str | None = None

    # Credential probes: env vars that must be set, and the indexer setting
    # whose value is the path of a token file the host reads.
    credential_env_vars: list[str] = []
    credential_file_field: str | None = None

    # Search/Grab inputs
    search_album_id: int | None = None

    # kind value -> component id remembered from an earlier run
    preferred_ids: dict[str, int] = {}

    # Settings applied when a component has to be created from its schema
    component_settings: dict[str, dict[str, object]] = Field(default_factory=dict)

    def implementation_for(self, kind: ComponentKind) -> str | None:
        return {
            ComponentKind.INDEXER: self.indexer_implementation,
            ComponentKind.DOWNLOAD_CLIENT: self.download_client_implementation,
            ComponentKind.IMPORT_LIST: self.import_list_implementation,
        }[kind]

    @property
    def components(self) -> list[tuple[ComponentKind, str]]:
        """(kind, implementation) pairs this plugin contributes, in ComponentKind order."""
        pairs: list[tuple[ComponentKind, str]] = []
        for kind in ComponentKind:
            implementation = self.implementation_for(kind)
            if implementation:
                pairs.append((kind, implementation))
        return pairs


# Built-in profiles for the streaming and recommendation plugins this
# runner was written for. Override with --plugins-file.
DEFAULT_PLUGIN_TARGETS: list[PluginTarget] = [
    PluginTarget(
        name="Qobuzarr",
        indexer_implementation="Qobuzarr",
        download_client_implementation="QobuzarrDownloadClient",
        credential_env_vars=["QOBUZARR_AUTH_TOKEN"],
    ),
    PluginTarget(
        name="Tidalarr",
        indexer_implementation="Tidalarr",
        download_client_implementation="TidalarrDownloadClient",
        credential_file_field="configPath",
    ),
    PluginTarget(
        name="Brainarr",
        import_list_implementation="Brainarr",
    ),
]

_TARGET_LIST = TypeAdapter(list[PluginTarget])


def load_plugin_targets(path: Path) -> list[PluginTarget]:
    """Load plugin targets from a JSON file (a list of target objects)."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    return _TARGET_LIST.validate_python(raw)


def select_plugin_targets(
    targets: list[PluginTarget], names: list[str] | None
) -> list[PluginTarget]:
    """Filter *targets* to *names* (case-insensitive), keeping *names* order.

    Raises ``KeyError`` for a requested name that has no target.
    """
    if not names:
        return list(targets)
    by_name = {t.name.lower(): t for t in targets}
    selected: list[PluginTarget] = []
    for name in names:
        target = by_name.get(name.lower())
        if target is None:
            raise KeyError(
                f"Unknown plugin {name!r}. Known plugins: {sorted(t.name for t in targets)}"
            )
        if target not in selected:
            selected.append(target)
    return selected
