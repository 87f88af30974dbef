"""Component resolution: decide whether a discovered component id is safe to persist.

A component id may be written back to durable configuration only when we
know *how* it was found, it exists, and it is the only candidate. Any
single violation forces ``safe_to_persist=False``; a good strategy never
overrides a missing id or multiple candidates.

Nothing here raises. Absent or malformed input resolves toward the
conservative outcome (``matched_on=none``, ``safe_to_persist=False``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from gatecheck.models.components import ComponentKind, ComponentResolution, MatchedOn
from gatecheck.models.fields import coerce_array
from gatecheck.core.keys import to_lower_camel

# Normalized strategy -> matchedOn. Anything else, including "updated"
# (an action outcome, not a selection) and "ambiguous:*", maps to NONE.
_STRATEGY_MAP: dict[str, MatchedOn] = {
    "preferredid": MatchedOn.PREFERRED_ID,
    "implementationname": MatchedOn.IMPLEMENTATION_NAME,
    "implementation": MatchedOn.IMPLEMENTATION,
    "created": MatchedOn.CREATED,
}

_INTEGER_RE = re.compile(r"-?[0-9]+")


def normalize_strategy(raw_strategy: Any) -> MatchedOn:
    """Map a free-text strategy to ``MatchedOn``, case-insensitively."""
    if not isinstance(raw_strategy, str):
        return MatchedOn.NONE
    normalized = raw_strategy.strip().lower()
    if normalized.startswith("ambiguous"):
        return MatchedOn.NONE
    return _STRATEGY_MAP.get(normalized, MatchedOn.NONE)


def coerce_component_id(value: Any) -> int | None:
    """Coerce a selected/candidate id to ``int``; ``None`` when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_RE.fullmatch(text):
            return int(text)
    return None


def _coerce_candidates(raw_candidates: list[Any]) -> list[int]:
    ids: list[int] = []
    for raw in raw_candidates:
        coerced = coerce_component_id(raw)
        if coerced is not None and coerced not in ids:
            ids.append(coerced)
    return ids


def resolve_component(
    raw_strategy: Any,
    selected_id: Any,
    candidate_ids: Iterable[Any] | Any = None,
) -> ComponentResolution:
    """Resolve raw facts into a normalized ``ComponentResolution``."""
    matched_on = normalize_strategy(raw_strategy)
    selected = coerce_component_id(selected_id)
    # Unparseable candidates still count: the host reported them.
    raw_candidates = [c for c in coerce_array(candidate_ids) if c is not None]
    candidates = _coerce_candidates(raw_candidates)

    if selected is None:
        matched_on = MatchedOn.NONE

    safe = (
        matched_on != MatchedOn.NONE
        and selected is not None
        and len(raw_candidates) <= 1
    )
    return ComponentResolution(
        selected_id=selected,
        candidate_ids=candidates,
        strategy=raw_strategy if isinstance(raw_strategy, str) else None,
        matched_on=matched_on,
        safe_to_persist=safe,
    )


# Raw detail shapes that carry resolution facts, newest first.
_RESOLUTION_DETAIL_KEYS: tuple[str, ...] = ("components", "componentResolution")

_KIND_ALIASES: dict[str, ComponentKind] = {
    "indexer": ComponentKind.INDEXER,
    "downloadClient": ComponentKind.DOWNLOAD_CLIENT,
    "downloadclient": ComponentKind.DOWNLOAD_CLIENT,
    "importList": ComponentKind.IMPORT_LIST,
    "importlist": ComponentKind.IMPORT_LIST,
}


def resolve_components(details: Mapping[str, Any] | None) -> dict[str, ComponentResolution]:
    """Derive per-kind resolutions from a gate's detail map.

    Accepts ``{"components": {"indexer": {"strategy": ..., "selectedId": ...,
    "candidateIds": [...]}}}`` and the older ``componentResolution`` shape.
    Keys are matched after lowerCamelCase normalization, so ``selected_id``
    and ``SelectedId`` work too.
    """
    if not isinstance(details, Mapping):
        return {}

    raw_block: Any = None
    for key in _RESOLUTION_DETAIL_KEYS:
        for detail_key, value in details.items():
            if to_lower_camel(str(detail_key)) == key:
                raw_block = value
                break
        if raw_block is not None:
            break
    if not isinstance(raw_block, Mapping):
        return {}

    resolutions: dict[str, ComponentResolution] = {}
    for raw_kind, facts in raw_block.items():
        kind = _KIND_ALIASES.get(to_lower_camel(str(raw_kind)))
        if kind is None or not isinstance(facts, Mapping):
            continue
        normalized = {to_lower_camel(str(k)): v for k, v in facts.items()}
        resolutions[kind.value] = resolve_component(
            normalized.get("strategy"),
            normalized.get("selectedId"),
            normalized.get("candidateIds"),
        )
    return resolutions


def has_ambiguous_resolution(resolutions: Mapping[str, ComponentResolution]) -> bool:
    return any(len(r.candidate_ids) > 1 for r in resolutions.values())
