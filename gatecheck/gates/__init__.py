"""Gate handlers: registry mapping GateName to gate class.

Usage::

    from gatecheck.gates import GATE_REGISTRY, get_gate

    gate = get_gate(GateName.SEARCH, client, settings)
    result = gate.run_gate(target, prior)
"""

from __future__ import annotations

from typing import Any

from gatecheck.gates.base import BaseGate
from gatecheck.gates.configure import ConfigureGate
from gatecheck.gates.grab import GrabGate
from gatecheck.gates.import_list import ImportListGate
from gatecheck.gates.schema import SchemaGate
from gatecheck.gates.search import SearchGate
from gatecheck.models.gates import GateName

GATE_REGISTRY: dict[GateName, type[BaseGate]] = {
    GateName.SCHEMA: SchemaGate,
    GateName.CONFIGURE: ConfigureGate,
    GateName.SEARCH: SearchGate,
    GateName.GRAB: GrabGate,
    GateName.IMPORT_LIST: ImportListGate,
}


def get_gate(gate: GateName, *args: Any, **kwargs: Any) -> BaseGate:
    """Instantiate the handler for *gate*; extra arguments go to its constructor.

    Raises ``KeyError`` if no handler is registered.
    """
    try:
        cls = GATE_REGISTRY[gate]
    except KeyError:
        raise KeyError(
            f"Unknown gate {gate!r}. Registered gates: {[g.value for g in GATE_REGISTRY]}"
        ) from None
    return cls(*args, **kwargs)


__all__ = [
    "BaseGate",
    "GATE_REGISTRY",
    "get_gate",
    "SchemaGate",
    "ConfigureGate",
    "SearchGate",
    "GrabGate",
    "ImportListGate",
]
