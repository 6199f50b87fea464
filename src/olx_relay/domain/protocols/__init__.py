"""Re-exports dos contratos de domínio usados pela camada Application."""

from __future__ import annotations

from olx_relay.domain.protocols.lead_store import LeadStore
from olx_relay.domain.protocols.rotation_state import RotationState

__all__ = [
    "LeadStore",
    "RotationState",
]
