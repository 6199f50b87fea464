"""Configurações centralizadas do olx_relay.

Uso típico:
    from olx_relay.config import get_settings
"""

from olx_relay.config.settings import (
    DEFAULT_OPERATOR_NAME,
    POLI_API_BASE_URL,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "POLI_API_BASE_URL",
    "DEFAULT_OPERATOR_NAME",
]
