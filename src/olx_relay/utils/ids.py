"""Helpers de identificadores seguros para log."""

from __future__ import annotations

import hashlib


def mask_phone(phone_digits: str | None) -> str:
    """Mantém só os 4 últimos dígitos (ex.: "***0000")."""
    digits = phone_digits or ""
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


def log_key(idempotency_key: str) -> str:
    """Hash curto da chave de idempotência (contém telefone)."""
    return hashlib.sha256(idempotency_key.encode("utf-8")).hexdigest()[:12]
