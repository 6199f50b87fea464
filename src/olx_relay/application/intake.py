"""Extração defensiva do lead a partir do JSON do webhook da OLX.

O payload chega com nomes de chave variados conforme a integração. Cada
campo lógico tem uma lista ordenada de caminhos candidatos; o primeiro
valor não vazio vence.
"""

from __future__ import annotations

import re
from typing import Any

from olx_relay.domain.errors import ValidationError
from olx_relay.domain.models import Lead
from olx_relay.observability.logging import get_logger

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"\D+")

NAME_PATHS: tuple[tuple[str, ...], ...] = (
    ("name",),
    ("leadName",),
    ("fullName",),
    ("nome",),
    ("contact", "name"),
    ("lead", "name"),
)

PHONE_PATHS: tuple[tuple[str, ...], ...] = (
    ("phoneNumber",),
    ("phone",),
    ("telefone",),
    ("cellphone",),
    ("contact", "phone"),
    ("lead", "phone"),
)

PROPERTY_CODE_PATHS: tuple[tuple[str, ...], ...] = (
    ("clientListingId",),
    ("listId",),
    ("adId",),
    ("propertyCode",),
    ("codigo",),
    ("listing", "id"),
    ("ad", "id"),
)

EMAIL_PATHS: tuple[tuple[str, ...], ...] = (
    ("email",),
    ("contact", "email"),
    ("lead", "email"),
)

CPF_PATHS: tuple[tuple[str, ...], ...] = (
    ("cpf",),
    ("document",),
    ("contact", "cpf"),
)

ORIGIN_LEAD_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("leadId",),
    ("lead_id",),
    ("lead", "id"),
)


def _lookup(payload: dict[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def first_value(payload: dict[str, Any], paths: tuple[tuple[str, ...], ...]) -> str | None:
    """Primeiro valor escalar não vazio entre os caminhos, como string."""
    for path in paths:
        value = _lookup(payload, path)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def digits_only(raw: str | None) -> str:
    return _NON_DIGITS.sub("", raw or "")


def parse_lead(payload: Any) -> Lead | None:
    """Converte o payload em Lead.

    Returns:
        None para pings/testes da OLX (nenhum campo identificador presente)

    Raises:
        ValidationError: payload parcial (falta nome, telefone ou código)
    """
    if not isinstance(payload, dict):
        return None

    name = first_value(payload, NAME_PATHS)
    phone = digits_only(first_value(payload, PHONE_PATHS))
    property_code = first_value(payload, PROPERTY_CODE_PATHS)

    if not (name or phone or property_code):
        logger.info("lead_ping_ignored", extra={"keys": sorted(payload)[:10]})
        return None

    missing = [
        field
        for field, value in (("name", name), ("phone", phone), ("property_code", property_code))
        if not value
    ]
    if missing:
        raise ValidationError(missing)

    cpf = digits_only(first_value(payload, CPF_PATHS)) or None
    return Lead(
        name=name,
        phone_digits=phone,
        property_code=property_code,
        email=first_value(payload, EMAIL_PATHS),
        cpf=cpf,
        origin_lead_id=first_value(payload, ORIGIN_LEAD_ID_PATHS),
    )
