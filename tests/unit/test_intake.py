"""Testes da extração do lead a partir do webhook da OLX."""

from __future__ import annotations

import pytest

from olx_relay.application.intake import (
    PHONE_PATHS,
    digits_only,
    first_value,
    parse_lead,
)
from olx_relay.domain.errors import ValidationError


def test_parses_olx_keys() -> None:
    lead = parse_lead(
        {
            "name": "Maria",
            "phoneNumber": "+55 (11) 98888-7777",
            "clientListingId": "AP1234",
            "email": "maria@example.com",
            "cpf": "123.456.789-00",
        }
    )

    assert lead is not None
    assert lead.phone_digits == "5511988887777"
    assert lead.property_code == "AP1234"
    assert lead.cpf == "12345678900"
    assert lead.idempotency_key == "5511988887777:AP1234"


def test_alternative_and_nested_keys() -> None:
    lead = parse_lead(
        {
            "lead": {"id": "olx-77", "name": "Maria", "phone": "11 98888-7777"},
            "listing": {"id": 555},
        }
    )

    assert lead is not None
    assert lead.name == "Maria"
    assert lead.property_code == "555"
    assert lead.idempotency_key == "lead:olx-77"


def test_first_non_empty_candidate_wins() -> None:
    payload = {"phoneNumber": "  ", "phone": {"n": 1}, "telefone": "11 3333-4444"}
    assert first_value(payload, PHONE_PATHS) == "11 3333-4444"


@pytest.mark.parametrize("payload", [{}, {"test": True}, [], "ping", None])
def test_ping_payloads_are_ignored(payload) -> None:
    assert parse_lead(payload) is None


def test_partial_payload_lists_missing_fields() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_lead({"name": "Maria", "phoneNumber": "abc"})

    assert exc_info.value.missing == ["phone", "property_code"]


def test_digits_only() -> None:
    assert digits_only("+55 (11) 9-8888") == "551198888"
    assert digits_only(None) == ""
