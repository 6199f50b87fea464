"""Testes da normalização de nomes."""

from __future__ import annotations

import pytest

from olx_relay.domain.enums import NameCase
from olx_relay.domain.names import NameNormalizer, needs_update, normalize


class TestNormalizeTitle:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("joão da silva", "João da Silva"),
            ("JOÃO DA SILVA", "João da Silva"),
            ("  maria   dos  santos ", "Maria dos Santos"),
            ("de souza", "De Souza"),
            ("ana e pedro", "Ana e Pedro"),
            ("ana-clara d'ávila", "Ana-Clara D'Ávila"),
            ("joão da silva MG", "João da Silva MG"),
        ],
    )
    def test_examples(self, raw: str, expected: str) -> None:
        assert normalize(raw) == expected

    def test_all_caps_name_does_not_keep_acronyms(self) -> None:
        assert normalize("JOSE DA LUZ") == "Jose da Luz"

    def test_custom_minor_words(self) -> None:
        assert normalize("carlos van dijk", minor_words={"van"}) == "Carlos van Dijk"

    def test_empty_input(self) -> None:
        assert normalize("") == ""
        assert normalize(None) == ""
        assert normalize("   ") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "joão da silva",
            "JOÃO DA SILVA",
            "de souza",
            "imóvel em SP",
            "ANA-CLARA D'ÁVILA",
            "o'neil mc DONALD",
            "RJ",
            "e",
            "josé 2º",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize(raw)
        assert normalize(once) == once


class TestOtherModes:
    def test_upper(self) -> None:
        assert normalize("joão  da silva", NameCase.UPPER) == "JOÃO DA SILVA"

    def test_lower(self) -> None:
        assert normalize("João DA Silva", NameCase.LOWER) == "joão da silva"


class TestNeedsUpdate:
    def test_empty_current_needs_update(self) -> None:
        assert needs_update("", "João da Silva") is True
        assert needs_update(None, "João da Silva") is True

    def test_equal_after_whitespace_collapse(self) -> None:
        assert needs_update("João  da Silva ", "João da Silva") is False

    def test_uppercase_current_needs_update(self) -> None:
        assert needs_update("JOÃO DA SILVA", "João da Silva") is True

    def test_lowercase_current_needs_update(self) -> None:
        assert needs_update("joão da silva", "João da Silva") is True

    def test_upper_mode_does_not_loop(self) -> None:
        assert needs_update("JOÃO DA SILVA", "JOÃO DA SILVA") is False

    def test_lower_mode_does_not_loop(self) -> None:
        normalizer = NameNormalizer(NameCase.LOWER)
        desired = normalizer.normalize("João  da Silva")
        assert normalizer.needs_update("joão da silva", desired) is False

    def test_different_name_needs_update(self) -> None:
        assert needs_update("Maria", "João da Silva") is True

    def test_nothing_to_write(self) -> None:
        assert needs_update("", "") is False


def test_normalizer_uses_configured_mode() -> None:
    normalizer = NameNormalizer(NameCase.TITLE, ["da"])
    assert normalizer.normalize("paulo DA costa") == "Paulo da Costa"
    assert normalizer.needs_update("paulo da costa", "Paulo da Costa") is True
