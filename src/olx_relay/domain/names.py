"""Normalização de nomes de leads (pt-BR).

Usada tanto para gravar o nome no contato quanto para decidir se o nome
já salvo na Poli precisa ser corrigido.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from olx_relay.domain.enums import NameCase

DEFAULT_MINOR_WORDS = frozenset({"da", "de", "do", "das", "dos", "e"})

_ACRONYM = re.compile(r"^[A-Z]{2,4}$")
_WORD = re.compile(r"[^\W\d_]{2}")
_SUBPART_SEPARATORS = re.compile(r"([-'’])")


def _collapse(raw: str | None) -> str:
    return " ".join((raw or "").split())


def _capitalize(token: str) -> str:
    parts = _SUBPART_SEPARATORS.split(token)
    return "".join(part[:1].upper() + part[1:].lower() for part in parts)


def _is_shouting(tokens: list[str]) -> bool:
    """True se todas as palavras (2+ letras seguidas) estão em maiúsculas."""
    words = [token for token in tokens if _WORD.search(token)]
    return bool(words) and all(token == token.upper() for token in words)


def _title_case(tokens: list[str], minor_words: frozenset[str]) -> str:
    # Nome todo em caixa alta não preserva siglas: "JOSE DA SILVA" não é sigla
    keep_acronyms = not _is_shouting(tokens)
    result: list[str] = []
    for index, token in enumerate(tokens):
        if index > 0 and token.lower() in minor_words:
            result.append(token.lower())
        elif keep_acronyms and _ACRONYM.match(token):
            result.append(token)
        else:
            result.append(_capitalize(token))
    return " ".join(result)


def normalize(
    raw: str | None,
    mode: NameCase = NameCase.TITLE,
    minor_words: Iterable[str] = DEFAULT_MINOR_WORDS,
) -> str:
    """Canoniza um nome livre.

    TITLE: capitaliza cada palavra (e cada parte separada por hífen ou
    apóstrofo), mantém minúsculas as preposições de `minor_words` exceto na
    primeira posição e preserva siglas curtas (ex.: "SP") quando o nome não
    está inteiro em maiúsculas.
    """
    collapsed = _collapse(raw)
    if not collapsed:
        return ""
    if mode == NameCase.UPPER:
        return collapsed.upper()
    if mode == NameCase.LOWER:
        return collapsed.lower()
    minor = frozenset(word.lower() for word in minor_words)
    return _title_case(collapsed.split(" "), minor)


def needs_update(current: str | None, desired: str) -> bool:
    """Decide se o nome salvo deve ser sobrescrito por `desired`.

    Nome vazio ou diferente após colapsar espaços pede update. A comparação
    diferencia caixa: "JOÃO SILVA" salvo pede update para "João Silva".
    Nome salvo todo em maiúsculas ou minúsculas só pede update quando difere
    do alvo: nos modos UPPER/LOWER o alvo já tem essa caixa, e forçar o
    update reescreveria o contato a cada lead.
    """
    current_clean = _collapse(current)
    desired_clean = _collapse(desired)
    if not current_clean:
        return bool(desired_clean)
    return current_clean != desired_clean


class NameNormalizer:
    """Normalizador configurado (modo + preposições)."""

    def __init__(
        self,
        mode: NameCase = NameCase.TITLE,
        minor_words: Iterable[str] = DEFAULT_MINOR_WORDS,
    ) -> None:
        self.mode = mode
        self.minor_words = frozenset(word.lower() for word in minor_words)

    def normalize(self, raw: str | None) -> str:
        return normalize(raw, self.mode, self.minor_words)

    def needs_update(self, current: str | None, desired: str) -> bool:
        return needs_update(current, desired)
