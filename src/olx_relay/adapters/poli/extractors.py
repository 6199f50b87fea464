"""Estratégias de extração sobre respostas da API Poli.

A API devolve formatos inconsistentes (`{data: {...}}`, `{data: {data: {...}}}`,
objeto cru, ids em caminhos diferentes em erros). Cada estratégia é uma
função pura corpo → valor opcional; a primeira não-nula vence.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from olx_relay.domain.models import Contact, DispatchReceipt

IdStrategy = Callable[[Any], str | None]

_TRUE_STRINGS = frozenset({"1", "true", "yes", "sim", "online", "available", "disponivel"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "nao", "não", "offline", "unavailable"})


def dig(body: Any, *path: str) -> Any:
    """Percorre chaves aninhadas; None se algum nível não for dict."""
    current = body
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def as_id(value: Any) -> str | None:
    """Normaliza ids numéricos/string; vazio, 0 e bool viram None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value else None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped and stripped != "0" else None
    return None


def as_flag(value: Any) -> bool | None:
    """Interpreta booleanos "à moda Poli" (1, "true", "online"...)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def path_id(*path: str) -> IdStrategy:
    """Estratégia que lê um id no caminho indicado."""

    def _strategy(body: Any) -> str | None:
        return as_id(dig(body, *path))

    return _strategy


def first_match(strategies: Iterable[IdStrategy], body: Any) -> str | None:
    for strategy in strategies:
        found = strategy(body)
        if found:
            return found
    return None


# Criação bem-sucedida
CREATED_CONTACT_ID: Sequence[IdStrategy] = (
    path_id("data", "data", "id"),
    path_id("data", "id"),
    path_id("id"),
    path_id("contact", "id"),
)

# Erro de "contato já existe": o id vem em caminhos variados
CONFLICT_CONTACT_ID: Sequence[IdStrategy] = (
    path_id("data", "data", "id"),
    path_id("data", "id"),
    path_id("id"),
    path_id("contact", "id"),
    path_id("contact_id"),
    path_id("data", "contact_id"),
    path_id("errors", "contact_id"),
)

ASSIGNED_OPERATOR_ID: Sequence[IdStrategy] = (
    path_id("user_id"),
    path_id("userId"),
    path_id("user", "id"),
)


def unwrap(body: Any) -> Any:
    """Remove até dois níveis de `data` (`{data: {data: {...}}}`)."""
    for _ in range(2):
        inner = body.get("data") if isinstance(body, dict) else None
        if not isinstance(inner, dict):
            break
        body = inner
    return body


def contact_layer(body: Any, contact_id: str | None = None) -> Any:
    """Escolhe o nível do corpo que representa o contato.

    Tenta `data.data`, depois `data`, depois o corpo cru. Vence o nível cujo
    `id` é o contato consultado; sem esse casamento, o primeiro que carrega
    `id`. Assim um campo customizado `data` dentro do contato não é
    confundido com envelope. Sem `id` em nenhum nível, usa o mais raso que
    seja objeto.
    """
    if not isinstance(body, dict):
        return body
    layers: list[dict[str, Any]] = []
    data = body.get("data")
    if isinstance(data, dict):
        nested = data.get("data")
        if isinstance(nested, dict):
            layers.append(nested)
        layers.append(data)
    layers.append(body)
    if contact_id:
        for layer in layers:
            if as_id(layer.get("id")) == contact_id:
                return layer
    for layer in layers:
        if as_id(layer.get("id")):
            return layer
    return data if isinstance(data, dict) else body


def _channel_ids(raw: dict[str, Any]) -> tuple[str, ...]:
    channels: list[str] = []
    for key in ("externals", "external_channels", "channels"):
        entries = raw.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if isinstance(entry, dict):
                channel_id = as_id(entry.get("channel_id")) or as_id(entry.get("id"))
            else:
                channel_id = as_id(entry)
            if channel_id and channel_id not in channels:
                channels.append(channel_id)
    return tuple(channels)


def _text(raw: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = raw.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_contact(body: Any, fallback_id: str) -> Contact | None:
    """Converte o corpo de get-contact em Contact (None se não for objeto)."""
    raw = contact_layer(body, fallback_id)
    if not isinstance(raw, dict):
        return None
    return Contact(
        id=as_id(raw.get("id")) or fallback_id,
        name=_text(raw, "name"),
        phone=_text(raw, "phone", "phone_number"),
        cpf=_text(raw, "cpf", "document"),
        email=_text(raw, "email"),
        assigned_operator_id=first_match(ASSIGNED_OPERATOR_ID, raw),
        channel_ids=_channel_ids(raw),
    )


def parse_receipt(body: Any) -> DispatchReceipt:
    """Extrai o recibo do envio de template.

    Flags ausentes contam como verdadeiras: só um `false` explícito marca
    o envio como recusado.
    """
    layers = [body, unwrap(body)] if isinstance(body, dict) else []

    def _flag(key: str) -> bool:
        for layer in layers:
            if isinstance(layer, dict) and key in layer:
                parsed = as_flag(layer[key])
                if parsed is not None:
                    return parsed
        return True

    def _first_id(*paths: tuple[str, ...]) -> str | None:
        for layer in layers:
            for path in paths:
                found = as_id(dig(layer, *path))
                if found:
                    return found
        return None

    return DispatchReceipt(
        chat_id=_first_id(("chat_id",), ("chat", "id")),
        message_id=_first_id(("message_id",), ("message", "id"), ("id",)),
        success=_flag("success"),
        send_flag=_flag("send"),
    )


def parse_available_operators(body: Any) -> frozenset[str] | None:
    """Ids de usuários marcados como disponíveis/online.

    None quando o corpo não tem formato de lista de usuários.
    """
    users = body
    if isinstance(body, dict):
        users = body.get("data", body.get("users"))
        if isinstance(users, dict):
            users = users.get("data", users.get("users"))
    if not isinstance(users, list):
        return None

    available: set[str] = set()
    for user in users:
        if not isinstance(user, dict):
            continue
        user_id = as_id(user.get("id")) or as_id(user.get("user_id"))
        if not user_id:
            continue
        for key in ("available", "is_available", "online", "is_online", "status"):
            flag = as_flag(user.get(key))
            if flag is not None:
                if flag:
                    available.add(user_id)
                break
    return frozenset(available)
