"""Modelos de domínio (contratos principais do relay)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from olx_relay.domain.enums import LeadOutcome, PipelineState


class Lead(BaseModel):
    """Lead recebido da OLX, válido apenas durante o request."""

    name: str
    phone_digits: str
    property_code: str
    email: str | None = None
    cpf: str | None = None
    origin_lead_id: str | None = None

    @property
    def idempotency_key(self) -> str:
        """Chave de dedupe: id do lead na origem ou `telefone:código`."""
        if self.origin_lead_id:
            return f"lead:{self.origin_lead_id}"
        return f"{self.phone_digits}:{self.property_code}"


@dataclass(frozen=True, slots=True)
class Contact:
    """Espelho parcial do contato mantido pela Poli."""

    id: str
    name: str | None = None
    phone: str | None = None
    cpf: str | None = None
    email: str | None = None
    assigned_operator_id: str | None = None
    channel_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Operator:
    """Atendente do roster estático; disponibilidade é buscada por request."""

    id: str
    display_name: str
    queues: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class DispatchReceipt:
    """Recibo do envio de template."""

    chat_id: str | None
    message_id: str | None
    success: bool
    send_flag: bool


@dataclass(slots=True)
class PipelineResult:
    """Resultado terminal de uma execução do pipeline."""

    outcome: LeadOutcome
    state: PipelineState
    http_status: int
    detail: str | None = None
    contact_id: str | None = None
    operator_id: str | None = None
    template_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.http_status < 400


class ContactFieldsUpdate(BaseModel):
    """Campos do contato que o relay pode corrigir."""

    name: str | None = None
    cpf: str | None = None
    email: str | None = None

    def as_payload(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value}

    def is_empty(self) -> bool:
        return not self.as_payload()

