"""Enums de domínio do pipeline de leads."""

from __future__ import annotations

from enum import StrEnum


class PipelineState(StrEnum):
    """Estados percorridos por um lead dentro do orquestrador."""

    RECEIVED = "RECEIVED"
    DEDUPLICATING = "DEDUPLICATING"
    CONTACT_RESOLVING = "CONTACT_RESOLVING"
    OPERATOR_ASSIGNING = "OPERATOR_ASSIGNING"
    TEMPLATE_SELECTING = "TEMPLATE_SELECTING"
    COOLDOWN_CHECKING = "COOLDOWN_CHECKING"
    DISPATCHING = "DISPATCHING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LeadOutcome(StrEnum):
    """Resultados terminais devolvidos ao chamador do webhook."""

    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IN_PROGRESS = "in_progress"
    SUPPRESSED = "suppressed"
    IGNORED = "ignored"
    INVALID = "invalid"
    FAILED = "failed"


class BeginStatus(StrEnum):
    """Resposta do store ao tentar iniciar o processamento de uma chave."""

    ACCEPTED = "accepted"
    ALREADY_DONE = "already_done"
    ALREADY_INFLIGHT = "already_inflight"


class NameCase(StrEnum):
    """Modos de caixa aplicados ao nome do lead."""

    TITLE = "title"
    UPPER = "upper"
    LOWER = "lower"


class SelectionStrategy(StrEnum):
    """Estratégias de escolha de operador dentro de uma fila."""

    ROUND_ROBIN = "round_robin"
    FAIR_SHARE = "fair_share"
