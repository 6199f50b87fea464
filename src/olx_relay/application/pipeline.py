"""Orquestrador do lead: OLX → contato Poli → operador → template.

Máquina de estados (um lead por request, etapas estritamente sequenciais):

    RECEIVED → DEDUPLICATING → CONTACT_RESOLVING → (OPERATOR_ASSIGNING)
      → TEMPLATE_SELECTING → COOLDOWN_CHECKING → DISPATCHING → COMPLETED | FAILED

Regras:
- Payload incompleto: 400, nada gravado no store
- Chave já concluída: 200 duplicate; chave em andamento: 202
- Contato com operador já atribuído nunca é redistribuído
- Template repetido para o mesmo contato dentro do cooldown: 200 suppressed
- Qualquer falha a partir de CONTACT_RESOLVING libera a chave (redelivery
  do webhook reprocessa o lead)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from olx_relay.adapters.poli.availability import OperatorAvailabilityClient
from olx_relay.adapters.poli.client import PoliClient
from olx_relay.application.intake import digits_only, parse_lead
from olx_relay.domain.enums import BeginStatus, LeadOutcome, PipelineState
from olx_relay.domain.errors import (
    ConfigurationError,
    RelayError,
    StoreError,
    UpstreamError,
    ValidationError,
)
from olx_relay.domain.models import Contact, ContactFieldsUpdate, Lead, PipelineResult
from olx_relay.domain.names import NameNormalizer
from olx_relay.domain.operator_selection import OperatorSelector
from olx_relay.domain.protocols.lead_store import LeadStore
from olx_relay.domain.schedule import ScheduleEvaluator
from olx_relay.observability.logging import get_logger
from olx_relay.observability.timing import timed
from olx_relay.utils.ids import log_key, mask_phone

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class _Progress:
    """Estado corrente de uma execução (para log e decisão de release)."""

    state: PipelineState = PipelineState.RECEIVED
    key: str | None = None
    contact_id: str | None = None
    operator_id: str | None = None


class LeadPipeline:
    """Pipeline de um lead da OLX até o template de boas-vindas na Poli.

    Todas as dependências com estado (store, rodízio, clientes) são
    injetadas; a construção a partir de Settings fica em
    `application.factory.build_lead_pipeline`.
    """

    def __init__(
        self,
        *,
        crm: PoliClient,
        store: LeadStore,
        selector: OperatorSelector,
        schedule: ScheduleEvaluator,
        names: NameNormalizer,
        default_channel_id: str,
        availability: OperatorAvailabilityClient | None = None,
        cooldown_seconds: float | None = None,
        config_check: Callable[[], list[str]] | None = None,
    ) -> None:
        self._crm = crm
        self._store = store
        self._selector = selector
        self._schedule = schedule
        self._names = names
        self._default_channel_id = default_channel_id
        self._availability = availability
        self._cooldown_seconds = cooldown_seconds
        self._config_check = config_check

    async def process(self, payload: Any) -> PipelineResult:
        """Executa o pipeline completo; nunca levanta para o chamador."""
        progress = _Progress()

        if self._config_check is not None:
            errors = self._config_check()
            if errors:
                logger.error("relay_configuration_invalid", extra={"errors": errors})
                return self._failed(progress, 500, "configuration_error")

        try:
            lead = parse_lead(payload)
        except ValidationError as exc:
            logger.warning("lead_invalid", extra={"missing": exc.missing})
            return PipelineResult(
                outcome=LeadOutcome.INVALID,
                state=PipelineState.FAILED,
                http_status=400,
                detail="missing_fields",
                extra={"missing": exc.missing},
            )
        if lead is None:
            return PipelineResult(
                outcome=LeadOutcome.IGNORED,
                state=PipelineState.COMPLETED,
                http_status=200,
                detail="no_lead_fields",
            )

        logger.info(
            "lead_received",
            extra={
                "lead_key": log_key(lead.idempotency_key),
                "phone": mask_phone(lead.phone_digits),
                "property_code": lead.property_code,
            },
        )

        progress.state = PipelineState.DEDUPLICATING
        try:
            begin = self._store.try_begin(lead.idempotency_key)
        except StoreError:
            return self._failed(progress, 500, "store_unavailable")

        if begin == BeginStatus.ALREADY_DONE:
            logger.info(
                "lead_duplicate_skipped",
                extra={"lead_key": log_key(lead.idempotency_key), "status": begin.value},
            )
            return PipelineResult(
                outcome=LeadOutcome.DUPLICATE,
                state=PipelineState.COMPLETED,
                http_status=200,
                detail="already_processed",
            )
        if begin == BeginStatus.ALREADY_INFLIGHT:
            logger.info(
                "lead_duplicate_skipped",
                extra={"lead_key": log_key(lead.idempotency_key), "status": begin.value},
            )
            return PipelineResult(
                outcome=LeadOutcome.IN_PROGRESS,
                state=PipelineState.COMPLETED,
                http_status=202,
                detail="processing",
            )

        progress.key = lead.idempotency_key
        try:
            return await self._run(lead, progress)
        except ConfigurationError as exc:
            self._release(progress)
            return self._failed(progress, 500, "configuration_error", exc)
        except RelayError as exc:
            self._release(progress)
            return self._failed(progress, 500, type(exc).__name__, exc)
        except Exception as exc:
            logger.exception(
                "lead_pipeline_unexpected_error",
                extra={"state": progress.state.value, "error_type": type(exc).__name__},
            )
            self._release(progress)
            return self._failed(progress, 500, "internal_error", exc)

    async def _run(self, lead: Lead, progress: _Progress) -> PipelineResult:
        display_name = self._names.normalize(lead.name)

        progress.state = PipelineState.CONTACT_RESOLVING
        with timed("contact_resolving", lead_key=log_key(lead.idempotency_key)):
            contact_id = await self._crm.ensure_contact(
                display_name, lead.phone_digits, cpf=lead.cpf, email=lead.email
            )
            progress.contact_id = contact_id
            contact = await self._crm.get_contact_details(contact_id)
            await self._reconcile(contact, display_name, lead)
        logger.info(
            "contact_resolved",
            extra={
                "contact_id": contact.id,
                "has_operator": contact.assigned_operator_id is not None,
            },
        )

        operator_id = contact.assigned_operator_id
        if operator_id:
            logger.info(
                "operator_reused",
                extra={"contact_id": contact.id, "operator_id": operator_id},
            )
        else:
            progress.state = PipelineState.OPERATOR_ASSIGNING
            with timed("operator_assigning", contact_id=contact.id):
                operator_id, queue = await self._choose_operator(lead)
                await self._crm.assign_operator(contact.id, operator_id)
            logger.info(
                "operator_assigned",
                extra={"contact_id": contact.id, "operator_id": operator_id, "queue": queue},
            )
        progress.operator_id = operator_id

        progress.state = PipelineState.TEMPLATE_SELECTING
        template_id, evaluation = self._schedule.pick_template()

        progress.state = PipelineState.COOLDOWN_CHECKING
        cooldown_key = f"{contact.id}:{template_id}"
        if self._store.is_within_cooldown(cooldown_key, self._cooldown_seconds):
            self._store.mark_done(lead.idempotency_key)
            logger.info(
                "template_suppressed_cooldown",
                extra={"contact_id": contact.id, "template_id": template_id},
            )
            return PipelineResult(
                outcome=LeadOutcome.SUPPRESSED,
                state=PipelineState.COMPLETED,
                http_status=200,
                detail="cooldown",
                contact_id=contact.id,
                operator_id=operator_id,
                template_id=template_id,
            )

        progress.state = PipelineState.DISPATCHING
        operator_name = self._selector.roster.display_name(operator_id)
        channel_id = contact.channel_ids[0] if contact.channel_ids else self._default_channel_id
        with timed("dispatching", contact_id=contact.id, template_id=template_id):
            receipt = await self._crm.send_template_message(
                contact.id,
                operator_id,
                template_id,
                display_name,
                operator_name,
                channel_id,
            )
        self._store.record_send(cooldown_key)
        self._store.mark_done(lead.idempotency_key)

        logger.info(
            "template_dispatched",
            extra={
                "contact_id": contact.id,
                "operator_id": operator_id,
                "template_id": template_id,
                "within_business_hours": evaluation.within_business_hours,
                "message_id": receipt.message_id,
            },
        )
        return PipelineResult(
            outcome=LeadOutcome.PROCESSED,
            state=PipelineState.COMPLETED,
            http_status=200,
            contact_id=contact.id,
            operator_id=operator_id,
            template_id=template_id,
            extra={"chat_id": receipt.chat_id, "message_id": receipt.message_id},
        )

    async def _choose_operator(self, lead: Lead) -> tuple[str, str]:
        live = await self._availability.fetch() if self._availability else None
        return self._selector.select_for(lead.property_code, live)

    async def _reconcile(self, contact: Contact, display_name: str, lead: Lead) -> None:
        """Corrige nome/CPF/e-mail divergentes; falha aqui não derruba o lead."""
        update = ContactFieldsUpdate(
            name=display_name if self._names.needs_update(contact.name, display_name) else None,
            email=lead.email if _differs(contact.email, lead.email) else None,
            cpf=lead.cpf if lead.cpf and digits_only(contact.cpf) != lead.cpf else None,
        )
        if update.is_empty():
            return
        try:
            await self._crm.update_contact_fields(contact.id, update)
        except UpstreamError as exc:
            logger.warning(
                "contact_update_failed",
                extra={
                    "contact_id": contact.id,
                    "fields": sorted(update.as_payload()),
                    "status_code": exc.status_code,
                },
            )
            return
        logger.info(
            "contact_fields_updated",
            extra={"contact_id": contact.id, "fields": sorted(update.as_payload())},
        )

    def _release(self, progress: _Progress) -> None:
        if progress.key is None:
            return
        try:
            self._store.release(progress.key)
        except StoreError:
            logger.error("lead_release_failed", extra={"lead_key": log_key(progress.key)})

    def _failed(
        self,
        progress: _Progress,
        http_status: int,
        detail: str,
        exc: Exception | None = None,
    ) -> PipelineResult:
        logger.error(
            "lead_pipeline_failed",
            extra={
                "state": progress.state.value,
                "detail": detail,
                "error_type": type(exc).__name__ if exc else None,
                "contact_id": progress.contact_id,
                "key_released": progress.key is not None,
            },
        )
        return PipelineResult(
            outcome=LeadOutcome.FAILED,
            state=PipelineState.FAILED,
            http_status=http_status,
            detail=detail,
            contact_id=progress.contact_id,
            operator_id=progress.operator_id,
        )


def _differs(current: str | None, desired: str | None) -> bool:
    """E-mail novo e diferente do salvo (sem diferenciar caixa)."""
    if not desired:
        return False
    return (current or "").strip().casefold() != desired.strip().casefold()
