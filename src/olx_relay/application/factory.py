"""Factory do LeadPipeline a partir de Settings.

Responsabilidades:
- Conhecer infra e settings
- Montar roster, estratégia de rodízio, agenda e clientes Poli
- Retornar um `LeadPipeline` pronto

Não conter lógica de negócio.
"""

from __future__ import annotations

from typing import Any

from olx_relay.adapters.poli.availability import create_availability_client
from olx_relay.adapters.poli.client import create_poli_client
from olx_relay.application.pipeline import LeadPipeline
from olx_relay.config.settings import Settings, get_settings
from olx_relay.domain.enums import NameCase, SelectionStrategy
from olx_relay.domain.names import NameNormalizer
from olx_relay.domain.operator_selection import (
    AssignmentStrategy,
    FairShareStrategy,
    OperatorRoster,
    OperatorSelector,
    RoundRobinStrategy,
)
from olx_relay.domain.protocols.lead_store import LeadStore
from olx_relay.domain.protocols.rotation_state import RotationState
from olx_relay.domain.schedule import (
    ClockSource,
    ScheduleEvaluator,
    TemplateSelector,
    WeekdaySchedule,
)
from olx_relay.infra.http import HttpClient
from olx_relay.observability.logging import get_logger

logger = get_logger(__name__)


def build_roster(settings: Settings) -> OperatorRoster:
    return OperatorRoster(
        settings.operator_roster,
        regional_ids=settings.regional_roster,
        regional_codes=settings.regional_codes,
        names=settings.operator_names,
        fallback_name=settings.operator_fallback_name,
        default_queue=settings.default_queue_name,
        regional_queue=settings.regional_queue_name,
    )


def build_strategy(
    settings: Settings,
    rotation_state: RotationState,
    clock: ClockSource | None = None,
) -> AssignmentStrategy:
    """Round-robin (padrão) ou fair-share, conforme SELECTION_STRATEGY."""
    if settings.selection_strategy.lower() == SelectionStrategy.FAIR_SHARE:
        return FairShareStrategy(
            rotation_state,
            scope_prefix=settings.customer_id or "default",
            timezone=settings.timezone,
            clock=clock,
        )
    return RoundRobinStrategy(rotation_state)


def build_schedule_evaluator(
    settings: Settings,
    clock: ClockSource | None = None,
) -> ScheduleEvaluator:
    selector = TemplateSelector(
        settings.in_hours_templates,
        settings.template_id_off_hours,
        mode=settings.template_selection.lower(),
    )
    return ScheduleEvaluator(
        WeekdaySchedule.from_mapping(settings.business_hours_map),
        selector,
        timezone=settings.timezone,
        clock=clock,
    )


def build_lead_pipeline(
    *,
    http: HttpClient,
    lead_store: LeadStore,
    rotation_state: RotationState,
    settings: Settings | None = None,
    clock: ClockSource | None = None,
) -> LeadPipeline:
    """Constrói o `LeadPipeline` com as dependências de runtime.

    Stores e cliente HTTP vêm de fora (criados no lifespan da app) para que
    testes injetem versões em memória ou transports simulados.
    """
    settings = settings or get_settings()

    roster = build_roster(settings)
    pipeline = LeadPipeline(
        crm=create_poli_client(settings, http),
        store=lead_store,
        selector=OperatorSelector(
            roster,
            build_strategy(settings, rotation_state, clock),
        ),
        schedule=build_schedule_evaluator(settings, clock),
        names=NameNormalizer(NameCase(settings.name_case.lower()), settings.minor_words),
        default_channel_id=settings.channel_id or "",
        availability=create_availability_client(settings, http),
        cooldown_seconds=settings.send_cooldown_seconds,
        config_check=settings.validate_relay_config,
    )

    extra: dict[str, Any] = {
        "selection_strategy": settings.selection_strategy,
        "roster": {operator.id: sorted(operator.queues) for operator in roster.operators},
        "availability_enabled": settings.availability_enabled,
    }
    logger.info("lead_pipeline_built", extra=extra)
    return pipeline
