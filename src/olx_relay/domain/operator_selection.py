"""Política de escolha do operador para contatos sem atendente.

Fluxo: fila (geral ou regional pelo código do imóvel) → filtro consultivo
de disponibilidade → estratégia (round-robin ou fair-share). O estado dos
cursores/contadores vive num RotationState injetado, nunca em globais.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence

from olx_relay.domain.errors import NoOperatorAvailable
from olx_relay.domain.models import Operator
from olx_relay.domain.protocols.rotation_state import RotationState
from olx_relay.domain.schedule import ClockSource, SystemClock, local_date
from olx_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_QUEUE = "geral"


def _id_sort_key(operator_id: str) -> tuple[int, int, str]:
    # Ids numéricos em ordem numérica, demais em ordem alfabética depois
    if operator_id.isdigit():
        return (0, int(operator_id), operator_id)
    return (1, 0, operator_id)


def stable_order(operator_ids: Iterable[str]) -> list[str]:
    """Ordem determinística (sem duplicatas) usada para indexar o cursor."""
    return sorted(set(operator_ids), key=_id_sort_key)


class OperatorRoster:
    """Roster estático (configuração) com filas geral e regional.

    A fila regional recebe leads cujo código de imóvel está em
    `regional_codes`; sem operadores regionais ela usa o roster geral,
    mantendo cursor próprio.
    """

    def __init__(
        self,
        general_ids: Sequence[str],
        *,
        regional_ids: Sequence[str] = (),
        regional_codes: Iterable[str] = (),
        names: Mapping[str, str] | None = None,
        fallback_name: str = "um de nossos consultores",
        default_queue: str = DEFAULT_QUEUE,
        regional_queue: str = "regional",
    ) -> None:
        self._general = tuple(general_ids)
        self._regional = tuple(regional_ids)
        self._regional_codes = frozenset(code.strip().upper() for code in regional_codes)
        self._names = dict(names or {})
        self._fallback_name = fallback_name
        self.default_queue = default_queue
        self.regional_queue = regional_queue

    @property
    def operators(self) -> tuple[Operator, ...]:
        """Todos os operadores conhecidos com as filas de que participam."""
        result: list[Operator] = []
        for operator_id in stable_order(self._general + self._regional):
            queues = set()
            if operator_id in self._general:
                queues.add(self.default_queue)
            if operator_id in self._regional:
                queues.add(self.regional_queue)
            result.append(
                Operator(
                    id=operator_id,
                    display_name=self.display_name(operator_id),
                    queues=frozenset(queues),
                )
            )
        return tuple(result)

    def queue_for(self, property_code: str | None) -> str:
        if property_code and property_code.strip().upper() in self._regional_codes:
            return self.regional_queue
        return self.default_queue

    def pool_for(self, queue: str) -> list[str]:
        if queue == self.regional_queue and self._regional:
            return list(self._regional)
        return list(self._general)

    def display_name(self, operator_id: str | None) -> str:
        if operator_id and self._names.get(operator_id):
            return self._names[operator_id]
        return self._fallback_name


class AssignmentStrategy(ABC):
    """Escolhe um id dentre candidatos já filtrados (lista não vazia)."""

    @abstractmethod
    def choose(self, candidates: Sequence[str], queue: str) -> str:
        """Retorna o operador escolhido para a fila."""


class RoundRobinStrategy(AssignmentStrategy):
    """`candidatos_ordenados[cursor % n]` com cursor monotônico por fila."""

    def __init__(self, state: RotationState) -> None:
        self._state = state

    def choose(self, candidates: Sequence[str], queue: str) -> str:
        ordered = stable_order(candidates)
        cursor = self._state.next_cursor(queue)
        return ordered[cursor % len(ordered)]


class FairShareStrategy(AssignmentStrategy):
    """Menor contagem do dia vence; empates resolvidos por round-robin.

    Escopo do contador: `{customer_id}:{AAAA-MM-DD}` no fuso do negócio.
    Virada do dia = escopo novo, os contadores antigos expiram no backend.
    """

    def __init__(
        self,
        state: RotationState,
        scope_prefix: str,
        timezone: str = "America/Sao_Paulo",
        clock: ClockSource | None = None,
    ) -> None:
        self._state = state
        self._scope_prefix = scope_prefix
        self._timezone = timezone
        self._clock = clock or SystemClock()

    def current_scope(self) -> str:
        day = local_date(self._clock.now(), self._timezone)
        return f"{self._scope_prefix}:{day.isoformat()}"

    def choose(self, candidates: Sequence[str], queue: str) -> str:
        ordered = stable_order(candidates)
        scope = self.current_scope()
        counts = self._state.counts(scope, ordered)
        lowest = min(counts.get(operator_id, 0) for operator_id in ordered)
        tied = [operator_id for operator_id in ordered if counts.get(operator_id, 0) == lowest]

        chosen = tied[0]
        if len(tied) > 1:
            chosen = tied[self._state.next_cursor(f"{queue}:tie") % len(tied)]

        total = self._state.increment(scope, chosen)
        logger.debug(
            "fair_share_choice",
            extra={"queue": queue, "operator_id": chosen, "scope_total": total, "tied": len(tied)},
        )
        return chosen


class OperatorSelector:
    """Aplica fila, filtro de disponibilidade e estratégia."""

    def __init__(self, roster: OperatorRoster, strategy: AssignmentStrategy) -> None:
        self.roster = roster
        self._strategy = strategy

    def select(
        self,
        pool: Sequence[str],
        live_available: Iterable[str] | None,
        queue: str,
    ) -> str:
        """Escolhe o operador da fila.

        Disponibilidade é preferência: se ninguém do pool está disponível
        (ou não há dado), usa o pool inteiro.

        Raises:
            NoOperatorAvailable: pool vazio (erro de configuração)
        """
        if not pool:
            raise NoOperatorAvailable(f"Nenhum operador configurado para a fila {queue}")

        candidates = list(pool)
        if live_available is not None:
            available = set(live_available)
            filtered = [operator_id for operator_id in pool if operator_id in available]
            if filtered:
                candidates = filtered
            else:
                logger.info(
                    "availability_filter_skipped",
                    extra={"queue": queue, "pool_size": len(pool)},
                )
        return self._strategy.choose(candidates, queue)

    def select_for(
        self,
        property_code: str | None,
        live_available: Iterable[str] | None = None,
    ) -> tuple[str, str]:
        """Roteia pelo código do imóvel e escolhe; retorna (operador, fila)."""
        queue = self.roster.queue_for(property_code)
        operator_id = self.select(self.roster.pool_for(queue), live_available, queue)
        return operator_id, queue
