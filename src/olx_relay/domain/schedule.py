"""Horário comercial e escolha do template de abertura.

Dias da semana seguem a convenção 0=domingo .. 6=sábado. Uma janela com
início == fim fica sempre aberta; início > fim atravessa a meia-noite.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from olx_relay.domain.errors import ConfigurationError

MINUTES_PER_DAY = 24 * 60


class ClockSource(Protocol):
    """Fonte de tempo injetável (relógio congelado em testes)."""

    def now(self) -> datetime:
        """Instante atual com timezone."""
        ...


class SystemClock:
    """Relógio real em UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


@dataclass(slots=True)
class FrozenClock:
    """Relógio fixo; `advance` permite simular passagem de tempo."""

    instant: datetime

    def now(self) -> datetime:
        return self.instant

    def advance(self, seconds: float) -> None:
        self.instant = self.instant + timedelta(seconds=seconds)


def _parse_hhmm(raw: str) -> int:
    hours, _, minutes = raw.strip().partition(":")
    value = int(hours) * 60 + int(minutes or 0)
    if not 0 <= value <= MINUTES_PER_DAY:
        raise ValueError(f"Horário fora do intervalo: {raw}")
    return value % MINUTES_PER_DAY


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Janela de atendimento em minutos desde a meia-noite local."""

    start_minute: int
    end_minute: int

    @classmethod
    def parse(cls, raw: str) -> DayWindow:
        """Converte "HH:MM-HH:MM" em DayWindow."""
        start, sep, end = raw.partition("-")
        if not sep:
            raise ValueError(f"Janela inválida (esperado HH:MM-HH:MM): {raw}")
        return cls(_parse_hhmm(start), _parse_hhmm(end))

    def contains(self, minute_of_day: int) -> bool:
        if self.start_minute == self.end_minute:
            return True
        if self.start_minute < self.end_minute:
            return self.start_minute <= minute_of_day < self.end_minute
        return minute_of_day >= self.start_minute or minute_of_day < self.end_minute


@dataclass(frozen=True, slots=True)
class WeekdaySchedule:
    """Mapa dia da semana → janela; dia ausente significa fechado."""

    windows: Mapping[int, DayWindow] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[int, str]) -> WeekdaySchedule:
        windows: dict[int, DayWindow] = {}
        for day, window in raw.items():
            if not 0 <= int(day) <= 6:
                raise ValueError(f"Dia da semana inválido: {day}")
            windows[int(day)] = DayWindow.parse(window)
        return cls(windows)

    def window_for(self, day_of_week: int) -> DayWindow | None:
        return self.windows.get(day_of_week)


@dataclass(frozen=True, slots=True)
class ScheduleEvaluation:
    """Resultado da avaliação do horário comercial."""

    within_business_hours: bool
    day_of_week: int
    minute_of_day: int


def local_position(now: datetime, timezone: str) -> tuple[int, int]:
    """Retorna (dia da semana 0=domingo, minuto do dia) no fuso indicado."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(ZoneInfo(timezone))
    # isoweekday: segunda=1 .. domingo=7
    day_of_week = local.isoweekday() % 7
    return day_of_week, local.hour * 60 + local.minute


def local_date(now: datetime, timezone: str) -> date:
    """Data civil de `now` no fuso indicado."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(ZoneInfo(timezone)).date()


def evaluate(now: datetime, timezone: str, schedule: WeekdaySchedule) -> ScheduleEvaluation:
    """Avalia se `now` cai dentro do horário comercial do dia."""
    day_of_week, minute_of_day = local_position(now, timezone)
    window = schedule.window_for(day_of_week)
    within = window is not None and window.contains(minute_of_day)
    return ScheduleEvaluation(
        within_business_hours=within,
        day_of_week=day_of_week,
        minute_of_day=minute_of_day,
    )


class TemplateSelector:
    """Escolhe o template conforme horário comercial.

    Dentro do horário sorteia do pool (ou pega o primeiro, em modo
    determinístico); fora do horário usa o template off-hours. Se o grupo
    pedido estiver vazio, usa o outro grupo; sem nenhum, ConfigurationError.
    """

    def __init__(
        self,
        in_hours: Sequence[str],
        off_hours: str | None,
        mode: str = "random",
        rng: random.Random | None = None,
    ) -> None:
        self._in_hours = tuple(in_hours)
        self._off_hours = off_hours
        self._mode = mode
        self._rng = rng or random.Random()

    def _pick_in_hours(self) -> str | None:
        if not self._in_hours:
            return None
        if self._mode == "first" or len(self._in_hours) == 1:
            return self._in_hours[0]
        return self._rng.choice(self._in_hours)

    def select(self, within_business_hours: bool) -> str:
        if within_business_hours:
            template_id = self._pick_in_hours() or self._off_hours
        else:
            template_id = self._off_hours or self._pick_in_hours()
        if not template_id:
            raise ConfigurationError("Nenhum template configurado para o horário")
        return template_id


class ScheduleEvaluator:
    """Combina relógio, fuso, agenda e seletor de template."""

    def __init__(
        self,
        schedule: WeekdaySchedule,
        selector: TemplateSelector,
        timezone: str = "America/Sao_Paulo",
        clock: ClockSource | None = None,
    ) -> None:
        self._schedule = schedule
        self._selector = selector
        self._timezone = timezone
        self._clock = clock or SystemClock()

    def evaluate_now(self) -> ScheduleEvaluation:
        return evaluate(self._clock.now(), self._timezone, self._schedule)

    def pick_template(self) -> tuple[str, ScheduleEvaluation]:
        evaluation = self.evaluate_now()
        return self._selector.select(evaluation.within_business_hours), evaluation
