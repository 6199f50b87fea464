"""Contrato do estado compartilhado de rodízio de operadores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class RotationState(ABC):
    """Cursores de round-robin por fila e contadores de fair-share por escopo.

    Toda mutação é uma operação atômica única (incremento), nunca
    ler-e-depois-gravar.
    """

    @abstractmethod
    def next_cursor(self, queue: str) -> int:
        """Incrementa o cursor da fila e devolve o valor anterior (começa em 0)."""

    @abstractmethod
    def counts(self, scope: str, operator_ids: Iterable[str]) -> dict[str, int]:
        """Atribuições por operador no escopo (ausente = 0)."""

    @abstractmethod
    def increment(self, scope: str, operator_id: str) -> int:
        """Soma uma atribuição ao operador no escopo e devolve o novo total."""
