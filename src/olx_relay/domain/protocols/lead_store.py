"""Contrato do store de idempotência de leads e cooldown de envio."""

from __future__ import annotations

from abc import ABC, abstractmethod

from olx_relay.domain.enums import BeginStatus


class LeadStore(ABC):
    """Mapa chave → status com TTL, compartilhado entre requests.

    Duas famílias de chave com TTLs independentes:
    - lead (`telefone:código` ou id de origem): inflight → done, ou removida
      em falha para permitir reprocessamento
    - envio (`contato:template`): instante do último envio, para cooldown

    `try_begin` é check-and-insert atômico: dois requests concorrentes com a
    mesma chave nunca recebem ACCEPTED ao mesmo tempo.
    """

    @abstractmethod
    def try_begin(self, key: str) -> BeginStatus:
        """Insere registro inflight se ausente/expirado; senão devolve o status atual."""

    @abstractmethod
    def mark_done(self, key: str) -> None:
        """Promove o lead para done (renova o TTL)."""

    @abstractmethod
    def release(self, key: str) -> bool:
        """Remove o registro após falha. Retorna True se existia."""

    @abstractmethod
    def is_within_cooldown(self, key: str, window_seconds: float | None = None) -> bool:
        """True se houve envio para a chave dentro da janela (padrão: cooldown configurado)."""

    @abstractmethod
    def record_send(self, key: str) -> None:
        """Registra o instante do envio para a chave."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove registros vencidos. Retorna quantos foram removidos."""
