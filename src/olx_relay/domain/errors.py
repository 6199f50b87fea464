"""Taxonomia de erros do relay.

Erros de transporte (HttpError) ficam na infra; o adapter da Poli os
traduz para as classes abaixo antes de chegarem ao orquestrador.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base de todos os erros de negócio do relay."""


class ValidationError(RelayError):
    """Lead sem campos obrigatórios (nome, telefone, código do imóvel)."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Campos obrigatórios ausentes: {', '.join(missing)}")
        self.missing = missing


class ConfigurationError(RelayError):
    """Configuração de runtime incompleta; o processo continua no ar."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NoOperatorAvailable(ConfigurationError):
    """Roster de operadores vazio para a fila do lead."""


class UpstreamError(RelayError):
    """Falha na API da Poli (status não-2xx ou erro de rede)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTransientError(UpstreamError):
    """5xx/timeout/conexão que persistiu após todas as tentativas."""


class ContactNotFound(UpstreamError):
    """Contato inexistente na Poli."""


class ContactCreationFailed(UpstreamError):
    """Nenhum id recuperável nem da resposta de sucesso nem da de erro."""


class TemplateRejected(RelayError):
    """Poli aceitou o HTTP mas marcou success/send como falso."""


class StoreError(RelayError):
    """Backend de idempotência/rodízio indisponível (fail-closed)."""
