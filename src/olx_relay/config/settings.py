"""Configurações do relay OLX → Poli Digital via variáveis de ambiente.

Todas as configurações vêm de env vars (ou Secret Manager em staging/prod).
Listas são strings separadas por vírgula e mapas são JSON, expostos já
parseados pelas properties abaixo.
Nunca logar tokens.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from olx_relay.domain.schedule import WeekdaySchedule
from olx_relay.infra.secrets import create_secret_provider
from olx_relay.observability.logging import get_logger

# -----------------------------------------------------------------------------
# Constantes da API Poli Digital (Polichat)
# -----------------------------------------------------------------------------
POLI_API_BASE_URL: str = "https://app.polichat.com.br/api/v1"
DEFAULT_OPERATOR_NAME: str = "um de nossos consultores"
DEFAULT_MINOR_WORDS: str = "da,de,do,das,dos,e"
# 0=domingo .. 6=sábado
DEFAULT_BUSINESS_HOURS: str = json.dumps(
    {
        "1": "09:00-18:00",
        "2": "09:00-18:00",
        "3": "09:00-18:00",
        "4": "09:00-18:00",
        "5": "09:00-18:00",
        "6": "09:00-13:00",
    }
)


def _split_csv(raw: str | None) -> list[str]:
    """Divide lista separada por vírgula ignorando espaços e vazios."""
    if not raw:
        return []
    return [item for item in raw.replace(" ", "").split(",") if item]


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    # Aplicação
    service_name: str = "olx_relay"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text
    correlation_id_header: str = "X-Correlation-ID"
    timezone: str = "America/Sao_Paulo"

    # Poli Digital
    poli_api_base_url: str = POLI_API_BASE_URL
    poli_api_token: str | None = Field(default=None, repr=False)
    customer_id: str | None = None
    channel_id: str | None = None

    # Templates (quick messages)
    template_id: str | None = None  # id único legado (horário comercial)
    template_ids_in_hours: str | None = None  # pool separado por vírgula
    template_id_off_hours: str | None = None
    template_selection: str = "random"  # random | first

    # Horário comercial: {"<dia 0-6>": "HH:MM-HH:MM"}
    business_hours: str = DEFAULT_BUSINESS_HOURS

    # Operadores e roteamento
    operator_ids: str | None = None
    operator_names_map: str | None = None  # JSON {id: nome}
    operator_fallback_name: str = DEFAULT_OPERATOR_NAME
    regional_property_codes: str | None = None
    regional_operator_ids: str | None = None
    regional_queue_name: str = "sorocaba"
    default_queue_name: str = "geral"
    selection_strategy: str = "round_robin"  # round_robin | fair_share

    # Disponibilidade online dos operadores (endpoint de revenda)
    availability_enabled: bool = False
    availability_url: str | None = None
    availability_token: str | None = Field(default=None, repr=False)
    availability_timeout_seconds: float = 5.0

    # Normalização de nomes
    name_case: str = "title"  # title | upper | lower
    name_minor_words: str = DEFAULT_MINOR_WORDS

    # Idempotência, cooldown e rodízio
    store_backend: str = "memory"  # memory | redis
    redis_url: str | None = Field(default=None, repr=False)
    lead_dedupe_ttl_seconds: int = 600  # 10 minutos
    send_cooldown_seconds: int = 1800  # 30 minutos
    purge_interval_seconds: float = 60.0
    fair_share_ttl_seconds: int = 172800  # 48h

    # HTTP de saída
    request_timeout_seconds: float = 10.0
    max_attempts: int = 3
    retry_backoff_schedule: str = "0.25,1,4"

    # ------------------------------------------------------------------
    # Valores derivados
    # ------------------------------------------------------------------

    @property
    def operator_roster(self) -> list[str]:
        """Ids de operadores do rodízio geral, na ordem configurada."""
        return _split_csv(self.operator_ids)

    @property
    def regional_roster(self) -> list[str]:
        """Subconjunto de operadores que atende a fila regional."""
        return _split_csv(self.regional_operator_ids)

    @property
    def regional_codes(self) -> frozenset[str]:
        """Códigos de imóvel roteados para a fila regional."""
        return frozenset(code.upper() for code in _split_csv(self.regional_property_codes))

    @property
    def operator_names(self) -> dict[str, str]:
        """Mapa id → nome de exibição; JSON inválido vira mapa vazio."""
        if not self.operator_names_map:
            return {}
        try:
            parsed = json.loads(self.operator_names_map)
        except json.JSONDecodeError:
            get_logger(__name__).error("OPERATOR_NAMES_MAP inválido: deve ser JSON")
            return {}
        if not isinstance(parsed, dict):
            return {}
        return {str(key): str(value) for key, value in parsed.items()}

    @property
    def in_hours_templates(self) -> list[str]:
        """Pool de templates de horário comercial (cai para TEMPLATE_ID)."""
        pool = _split_csv(self.template_ids_in_hours)
        if pool:
            return pool
        return [self.template_id] if self.template_id else []

    @property
    def minor_words(self) -> frozenset[str]:
        """Palavras que ficam minúsculas no meio de nomes."""
        return frozenset(word.lower() for word in _split_csv(self.name_minor_words))

    @property
    def backoff_schedule(self) -> tuple[float, ...]:
        """Atrasos (segundos) entre tentativas, em ordem."""
        return tuple(float(delay) for delay in _split_csv(self.retry_backoff_schedule))

    @property
    def business_hours_map(self) -> dict[int, str]:
        """Mapa dia da semana (0=domingo) → janela "HH:MM-HH:MM"."""
        parsed = json.loads(self.business_hours or "{}")
        return {int(day): str(window) for day, window in parsed.items()}

    @property
    def effective_availability_token(self) -> str | None:
        return self.availability_token or self.poli_api_token

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    # ------------------------------------------------------------------
    # Validações (lista vazia = OK)
    # ------------------------------------------------------------------

    def validate_store_backend(self) -> list[str]:
        """Valida backend de idempotência/rodízio (checado no boot)."""
        errors: list[str] = []
        backend = self.store_backend.lower()
        if backend not in {"memory", "redis"}:
            errors.append("STORE_BACKEND inválido: use memory | redis")
        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "STORE_BACKEND=memory é proibido em staging/production. "
                "Configure Redis para idempotência entre instâncias."
            )
        if backend == "redis" and not self.redis_url:
            errors.append("STORE_BACKEND=redis requer REDIS_URL configurado")
        return errors

    def validate_relay_options(self) -> list[str]:
        """Valida enums textuais (estratégia, caixa do nome, sorteio de template)."""
        errors: list[str] = []
        if self.selection_strategy.lower() not in {"round_robin", "fair_share"}:
            errors.append("SELECTION_STRATEGY inválido: use round_robin | fair_share")
        if self.name_case.lower() not in {"title", "upper", "lower"}:
            errors.append("NAME_CASE inválido: use title | upper | lower")
        if self.template_selection.lower() not in {"random", "first"}:
            errors.append("TEMPLATE_SELECTION inválido: use random | first")
        try:
            WeekdaySchedule.from_mapping(self.business_hours_map)
        except (ValueError, TypeError, AttributeError):
            errors.append("BUSINESS_HOURS deve ser JSON {\"<dia 0-6>\": \"HH:MM-HH:MM\"}")
        return errors

    def validate_http_config(self) -> list[str]:
        """Valida limites de retry e timeout."""
        errors: list[str] = []
        if self.max_attempts < 1:
            errors.append("MAX_ATTEMPTS deve ser >= 1")
        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS deve ser > 0")
        try:
            if any(delay < 0 for delay in self.backoff_schedule):
                errors.append("RETRY_BACKOFF_SCHEDULE não aceita atrasos negativos")
        except ValueError:
            errors.append("RETRY_BACKOFF_SCHEDULE deve ser lista de números")
        return errors

    def validate_relay_config(self) -> list[str]:
        """Valida configuração mínima para processar um lead.

        Checada a cada request: a falta de algum item responde 500 mas
        mantém o processo no ar.
        """
        errors: list[str] = []
        if not self.poli_api_token:
            errors.append("POLI_API_TOKEN não configurado")
        if not self.customer_id:
            errors.append("CUSTOMER_ID não configurado")
        if not self.channel_id:
            errors.append("CHANNEL_ID não configurado")
        if not self.operator_roster:
            errors.append("OPERATOR_IDS não configurado")
        if not self.operator_names:
            errors.append("OPERATOR_NAMES_MAP ausente ou inválido")
        if not self.in_hours_templates and not self.template_id_off_hours:
            errors.append("Nenhum template configurado (TEMPLATE_ID / TEMPLATE_IDS_IN_HOURS)")
        if self.availability_enabled and not self.availability_url:
            errors.append("AVAILABILITY_ENABLED=true requer AVAILABILITY_URL")
        return errors

    def model_post_init(self, __context: Any) -> None:
        """Carrega tokens do Secret Manager em staging/production.

        - Development: tokens vêm do ambiente/.env
        - Staging/production: fail-closed se o Secret Manager falhar
        - Nunca loga valores
        """
        logger: logging.Logger = get_logger(__name__)

        if not (self.is_staging or self.is_production):
            return

        # PYTEST_CURRENT_TEST é setado pelo pytest; evita chamada real ao GCP
        if os.getenv("PYTEST_CURRENT_TEST"):
            logger.info(
                "Pulando Secret Manager em ambiente de teste controlado",
                extra={"environment": self.environment},
            )
            return

        project_id = os.getenv("GOOGLE_CLOUD_PROJECT")
        if not project_id:
            raise RuntimeError("GOOGLE_CLOUD_PROJECT obrigatório em staging/production")

        provider = create_secret_provider(backend="secret_manager", project_id=project_id)
        secret_mappings = {
            "POLI_API_TOKEN": "poli_api_token",
            "AVAILABILITY_TOKEN": "availability_token",
        }
        for secret_name, attr_name in secret_mappings.items():
            if getattr(self, attr_name):
                continue
            try:
                if not provider.secret_exists(secret_name):
                    logger.warning(
                        "Secret não encontrado no Secret Manager",
                        extra={"secret_name": secret_name},
                    )
                    continue
                setattr(self, attr_name, provider.get_secret(secret_name))
            except RuntimeError:
                raise
            except Exception as e:
                logger.error(
                    "Erro ao carregar secret do Secret Manager",
                    extra={"secret_name": secret_name, "error": type(e).__name__},
                )
                raise RuntimeError(
                    f"Falha ao carregar {secret_name}: {type(e).__name__}"
                ) from e

            logger.info("Secret carregado do Secret Manager", extra={"secret_name": secret_name})

        if not self.poli_api_token:
            raise RuntimeError("POLI_API_TOKEN obrigatório em staging/production")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings."""
    return Settings()
