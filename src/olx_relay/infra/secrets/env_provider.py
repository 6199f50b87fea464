from __future__ import annotations

import logging
import os

from olx_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class EnvSecretProvider:
    """Lê tokens de variáveis de ambiente (dev, testes, CI)."""

    def get_secret(self, name: str, version: str = "latest") -> str:
        """O parâmetro version é ignorado: env vars não têm versões."""
        value = os.getenv(name)
        if not value:
            logger.warning("Secret ausente no ambiente", extra={"secret_name": name})
            raise RuntimeError(f"Secret {name} não encontrado no ambiente")
        return value

    def secret_exists(self, name: str) -> bool:
        return bool(os.getenv(name))
