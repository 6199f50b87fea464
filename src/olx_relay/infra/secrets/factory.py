from __future__ import annotations

import logging

from olx_relay.observability.logging import get_logger

from .env_provider import EnvSecretProvider
from .gcp_provider import SecretManagerProvider
from .protocol import SecretProvider

logger: logging.Logger = get_logger(__name__)


def create_secret_provider(backend: str = "env", project_id: str | None = None) -> SecretProvider:
    """Factory do provider de tokens: env | secret_manager."""
    if backend == "env":
        return EnvSecretProvider()

    if backend == "secret_manager":
        logger.info("Usando SecretManagerProvider", extra={"project_id": project_id})
        return SecretManagerProvider(project_id=project_id)

    raise ValueError(f"Backend de secrets não reconhecido: {backend}")
