from __future__ import annotations

import logging
import os

from olx_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class SecretManagerProvider:
    """Lê tokens do Google Cloud Secret Manager.

    Usa Application Default Credentials; a service account precisa de
    `secretmanager.secretAccessor` no projeto.
    """

    def __init__(self, project_id: str | None = None, client=None) -> None:
        self._project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google.cloud import secretmanager

            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def _secret_path(self, name: str) -> str:
        if not self._project_id:
            raise RuntimeError("project_id não configurado (GOOGLE_CLOUD_PROJECT)")
        return f"projects/{self._project_id}/secrets/{name}"

    def get_secret(self, name: str, version: str = "latest") -> str:
        client = self._get_client()
        version_path = f"{self._secret_path(name)}/versions/{version}"
        try:
            response = client.access_secret_version(name=version_path)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "Falha ao acessar Secret Manager",
                extra={"secret_name": name, "error_type": type(e).__name__},
            )
            raise RuntimeError(f"Não foi possível acessar secret {name}") from e
        return response.payload.data.decode("utf-8")

    def secret_exists(self, name: str) -> bool:
        client = self._get_client()
        try:
            client.get_secret(name=self._secret_path(name))
        except Exception:  # pylint: disable=broad-except
            return False
        return True
