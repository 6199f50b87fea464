"""Testes unitários para infra/secrets.

Valida providers de tokens e a factory.
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock, patch

import pytest

from olx_relay.infra.secrets import (
    EnvSecretProvider,
    SecretManagerProvider,
    create_secret_provider,
)


class TestEnvSecretProvider:
    """Testes para EnvSecretProvider."""

    def test_get_secret_returns_env_value(self) -> None:
        with patch.dict(os.environ, {"POLI_API_TOKEN": "abc"}):
            assert EnvSecretProvider().get_secret("POLI_API_TOKEN") == "abc"

    def test_get_secret_raises_when_not_found(self) -> None:
        """Deve levantar RuntimeError se env var não existe."""
        with (
            patch.dict(os.environ, {}, clear=True),
            pytest.raises(RuntimeError, match="não encontrado"),
        ):
            EnvSecretProvider().get_secret("POLI_API_TOKEN")

    def test_secret_exists(self) -> None:
        with patch.dict(os.environ, {"PRESENT": "1"}, clear=True):
            provider = EnvSecretProvider()
            assert provider.secret_exists("PRESENT") is True
            assert provider.secret_exists("ABSENT") is False

    def test_version_parameter_is_ignored(self) -> None:
        with patch.dict(os.environ, {"VERSIONED": "value"}):
            provider = EnvSecretProvider()
            assert provider.get_secret("VERSIONED", "v1") == "value"
            assert provider.get_secret("VERSIONED", "latest") == "value"


class TestSecretManagerProvider:
    """Testes para SecretManagerProvider com cliente mockado."""

    def test_uses_env_project_id_if_not_provided(self) -> None:
        with patch.dict(os.environ, {"GOOGLE_CLOUD_PROJECT": "my-project"}):
            assert SecretManagerProvider()._project_id == "my-project"

    def test_get_secret_builds_version_path(self) -> None:
        client = MagicMock()
        client.access_secret_version.return_value.payload.data = b"token-value"
        provider = SecretManagerProvider(project_id="relay", client=client)

        assert provider.get_secret("POLI_API_TOKEN") == "token-value"
        client.access_secret_version.assert_called_once_with(
            name="projects/relay/secrets/POLI_API_TOKEN/versions/latest"
        )

    def test_get_secret_wraps_client_errors(self) -> None:
        client = MagicMock()
        client.access_secret_version.side_effect = Exception("permission denied")
        provider = SecretManagerProvider(project_id="relay", client=client)

        with pytest.raises(RuntimeError, match="POLI_API_TOKEN"):
            provider.get_secret("POLI_API_TOKEN")

    def test_missing_project_id(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            provider = SecretManagerProvider(client=MagicMock())
            with pytest.raises(RuntimeError, match="project_id"):
                provider.get_secret("POLI_API_TOKEN")

    def test_secret_exists(self) -> None:
        client = MagicMock()
        provider = SecretManagerProvider(project_id="relay", client=client)
        assert provider.secret_exists("POLI_API_TOKEN") is True

        client.get_secret.side_effect = Exception("Not found")
        assert provider.secret_exists("POLI_API_TOKEN") is False


class TestCreateSecretProvider:
    def test_env_by_default(self) -> None:
        assert isinstance(create_secret_provider(), EnvSecretProvider)

    def test_secret_manager(self) -> None:
        provider = create_secret_provider(backend="secret_manager", project_id="relay")
        assert isinstance(provider, SecretManagerProvider)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="não reconhecido"):
            create_secret_provider(backend="vault")
