"""Testes para bootstrap da aplicação FastAPI.

Valida que configurações críticas (store, HTTP, enums) são checadas no boot.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from olx_relay.api.app import create_app
from olx_relay.infra.lead_store import InMemoryLeadStore, RedisLeadStore
from olx_relay.infra.rotation_state import RedisRotationState
from tests.helpers.settings_factory import make_settings


class TestAppBootstrap:
    def test_memory_store_in_development(self) -> None:
        app = create_app(make_settings())
        assert isinstance(app.state.lead_store, InMemoryLeadStore)
        assert app.state.pipeline is not None

    def test_redis_in_production(self) -> None:
        settings = make_settings(
            environment="production", store_backend="redis", redis_url="redis://localhost:6379"
        )
        with patch("olx_relay.api.app._create_redis_client", return_value=MagicMock()) as factory:
            app = create_app(settings)

        factory.assert_called_once_with("redis://localhost:6379")
        assert isinstance(app.state.lead_store, RedisLeadStore)
        assert isinstance(app.state.rotation_state, RedisRotationState)

    def test_injected_redis_client(self) -> None:
        settings = make_settings(store_backend="redis", redis_url="redis://unused")
        app = create_app(settings, redis_client=MagicMock())
        assert isinstance(app.state.lead_store, RedisLeadStore)

    def test_fails_with_redis_without_url(self) -> None:
        with pytest.raises(ValueError, match="REDIS_URL"):
            create_app(make_settings(store_backend="redis"))

    def test_fails_with_memory_in_production(self) -> None:
        with pytest.raises(ValueError, match="proibido"):
            create_app(make_settings(environment="production"))

    def test_fails_with_unknown_strategy(self) -> None:
        with pytest.raises(ValueError, match="SELECTION_STRATEGY"):
            create_app(make_settings(selection_strategy="lottery"))

    def test_incomplete_relay_config_boots_and_answers_500(self) -> None:
        app = create_app(make_settings(poli_api_token=None))
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            response = client.post(
                "/", json={"name": "Maria", "phoneNumber": "11999990000", "clientListingId": "A"}
            )
        assert response.status_code == 500
        assert response.json()["detail"] == "configuration_error"

    def test_lifespan_runs_purge_worker(self) -> None:
        app = create_app(make_settings())
        with TestClient(app):
            assert app.state.purge_worker.running is True
        assert app.state.purge_worker.running is False
