from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from olx_relay.api.app import create_app
from olx_relay.application.factory import build_lead_pipeline
from olx_relay.config.settings import Settings, get_settings
from olx_relay.domain.schedule import FrozenClock
from olx_relay.infra.http import create_http_client
from olx_relay.infra.lead_store import InMemoryLeadStore
from olx_relay.infra.rotation_state import InMemoryRotationState
from tests.helpers.fake_poli import FakePoli
from tests.helpers.settings_factory import WEDNESDAY_AFTERNOON, make_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def fake_poli() -> FakePoli:
    return FakePoli()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(WEDNESDAY_AFTERNOON)


@pytest.fixture()
def lead_store(clock: FrozenClock) -> InMemoryLeadStore:
    return InMemoryLeadStore(
        lead_ttl_seconds=600,
        cooldown_seconds=1800,
        clock=lambda: clock.now().timestamp(),
    )


@pytest.fixture()
def pipeline_factory(settings: Settings, fake_poli: FakePoli, lead_store, clock):
    """Monta LeadPipeline contra a Poli simulada; aceita overrides de settings."""

    def _build(**overrides):
        effective = make_settings(**overrides) if overrides else settings
        http = create_http_client(effective, transport=fake_poli.transport)
        return build_lead_pipeline(
            http=http,
            lead_store=lead_store,
            rotation_state=InMemoryRotationState(),
            settings=effective,
            clock=clock,
        )

    return _build


@pytest.fixture()
def client(settings: Settings, fake_poli: FakePoli):
    app = create_app(settings, transport=fake_poli.transport)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def lead_payload() -> dict[str, str]:
    return {
        "name": "JOÃO DA SILVA",
        "phoneNumber": "+55 (11) 99999-0000",
        "clientListingId": "AP1234",
        "email": "joao@example.com",
    }
