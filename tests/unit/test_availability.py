"""Testes da consulta consultiva de disponibilidade."""

from __future__ import annotations

import httpx
import pytest

from olx_relay.adapters.poli.availability import (
    OperatorAvailabilityClient,
    create_availability_client,
)
from olx_relay.infra.http import HttpClient, HttpClientConfig, create_http_client
from tests.helpers.settings_factory import make_settings

URL = "https://poli.test/api/v1/resellers/9/users"


def _availability(handler) -> OperatorAvailabilityClient:
    http = HttpClient(HttpClientConfig(transport=httpx.MockTransport(handler)))
    return OperatorAvailabilityClient(http, url=URL, token="t", timeout_seconds=1.0)


@pytest.mark.asyncio
async def test_returns_available_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer t"
        return httpx.Response(200, json={"data": [{"id": 10, "online": True}, {"id": 20}]})

    assert await _availability(handler).fetch() == frozenset({"10"})


@pytest.mark.asyncio
async def test_server_error_means_no_data_and_no_retry() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={})

    assert await _availability(handler).fetch() is None
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_timeout_means_no_data() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    assert await _availability(handler).fetch() is None


@pytest.mark.asyncio
async def test_unexpected_shape_means_no_data() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "ok"})

    assert await _availability(handler).fetch() is None


class TestFactory:
    def test_disabled_returns_none(self) -> None:
        settings = make_settings(availability_enabled=False, availability_url=URL)
        assert create_availability_client(settings, create_http_client(settings)) is None

    def test_enabled_without_url_returns_none(self) -> None:
        settings = make_settings(availability_enabled=True)
        assert create_availability_client(settings, create_http_client(settings)) is None

    def test_enabled_uses_poli_token_by_default(self) -> None:
        settings = make_settings(availability_enabled=True, availability_url=URL)
        client = create_availability_client(settings, create_http_client(settings))
        assert client is not None
        assert client._token == "test-token"
