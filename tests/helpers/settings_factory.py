"""Settings de teste e instantes de referência."""

from __future__ import annotations

from datetime import UTC, datetime

from olx_relay.config.settings import Settings

# Quarta-feira 14:00 em São Paulo (UTC-3)
WEDNESDAY_AFTERNOON = datetime(2026, 3, 4, 17, 0, tzinfo=UTC)
# Quarta-feira 22:00 em São Paulo, fora do expediente
WEDNESDAY_NIGHT = datetime(2026, 3, 5, 1, 0, tzinfo=UTC)


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "poli_api_base_url": "https://poli.test/api/v1",
        "poli_api_token": "test-token",
        "customer_id": "123",
        "channel_id": "456",
        "template_id": "tpl-in",
        "template_id_off_hours": "tpl-off",
        "template_selection": "first",
        "operator_ids": "10,20,30",
        "operator_names_map": '{"10": "Ana", "20": "Bruno", "30": "Carla"}',
        "retry_backoff_schedule": "0,0,0",
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(**values)
