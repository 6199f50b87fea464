"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from olx_relay.application.pipeline import LeadPipeline
from olx_relay.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_pipeline(request: Request) -> LeadPipeline:
    """Retorna o pipeline de leads montado no boot."""

    return request.app.state.pipeline
