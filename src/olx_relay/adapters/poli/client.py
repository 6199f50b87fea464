"""Adapter da API REST da Poli Digital (contatos, redirect e templates).

Todas as chamadas usam o HttpClient centralizado (timeout + retry em
5xx/rede). Aqui os HttpError são traduzidos para a taxonomia de domínio
antes de chegar ao orquestrador.

Nunca logar nome, telefone, CPF ou e-mail do contato.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from olx_relay.adapters.poli.extractors import (
    CONFLICT_CONTACT_ID,
    CREATED_CONTACT_ID,
    first_match,
    parse_contact,
    parse_receipt,
)
from olx_relay.domain.errors import (
    ContactCreationFailed,
    ContactNotFound,
    TemplateRejected,
    UpstreamError,
    UpstreamTransientError,
)
from olx_relay.domain.models import Contact, ContactFieldsUpdate, DispatchReceipt
from olx_relay.infra.http import HttpClient, HttpError, safe_json
from olx_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from olx_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


def _translate(exc: HttpError, operation: str) -> UpstreamError:
    """HttpError → erro de domínio (transitório esgotado ou definitivo)."""
    if exc.is_retryable:
        return UpstreamTransientError(
            f"Poli indisponível em {operation}: {exc}", status_code=exc.status_code
        )
    return UpstreamError(f"Poli recusou {operation}: {exc}", status_code=exc.status_code)


class PoliClient:
    """Cliente da Poli para um único customer (tenant).

    Uso típico:
        client = PoliClient(http, base_url=..., token=..., customer_id="123")
        contact_id = await client.ensure_contact("João da Silva", "5511999990000")
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        base_url: str,
        token: str,
        customer_id: str,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._customer_id = customer_id

    def _url(self, path: str) -> str:
        return f"{self._base_url}/customers/{self._customer_id}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def ensure_contact(
        self,
        name: str,
        phone_digits: str,
        cpf: str | None = None,
        email: str | None = None,
    ) -> str:
        """Cria o contato ou recupera o id do contato já existente.

        A Poli responde "já existe" com status de erro e o id em caminhos
        variados do corpo; qualquer id recuperável é tratado como sucesso.

        Raises:
            UpstreamTransientError: 5xx/rede persistiu e nenhum id veio no corpo
            ContactCreationFailed: nenhum id recuperável
        """
        form: dict[str, str] = {"name": name, "phone": phone_digits}
        if cpf:
            form["cpf"] = cpf
        if email:
            form["email"] = email

        try:
            response = await self._http.post(
                self._url("contacts"), data=form, headers=self._headers()
            )
        except HttpError as exc:
            existing_id = first_match(CONFLICT_CONTACT_ID, exc.body)
            if existing_id:
                logger.info(
                    "contact_conflict_recovered",
                    extra={"contact_id": existing_id, "status_code": exc.status_code},
                )
                return existing_id
            if exc.is_retryable:
                raise _translate(exc, "create_contact") from exc
            raise ContactCreationFailed(
                f"Criação de contato recusada: {exc}", status_code=exc.status_code
            ) from exc

        contact_id = first_match(CREATED_CONTACT_ID, safe_json(response))
        if not contact_id:
            raise ContactCreationFailed(
                "Resposta de criação sem id de contato", status_code=response.status_code
            )
        logger.info("contact_created", extra={"contact_id": contact_id})
        return contact_id

    async def get_contact_details(self, contact_id: str) -> Contact:
        """Busca o contato; aceita `{data: {...}}`, `{data: {data: {...}}}` ou objeto cru."""
        try:
            response = await self._http.get(
                self._url(f"contacts/{contact_id}"), headers=self._headers()
            )
        except HttpError as exc:
            if exc.status_code == 404:
                raise ContactNotFound(
                    f"Contato {contact_id} não encontrado", status_code=404
                ) from exc
            raise _translate(exc, "get_contact") from exc

        contact = parse_contact(safe_json(response), fallback_id=contact_id)
        if contact is None:
            raise UpstreamError(
                "Resposta de contato em formato inesperado", status_code=response.status_code
            )
        return contact

    async def update_contact_fields(self, contact_id: str, fields: ContactFieldsUpdate) -> None:
        """Atualiza nome/CPF/e-mail: JSON primeiro, form-encoded se recusado."""
        payload = fields.as_payload()
        if not payload:
            return
        url = self._url(f"contacts/{contact_id}")

        try:
            await self._http.put(url, json=payload, headers=self._headers())
            return
        except HttpError as exc:
            if exc.is_retryable:
                raise _translate(exc, "update_contact") from exc
            logger.info(
                "contact_update_form_fallback",
                extra={"contact_id": contact_id, "status_code": exc.status_code},
            )

        try:
            await self._http.put(url, data=payload, headers=self._headers())
        except HttpError as exc:
            raise _translate(exc, "update_contact") from exc

    async def assign_operator(self, contact_id: str, operator_id: str) -> None:
        """Redireciona o contato para o operador (`{user_id}` em JSON)."""
        try:
            await self._http.post(
                self._url(f"contacts/redirect/contacts/{contact_id}"),
                json={"user_id": operator_id},
                headers=self._headers(),
            )
        except HttpError as exc:
            raise _translate(exc, "assign_operator") from exc

    async def send_template_message(
        self,
        contact_id: str,
        operator_id: str,
        template_id: str,
        first_param: str,
        second_param: str,
        channel_id: str,
    ) -> DispatchReceipt:
        """Dispara o template de WhatsApp pelo canal indicado.

        Raises:
            TemplateRejected: HTTP 2xx mas `success`/`send` falso (não retentar)
        """
        path = (
            f"whatsapp/send_template/channels/{channel_id}"
            f"/contacts/{contact_id}/users/{operator_id}"
        )
        form = {
            "quick_message_id": template_id,
            "parameters": json.dumps([first_param, second_param], ensure_ascii=False),
        }
        try:
            response = await self._http.post(self._url(path), data=form, headers=self._headers())
        except HttpError as exc:
            raise _translate(exc, "send_template") from exc

        receipt = parse_receipt(safe_json(response))
        if not (receipt.success and receipt.send_flag):
            logger.warning(
                "template_rejected",
                extra={
                    "contact_id": contact_id,
                    "template_id": template_id,
                    "success": receipt.success,
                    "send": receipt.send_flag,
                },
            )
            raise TemplateRejected(f"Poli não enviou o template {template_id}")
        return receipt


def create_poli_client(settings: Settings, http: HttpClient) -> PoliClient:
    """Factory do cliente Poli a partir de Settings."""
    return PoliClient(
        http,
        base_url=settings.poli_api_base_url,
        token=settings.poli_api_token or "",
        customer_id=settings.customer_id or "",
    )
