"""Configurable WhatsApp provider HTTP client.

The provider row fully describes the request: URL, method, auth header and a
payload template whose string values carry ``{phone}``/``{text}`` or
``[PHONE]``/``[TEXT]`` placeholders. Two encodings are supported:

- ``json`` (default): placeholders substituted through the whole object tree.
- ``form-data``: one multipart field per top-level template key.

No retries: a failed send is recorded and not
attempted again.
"""

import copy
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from whatsapp_scheduler.domain.enums import PayloadContentType
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.phone import to_provider_digits

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
ERR_NO_WHATSAPP_CONNECTION = "ERR_NO_WHATSAPP_CONNECTION"

# ASCII control characters except \t, \n, \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


@dataclass
class ProviderResponse:
    ok: bool
    status: int
    body: Any


def sanitize_text(text: str) -> str:
    """Drop control characters and normalize line breaks to ``\\n``."""
    cleaned = _CONTROL_CHARS.sub("", text or "")
    return cleaned.replace("\r\n", "\n").replace("\r", "\n")


def substitute_placeholders(value: str, phone: str, text: str) -> str:
    return (
        value.replace("{phone}", phone)
        .replace("{text}", text)
        .replace("[PHONE]", phone)
        .replace("[TEXT]", text)
    )


def render_payload(node: Any, phone: str, text: str) -> Any:
    """Substitute placeholders in every string of a JSON value, recursing into lists and dicts."""
    if isinstance(node, str):
        return substitute_placeholders(node, phone, text)
    if isinstance(node, list):
        return [render_payload(item, phone, text) for item in node]
    if isinstance(node, dict):
        return {key: render_payload(value, phone, text) for key, value in node.items()}
    return node


def merge_provider_ids(provider: MessagingProvider) -> Dict[str, Any]:
    """Copy of the payload template with userId/queueId from the provider row.

    Provider values always win; when the provider has none, whatever the
    template specifies is kept, falling back to an empty string.
    """
    template = copy.deepcopy(provider.payload_template or {})
    if not isinstance(template, dict):
        raise ValueError(f"payload_template of provider {provider.id} must be a JSON object")

    if provider.user_id:
        template["userId"] = provider.user_id
    elif not template.get("userId"):
        template["userId"] = ""

    if provider.queue_id:
        template["queueId"] = provider.queue_id
    elif not template.get("queueId"):
        template["queueId"] = ""

    return template


def build_auth_headers(provider: MessagingProvider) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if provider.auth_key and provider.auth_token:
        token = provider.auth_token
        if provider.auth_key.lower() == "authorization" and not token.startswith("Bearer "):
            token = f"Bearer {token}"
        headers[provider.auth_key] = token
    return headers


def build_json_body(template: Dict[str, Any], phone: str, text: str) -> str:
    return json.dumps(render_payload(template, phone, sanitize_text(text)), ensure_ascii=False)


def build_form_fields(template: Dict[str, Any], phone: str, text: str) -> List[Tuple[str, str]]:
    """Form fields for multipart providers.

    None values and empty strings are omitted (some providers reject empty
    fields); booleans are sent as ``true``/``false``, so ``False`` is kept.
    """
    fields: List[Tuple[str, str]] = []
    for key, value in template.items():
        if value is None:
            continue
        if isinstance(value, str):
            field_value = substitute_placeholders(value, phone, text)
        elif isinstance(value, bool):
            field_value = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            field_value = json.dumps(value, ensure_ascii=False)
        else:
            field_value = str(value)

        if field_value in ("", '""'):
            continue
        fields.append((key, field_value))
    return fields


class WhatsAppProviderClient:
    """Sends one message through the provider described by a ``MessagingProvider`` row."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _build_request_kwargs(self, provider: MessagingProvider, phone: str, text: str) -> Dict[str, Any]:
        template = merge_provider_ids(provider)
        content_type = provider.content_type or PayloadContentType.JSON.value
        method = (provider.http_method or "POST").upper()
        headers = build_auth_headers(provider)
        kwargs: Dict[str, Any] = {"method": method, "url": provider.base_url, "headers": headers}

        if content_type == PayloadContentType.FORM_DATA.value:
            fields = build_form_fields(template, phone, text)
            logger.debug(f"Provider {provider.id} form fields: {dict(fields)}")
            if method != "GET" and fields:
                # (None, value) parts are plain form fields, not file uploads
                kwargs["files"] = [(key, (None, value)) for key, value in fields]
        else:
            headers["Content-Type"] = "application/json"
            if method != "GET":
                kwargs["content"] = build_json_body(template, phone, text).encode("utf-8")
        return kwargs

    async def send(self, provider: MessagingProvider, e164_phone: str, text: str) -> ProviderResponse:
        """Dispatch a message. Raises ``httpx.HTTPError`` on transport failures."""
        phone = to_provider_digits(e164_phone)
        kwargs = self._build_request_kwargs(provider, phone, text)

        logger.info(f"Sending WhatsApp message via provider {provider.id} ({kwargs['method']} {provider.base_url}) to {phone}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(**kwargs)

        try:
            body = response.json()
        except ValueError:
            body = response.text

        ok = response.is_success
        logger.info(f"Provider {provider.id} answered {response.status_code} (ok={ok})")

        if not ok and isinstance(body, dict) and body.get("error") == ERR_NO_WHATSAPP_CONNECTION:
            logger.error(
                f"WhatsApp connection is not active on the provider for user_id={provider.user_id}, "
                f"queue_id={provider.queue_id}; check the provider panel and the configured identifiers"
            )

        return ProviderResponse(ok=ok, status=response.status_code, body=body)
