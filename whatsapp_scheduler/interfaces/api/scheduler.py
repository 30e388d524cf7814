"""Scheduler trigger endpoint, called by an external cron (or by hand).

Answers with plain ``{"error": ...}`` / ``{"message": ...}`` bodies and CORS
headers on every response, so browser and cron callers read the same shape.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from whatsapp_scheduler.application.services.scheduler_auth import authenticate
from whatsapp_scheduler.application.services.scheduler_service import run_scheduler
from whatsapp_scheduler.config import Settings, get_settings
from whatsapp_scheduler.domain.civil_time import Clock
from whatsapp_scheduler.infrastructure.database import get_db
from whatsapp_scheduler.infrastructure.store_rest import PrivilegedReadProbe
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient
from whatsapp_scheduler.interfaces.deps import get_clock, get_privileged_probe, get_provider_client

router = APIRouter(tags=["Scheduler"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

SCHEDULER_PATH = "/whatsapp-message-scheduler"

METHOD_NOT_ALLOWED = "Use POST para executar o agendador de mensagens."


def _json(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


@router.api_route(
    SCHEDULER_PATH,
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
)
async def whatsapp_message_scheduler(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    probe: PrivilegedReadProbe = Depends(get_privileged_probe),
    provider_client: WhatsAppProviderClient = Depends(get_provider_client),
    clock: Clock = Depends(get_clock),
):
    """Run one scheduler pass: queue due reminders and dispatch them."""
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)

    if request.method != "POST":
        return _json(status.HTTP_405_METHOD_NOT_ALLOWED, {"error": METHOD_NOT_ALLOWED})

    auth = await authenticate(
        request.headers.get("authorization"),
        settings.SERVICE_ROLE_KEY,
        probe.fetch_config_value,
    )
    if not auth.accepted:
        return _json(auth.status_code, {"error": auth.message})

    result = await run_scheduler(db, provider_client=provider_client, settings=settings, now=clock())
    return _json(result.status_code, result.body)
