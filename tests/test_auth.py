import httpx
import pytest

from whatsapp_scheduler.application.services.scheduler_auth import (
    AuthOutcome,
    authenticate,
    extract_bearer_token,
    matches_configured_secret,
)
from whatsapp_scheduler.infrastructure.store_rest import PrivilegedReadProbe

SECRET = "s3cret-role-key"


def reader_returning(value):
    calls = []

    async def read(token):
        calls.append(token)
        return value

    return read, calls


@pytest.mark.parametrize("header", [None, "", "Basic abc", "bearer abc", "Bearer ", "Bearer    "])
def test_malformed_headers_have_no_token(header):
    assert extract_bearer_token(header) is None


def test_empty_configured_secret_never_matches():
    assert matches_configured_secret("", "") is False
    assert matches_configured_secret("anything", "") is False


@pytest.mark.asyncio
async def test_missing_header_is_401():
    read, calls = reader_returning(SECRET)
    result = await authenticate(None, SECRET, read)
    assert result.outcome is AuthOutcome.MISSING_CREDENTIALS
    assert result.status_code == 401
    assert result.message == "Acesso negado. Authorization header requerido."
    assert calls == []


@pytest.mark.asyncio
async def test_configured_secret_is_accepted_without_probe():
    read, calls = reader_returning(None)
    result = await authenticate(f"Bearer {SECRET}", SECRET, read)
    assert result.accepted
    assert result.outcome is AuthOutcome.CONFIGURED_SECRET
    assert calls == []


@pytest.mark.asyncio
async def test_privileged_read_is_accepted_after_rotation():
    read, calls = reader_returning("rotated-key")
    result = await authenticate("Bearer rotated-key", SECRET, read)
    assert result.outcome is AuthOutcome.PRIVILEGED_READ
    assert result.status_code == 200
    assert calls == ["rotated-key"]


@pytest.mark.asyncio
async def test_privileged_read_with_mismatching_value_is_still_accepted():
    read, _ = reader_returning("some-other-stored-value")
    result = await authenticate("Bearer elevated-token", SECRET, read)
    assert result.accepted
    assert result.outcome is AuthOutcome.PRIVILEGED_READ


@pytest.mark.asyncio
async def test_unknown_token_is_403():
    read, _ = reader_returning(None)
    result = await authenticate("Bearer nope", SECRET, read)
    assert result.outcome is AuthOutcome.REJECTED
    assert result.status_code == 403
    assert result.message == "Acesso negado. Service role key inválida."


@pytest.mark.asyncio
async def test_probe_reads_app_config_with_caller_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"value": "stored-key"})

    probe = PrivilegedReadProbe("https://store.test/", transport=httpx.MockTransport(handler))
    assert await probe.fetch_config_value("caller-token") == "stored-key"

    request = seen[0]
    assert request.url.path == "/rest/v1/app_config"
    assert request.url.params["key"] == "eq.service_role_key"
    assert request.headers["apikey"] == "caller-token"
    assert request.headers["Authorization"] == "Bearer caller-token"


@pytest.mark.asyncio
async def test_probe_accepts_list_responses():
    probe = PrivilegedReadProbe(
        "https://store.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[{"value": "k"}])),
    )
    assert await probe.fetch_config_value("t") == "k"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"message": "Invalid API key"}),
        httpx.Response(200, json=[]),
        httpx.Response(200, json={"value": None}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_probe_refusals_are_none(response):
    probe = PrivilegedReadProbe("https://store.test", transport=httpx.MockTransport(lambda r: response))
    assert await probe.fetch_config_value("t") is None


@pytest.mark.asyncio
async def test_probe_network_error_is_none():
    def boom(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    probe = PrivilegedReadProbe("https://store.test", transport=httpx.MockTransport(boom))
    assert await probe.fetch_config_value("t") is None


@pytest.mark.asyncio
async def test_probe_without_rest_url_is_disabled():
    assert await PrivilegedReadProbe("").fetch_config_value("t") is None
