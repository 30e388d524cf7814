"""Privileged read against the store's REST gateway.

Used by the scheduler auth guard: a token that can read the single-row
``app_config`` entry is an elevated credential for the store.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class PrivilegedReadProbe:
    """Reads ``app_config.value`` for a key using the caller's token as the credential."""

    def __init__(
        self,
        rest_url: str,
        config_key: str = "service_role_key",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rest_url = rest_url.rstrip("/") if rest_url else ""
        self.config_key = config_key
        self.timeout = timeout
        self.transport = transport

    async def fetch_config_value(self, token: str) -> Optional[str]:
        """Return the stored value, or None if the read is refused or fails."""
        if not self.rest_url:
            return None

        url = f"{self.rest_url}/rest/v1/app_config"
        headers = {
            "apikey": token,
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.pgrst.object+json",
        }
        params = {"key": f"eq.{self.config_key}", "select": "value"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Privileged read probe failed: {e}")
            return None

        if not response.is_success:
            logger.warning(f"Privileged read probe refused with status {response.status_code}")
            return None

        try:
            row = response.json()
        except ValueError:
            return None
        if isinstance(row, list):
            row = row[0] if row else None
        if not isinstance(row, dict):
            return None
        value = row.get("value")
        return str(value) if value else None
