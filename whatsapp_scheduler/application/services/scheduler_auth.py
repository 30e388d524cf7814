"""Bearer-token guard for the scheduler endpoint.

Two independent accept paths, so the secret can be rotated without
redeploying the scheduler:

1. the token equals the configured ``SERVICE_ROLE_KEY``;
2. the token succeeds as a privileged credential on the store, i.e. it can
   read the ``app_config`` row. A stored value that differs from the token is
   still accepted: reading the row at all is what proves the credential.
"""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog
from fastapi import status

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "

ConfigValueReader = Callable[[str], Awaitable[Optional[str]]]


class AuthOutcome(str, Enum):
    CONFIGURED_SECRET = "configured_secret"
    PRIVILEGED_READ = "privileged_read"
    MISSING_CREDENTIALS = "missing_credentials"
    REJECTED = "rejected"


@dataclass
class AuthResult:
    outcome: AuthOutcome
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.outcome in (AuthOutcome.CONFIGURED_SECRET, AuthOutcome.PRIVILEGED_READ)

    @property
    def status_code(self) -> int:
        if self.accepted:
            return status.HTTP_200_OK
        if self.outcome is AuthOutcome.MISSING_CREDENTIALS:
            return status.HTTP_401_UNAUTHORIZED
        return status.HTTP_403_FORBIDDEN


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def matches_configured_secret(token: str, secret: str) -> bool:
    if not secret:
        return False
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


async def succeeds_as_privileged_credential(token: str, read_config_value: ConfigValueReader) -> bool:
    value = await read_config_value(token)
    if value is None:
        return False
    if value != token:
        # Surprising but intended: the read itself proves the credential
        logger.warning("Token differs from stored app_config value but can read it; accepting")
    return True


async def authenticate(
    authorization: Optional[str],
    secret: str,
    read_config_value: ConfigValueReader,
) -> AuthResult:
    token = extract_bearer_token(authorization)
    if token is None:
        logger.error("Access denied: Authorization header missing or malformed")
        return AuthResult(AuthOutcome.MISSING_CREDENTIALS, "Acesso negado. Authorization header requerido.")

    if matches_configured_secret(token, secret):
        logger.info("Scheduler token accepted", path=AuthOutcome.CONFIGURED_SECRET.value)
        return AuthResult(AuthOutcome.CONFIGURED_SECRET)

    if await succeeds_as_privileged_credential(token, read_config_value):
        logger.info("Scheduler token accepted", path=AuthOutcome.PRIVILEGED_READ.value)
        return AuthResult(AuthOutcome.PRIVILEGED_READ)

    logger.error("Access denied: service role key rejected", token_length=len(token))
    return AuthResult(AuthOutcome.REJECTED, "Acesso negado. Service role key inválida.")
