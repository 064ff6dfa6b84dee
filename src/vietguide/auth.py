"""Session authentication for backend requests."""

from __future__ import annotations

import inspect
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

import jwt
from pydantic import SecretStr

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .config import Settings

TokenProvider = Callable[[], Optional[str]]
ReauthCallback = Callable[[], Union[None, Awaitable[None]]]


class AuthenticationError(Exception):
    """Raised when the session token can no longer be used."""


def _secret_value(value: SecretStr | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return str(value)


def token_expires_at(token: str) -> datetime | None:
    """Return the ``exp`` claim of a JWT session token, if it has one.

    The signature is not verified here; the backend does that. Opaque
    (non-JWT) tokens have no known expiry.
    """
    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.DecodeError:
        return None
    exp = claims.get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        logger.warning("session_token_bad_exp_claim: %r", exp)
        return None


class SessionAuth:
    """Builds authenticated request headers and reacts to rejected sessions.

    The token comes from ``token_provider`` when given (e.g. a login store),
    otherwise from the static ``api_token`` setting. When the session is
    rejected, ``on_unauthorized`` is invoked so the owner can clear the
    stored token and send the user back through login.
    """

    def __init__(
        self,
        settings: Settings,
        token_provider: TokenProvider | None = None,
        on_unauthorized: ReauthCallback | None = None,
        *,
        expiry_leeway: timedelta = timedelta(seconds=30),
    ) -> None:
        self.settings = settings
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.expiry_leeway = expiry_leeway

    def current_token(self) -> str:
        if self.token_provider is not None:
            token = self.token_provider() or ""
        else:
            token = _secret_value(self.settings.api_token)
        return token.strip()

    def is_expired(self, token: str, now: datetime | None = None) -> bool:
        expires_at = token_expires_at(token)
        if expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= expires_at - self.expiry_leeway

    async def get_headers(self, request_id: str) -> dict[str, str]:
        headers = {"X-Request-Id": request_id}
        token = self.current_token()
        # anonymous requests are allowed; the backend decides what needs a session
        if not token:
            return headers
        if self.is_expired(token):
            logger.info("session_token_expired")
            await self.handle_unauthorized()
            raise AuthenticationError("session_token_expired")
        headers["Authorization"] = f"Bearer {token}"
        return headers

    async def handle_unauthorized(self) -> None:
        if self.on_unauthorized is None:
            return
        result = self.on_unauthorized()
        if inspect.isawaitable(result):
            await result
