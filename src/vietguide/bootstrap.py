"""Wire the booking and currency services from settings."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from .auth import ReauthCallback, SessionAuth, TokenProvider
from .booking import BookingLifecycleManager
from .client import VietGuideClient
from .config import Settings
from .currency import CurrencyConversionService
from .observability import init_sentry


@dataclass
class Services:
    """The core services sharing one backend client."""

    settings: Settings
    client: VietGuideClient
    bookings: BookingLifecycleManager
    currency: CurrencyConversionService

    async def aclose(self) -> None:
        await self.client.aclose()


def build_services(
    settings: Settings | None = None,
    *,
    token_provider: TokenProvider | None = None,
    on_unauthorized: ReauthCallback | None = None,
    http: httpx.AsyncClient | None = None,
) -> Services:
    settings = settings or Settings()
    init_sentry(settings)
    auth = SessionAuth(settings, token_provider=token_provider, on_unauthorized=on_unauthorized)
    client = VietGuideClient(settings, auth, http=http)
    return Services(
        settings=settings,
        client=client,
        bookings=BookingLifecycleManager(client, client, settings=settings),
        currency=CurrencyConversionService(client),
    )


@asynccontextmanager
async def open_services(
    settings: Settings | None = None,
    *,
    token_provider: TokenProvider | None = None,
    on_unauthorized: ReauthCallback | None = None,
) -> AsyncIterator[Services]:
    services = build_services(
        settings, token_provider=token_provider, on_unauthorized=on_unauthorized
    )
    try:
        yield services
    finally:
        await services.aclose()
