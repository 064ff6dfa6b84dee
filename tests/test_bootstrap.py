import pytest
import vietguide.observability as observability
from vietguide.bootstrap import build_services, open_services
from vietguide.config import Settings


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("VIETGUIDE_API_BASE_URL", "https://api.vietguide.test/api")
    monkeypatch.setenv("VIETGUIDE_DEFAULT_CURRENCY", "VND")
    monkeypatch.setenv("VIETGUIDE_ALLOW_CLIENT_CANCEL_CONFIRMED", "true")

    settings = Settings()

    assert settings.api_base_url == "https://api.vietguide.test/api"
    assert settings.default_currency == "VND"
    assert settings.allow_client_cancel_confirmed is True


def test_init_sentry_disabled_without_dsn(monkeypatch):
    calls = []
    monkeypatch.setattr(observability.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    assert observability.init_sentry(Settings(sentry_dsn=None)) is False
    assert calls == []


def test_init_sentry_with_dsn(monkeypatch):
    calls = []
    monkeypatch.setattr(observability.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setenv("GIT_SHA", "abc1234")
    settings = Settings(sentry_dsn="https://key@sentry.example/1", environment="staging")

    assert observability.init_sentry(settings) is True

    assert len(calls) == 1
    assert calls[0]["dsn"] == "https://key@sentry.example/1"
    assert calls[0]["environment"] == "staging"
    assert calls[0]["release"] == "abc1234"
    assert calls[0]["send_default_pii"] is False


@pytest.mark.asyncio
async def test_each_build_initialises_sentry_from_its_settings(monkeypatch):
    calls = []
    monkeypatch.setattr(observability.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    for environment in ("staging", "production"):
        services = build_services(
            Settings(sentry_dsn="https://key@sentry.example/1", environment=environment)
        )
        await services.aclose()

    assert [call["environment"] for call in calls] == ["staging", "production"]


@pytest.mark.asyncio
async def test_build_services_shares_one_client():
    settings = Settings(api_base_url="https://api.vietguide.test/api", api_token="svc")

    services = build_services(settings)

    assert services.bookings.storage is services.client
    assert services.bookings.directory is services.client
    assert services.currency.source is services.client
    assert services.bookings.settings is settings
    await services.aclose()
    assert services.client.http.is_closed


@pytest.mark.asyncio
async def test_open_services_closes_client():
    async with open_services(Settings(api_token="svc")) as services:
        client = services.client
        assert not client.http.is_closed

    assert client.http.is_closed
