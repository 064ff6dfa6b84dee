"""HTTP client for the VietGuide travel backend."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx

from .auth import SessionAuth
from .config import Settings

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Base error for backend request failures.

    ``status_code`` is the HTTP status when the backend answered at all, and
    ``detail`` is the human-readable message it sent back, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class BackendAuthError(BackendError):
    """Raised when backend rejects authentication."""


class BackendNotFoundError(BackendError):
    """Raised when backend resource is not found."""


class BackendConnectionError(BackendError):
    """Raised when backend connection fails."""


class BackendRequestError(BackendError):
    """Raised for non-auth backend errors."""


def _extract_error_message(response: httpx.Response) -> str | None:
    """Pull the server's explanation out of an error response.

    The backend is not consistent about where it puts it: ``message``,
    ``detail`` (a string or an object with ``message``), ``error`` or
    ``title``. Plain-text bodies are used as-is.
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None

    if isinstance(body, str):
        return body.strip() or None
    if not isinstance(body, dict):
        return None

    for key in ("message", "detail", "error", "title"):
        value = body.get(key)
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class VietGuideClient:
    """HTTP client for the bookings, tour guide and currency endpoints."""

    def __init__(
        self,
        settings: Settings,
        auth: SessionAuth,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.auth = auth
        self.http = http or httpx.AsyncClient(
            base_url=settings.api_base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(settings.request_timeout, connect=10.0),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_id = str(uuid4())
        request_headers = await self.auth.get_headers(request_id)
        if headers:
            request_headers.update(headers)
        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.TimeoutException as exc:
            raise BackendConnectionError(
                f"backend_timeout: Request to {path} timed out"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendConnectionError(f"backend_connection_failed: {exc}") from exc

        if response.status_code >= 400:
            detail = _extract_error_message(response)
            logger.debug(
                "backend_error method=%s path=%s status=%s request_id=%s",
                method,
                path,
                response.status_code,
                request_id,
            )
            if response.status_code == 401:
                await self.auth.handle_unauthorized()
            if response.status_code in {401, 403}:
                raise BackendAuthError(
                    "backend_auth_failed", status_code=response.status_code, detail=detail
                )
            if response.status_code == 404:
                raise BackendNotFoundError(
                    "backend_not_found", status_code=404, detail=detail
                )
            raise BackendRequestError(
                f"backend_error_{response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"status_code": response.status_code, "text": response.text}

    # Bookings

    async def create_booking(self, payload: dict[str, Any]) -> Any:
        return await self.call("POST", "/tourguidebookings", json=payload)

    async def list_bookings(self) -> Any:
        return await self.call("GET", "/tourguidebookings")

    async def get_booking(self, booking_id: int | str) -> Any:
        return await self.call("GET", f"/tourguidebookings/{quote(str(booking_id), safe='')}")

    async def list_bookings_for_guide(self, tour_guide_id: int | str) -> Any:
        return await self.call(
            "GET",
            f"/tourguidebookings/tourguide/{quote(str(tour_guide_id), safe='')}",
        )

    async def update_booking_status(self, booking_id: int | str, status: str) -> Any:
        return await self.call(
            "PATCH",
            f"/tourguidebookings/{quote(str(booking_id), safe='')}/status",
            json={"status": status},
        )

    async def cancel_booking(self, booking_id: int | str) -> Any:
        return await self.call("DELETE", f"/tourguidebookings/{quote(str(booking_id), safe='')}")

    # Tour guides

    async def get_tour_guide(self, tour_guide_id: int | str) -> Any:
        return await self.call("GET", f"/tourguides/{quote(str(tour_guide_id), safe='')}")

    # Currency

    async def get_rates(
        self,
        real_time: bool = False,
        base_currency: str = "USD",
        symbols: str | None = None,
    ) -> Any:
        params: dict[str, Any] = {
            "useRealTime": "true" if real_time else "false",
            "baseCurrency": base_currency,
        }
        if symbols:
            params["symbols"] = symbols
        return await self.call("GET", "/currency/rates", params=params)

    async def batch_convert(self, items: list[dict[str, Any]]) -> Any:
        return await self.call("POST", "/currency/convert/batch", json=items)
