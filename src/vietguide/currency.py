"""
Currency conversion with a bounded history of recent conversions.

Rates are directional (1 ``from`` = ``rate`` ``to``). When only the reverse
pair is known the inverse is applied by dividing by the stored rate, so no
rounded reciprocal is ever used.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from pydantic import ValidationError as PydanticValidationError

from .auth import AuthenticationError
from .client import BackendError
from .errors import ConversionError, ValidationError
from .models import BatchConvertItem, ConversionRecord, ConversionResult, CurrencyRate

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 10

Amount = Union[Decimal, int, float, str]


class RateSource(Protocol):
    """Currency rate API. Implemented over HTTP by ``VietGuideClient``."""

    async def get_rates(
        self,
        real_time: bool = False,
        base_currency: str = "USD",
        symbols: Optional[str] = None,
    ) -> Any: ...


@runtime_checkable
class BatchRateSource(RateSource, Protocol):
    """Rate source that can also convert several amounts in one call."""

    async def batch_convert(self, items: list[dict[str, Any]]) -> Any: ...


class ConversionHistory:
    """Fixed-capacity record of recent conversions, newest first."""

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        self._records: deque[ConversionRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def add(self, record: ConversionRecord) -> None:
        # appendleft on a bounded deque drops the oldest entry from the right
        self._records.appendleft(record)

    @property
    def latest(self) -> Optional[ConversionRecord]:
        return self._records[0] if self._records else None

    def clear(self) -> None:
        self._records.clear()

    def as_list(self) -> list[ConversionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ConversionRecord]:
        return iter(self._records)


def _normalize_code(code: str) -> str:
    normalized = (code or "").strip().upper()
    if not normalized:
        raise ValidationError("currency code is required")
    return normalized


def _positive_amount(amount: Amount) -> Decimal:
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("amount must be positive") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("amount must be positive")
    return value


def find_rate(
    rates: Iterable[CurrencyRate], from_currency: str, to_currency: str
) -> Optional[tuple[CurrencyRate, bool]]:
    """Locate the rate for a pair.

    Returns the matching entry and whether it has to be inverted. An entry
    whose ``from_currency`` matches the requested source always wins over a
    reverse entry.
    """
    reverse: Optional[CurrencyRate] = None
    for rate in rates:
        if rate.from_currency == from_currency and rate.to_currency == to_currency:
            return rate, False
        if (
            reverse is None
            and rate.from_currency == to_currency
            and rate.to_currency == from_currency
        ):
            reverse = rate
    if reverse is not None:
        return reverse, True
    return None


def resolve_rate(
    rates: Iterable[CurrencyRate], from_currency: str, to_currency: str
) -> Optional[Decimal]:
    """Effective rate for display: direct, or the reciprocal of the reverse pair."""
    match = find_rate(rates, from_currency, to_currency)
    if match is None:
        return None
    rate, inverted = match
    if rate.rate <= 0:
        return None
    return Decimal(1) / rate.rate if inverted else rate.rate


class CurrencyConversionService:
    """Resolves rates, converts amounts and keeps the recent-conversion history."""

    def __init__(
        self,
        source: RateSource,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.source = source
        self.history = ConversionHistory()
        self.rates: list[CurrencyRate] = []
        self._clock = clock

    async def get_rates(self, real_time: bool = False, base: str = "USD") -> list[CurrencyRate]:
        """Fetch rates from the rate source.

        ``real_time`` asks for a live lookup; otherwise the backend's
        periodically refreshed snapshot is returned. The result is kept as
        the snapshot used by ``current_rate``.
        """
        base = _normalize_code(base)
        try:
            raw = await self.source.get_rates(real_time=real_time, base_currency=base)
        except (BackendError, AuthenticationError) as exc:
            logger.error("Failed to load currency rates: %s", exc, exc_info=True)
            raise ConversionError(
                getattr(exc, "detail", None), details={"base": base, "real_time": real_time}
            ) from exc

        if not isinstance(raw, list):
            raise ConversionError(details={"base": base, "reason": "malformed rates response"})
        try:
            rates = [CurrencyRate.model_validate(item) for item in raw]
        except PydanticValidationError as exc:
            raise ConversionError(
                details={"base": base, "reason": "malformed rates response"}
            ) from exc

        self.rates = rates
        return rates

    def current_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Rate for a pair from the last fetched snapshot, or ``None``."""
        src = _normalize_code(from_currency)
        dst = _normalize_code(to_currency)
        if src == dst:
            return Decimal(1)
        return resolve_rate(self.rates, src, dst)

    async def convert(
        self,
        from_currency: str,
        to_currency: str,
        amount: Amount,
        real_time: bool = False,
    ) -> Decimal:
        """Convert ``amount`` and record the conversion in history.

        Raises:
            ValidationError: If ``amount`` is not positive.
            ConversionError: If no usable rate can be obtained.
        """
        value = _positive_amount(amount)
        src = _normalize_code(from_currency)
        dst = _normalize_code(to_currency)

        if src == dst:
            result = value
        else:
            rates = await self.get_rates(real_time=real_time, base=src)
            match = find_rate(rates, src, dst)
            if match is None:
                logger.warning("No exchange rate for %s -> %s", src, dst)
                raise ConversionError(details={"from": src, "to": dst})
            rate, inverted = match
            if rate.rate <= 0:
                logger.warning("Unusable exchange rate for %s -> %s: %s", src, dst, rate.rate)
                raise ConversionError(details={"from": src, "to": dst, "rate": str(rate.rate)})
            result = value / rate.rate if inverted else value * rate.rate

        self.history.add(
            ConversionRecord(
                from_currency=src,
                to_currency=dst,
                amount=value,
                result=result,
                real_time=real_time,
                timestamp=self._clock(),
            )
        )
        return result

    async def convert_batch(
        self, items: Iterable[Union[BatchConvertItem, Mapping[str, Any]]]
    ) -> list[ConversionResult]:
        """Convert several amounts in one backend call.

        Every item is validated locally before anything is sent. Each result
        is added to history in order, so the last item ends up newest.
        """
        batch: list[BatchConvertItem] = []
        for item in items:
            if not isinstance(item, BatchConvertItem):
                try:
                    item = BatchConvertItem.model_validate(dict(item))
                except PydanticValidationError as exc:
                    raise ValidationError(
                        "invalid conversion item", details={"errors": exc.errors(include_url=False)}
                    ) from exc
            _positive_amount(item.amount)
            batch.append(
                item.model_copy(
                    update={
                        "from_currency": _normalize_code(item.from_currency),
                        "to_currency": _normalize_code(item.to_currency),
                    }
                )
            )
        if not batch:
            return []

        if not isinstance(self.source, BatchRateSource):
            raise ConversionError("batch conversion is not supported by the rate source")
        try:
            raw = await self.source.batch_convert([item.to_wire() for item in batch])
        except (BackendError, AuthenticationError) as exc:
            logger.error("Batch conversion failed: %s", exc, exc_info=True)
            raise ConversionError(getattr(exc, "detail", None)) from exc

        if not isinstance(raw, list):
            raise ConversionError(details={"reason": "malformed batch response"})
        try:
            results = [ConversionResult.model_validate(entry) for entry in raw]
        except PydanticValidationError as exc:
            raise ConversionError(details={"reason": "malformed batch response"}) from exc

        for result in results:
            self.history.add(
                ConversionRecord(
                    from_currency=result.from_currency,
                    to_currency=result.to_currency,
                    amount=result.amount,
                    result=result.result,
                    real_time=result.real_time,
                    timestamp=self._clock(),
                )
            )
        return results
