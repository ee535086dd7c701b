"""
Shared adapter contract and HTTP plumbing for every vendor.

Each adapter implements two operations:

- init(): validate the configuration fields it needs, load the rolling
  series its vendor cannot supply, reset the continuous-poll flag.
- refresh(): one fetch/parse cycle producing a CanonicalReading.

Neither operation raises.  Inside an adapter, fetch and parse code raises
:class:`VendorError` (or lets ``httpx`` raise); the public methods on
:class:`VendorAdapter` convert every exception into a :class:`Failure`.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from solarmeter.src.models import (
    CanonicalReading,
    Failure,
    FailureKind,
    InitOk,
    InitResult,
    RefreshOk,
    RefreshResult,
    VendorId,
)
from solarmeter.src.store import KEY_DAY_KWH, KEY_LAST_REFRESH, KEY_WATTS
from solarmeter.src.utils import floor_decimals

if TYPE_CHECKING:
    from solarmeter.src.aggregator import SeriesSpec
    from solarmeter.src.context import MeterContext

logger = logging.getLogger(__name__)

NO_STATUS_CODE = -99
"""Code recorded when the transport failed before any HTTP status arrived."""

_IPV4_RE = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}")

_SECRET_PARAMS = frozenset({"key", "api_key", "password", "tokenid"})


class VendorError(Exception):
    """Failure raised inside an adapter and turned into a Failure result.

    Args:
        kind: Failure classification.
        code: HTTP status or vendor status code.
        message: Reason, must not contain credentials.
    """

    def __init__(self, kind: FailureKind, code: int, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message


def mask_url(url: str) -> str:
    """Return *url* with credential query parameters replaced by ``***``."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (k, "***" if k.lower() in _SECRET_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*:")))


def is_ipv4(value: str) -> bool:
    return bool(_IPV4_RE.match(value))


# ---------------------------------------------------------------------------
# Adapter base class
# ---------------------------------------------------------------------------


class VendorAdapter(ABC):
    """Base class for vendor adapters.

    Subclasses declare their configuration needs as class attributes and
    implement :meth:`_refresh`.

    Attributes:
        vendor_id: The ``System`` value selecting this adapter.
        label: Human readable vendor name for logs and messages.
        required: VendorConfig fields that must be non-empty.
        ipv4_fields: VendorConfig fields that must start with an IPv4 address.
        series: Rolling series loaded at init.
    """

    vendor_id: ClassVar[VendorId]
    label: ClassVar[str]
    required: ClassVar[tuple[str, ...]] = ()
    ipv4_fields: ClassVar[tuple[str, ...]] = ()
    series: ClassVar[tuple[SeriesSpec, ...]] = ()

    def __init__(self, ctx: MeterContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def init(self) -> InitResult:
        """Validate configuration and load rolling series."""
        cfg = self._ctx.vendor
        bad = [f for f in self.ipv4_fields if not is_ipv4(getattr(cfg, f))]
        bad += [f for f in self.required if not getattr(cfg, f)]
        if bad:
            message = f"{self.label}, missing configuration details: {', '.join(bad)}."
            logger.error(message)
            return Failure(FailureKind.CONFIG, 0, message)
        try:
            await self._ctx.aggregator.init(*self.series)
        except Exception as exc:
            logger.error("%s init failed", self.label, exc_info=True)
            return Failure(FailureKind.UNEXPECTED, 0, f"{self.label} init failed: {exc}")
        self._ctx.polling.continuous_poll = False
        return InitOk()

    async def refresh(self) -> RefreshResult:
        """Run one fetch and return the reading or a Failure."""
        try:
            reading = await self._refresh()
        except VendorError as exc:
            logger.warning("%s refresh failed (%s): %s", self.label, exc.code, exc.message)
            return Failure(exc.kind, exc.code, exc.message)
        except httpx.HTTPError as exc:
            url = mask_url(str(exc.request.url)) if _has_request(exc) else "?"
            logger.warning("%s transport error for %s: %s", self.label, url, exc)
            return Failure(
                FailureKind.TRANSPORT,
                NO_STATUS_CODE,
                f"HTTP request to {url} failed: {type(exc).__name__}",
            )
        except Exception as exc:
            logger.error("%s refresh raised", self.label, exc_info=True)
            return Failure(FailureKind.UNEXPECTED, 0, f"{type(exc).__name__}: {exc}")
        return RefreshOk(reading)

    @abstractmethod
    async def _refresh(self) -> CanonicalReading:
        """Fetch and normalize one reading; raise on failure."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and require a 200 response."""
        logger.debug("%s %s %s", self.label, method, mask_url(url))
        response = await self._ctx.http.request(
            method, url, timeout=self._ctx.request_timeout_s, **kwargs
        )
        if response.status_code != 200:
            raise VendorError(
                FailureKind.TRANSPORT,
                response.status_code,
                f"HTTP {method} to {mask_url(url)} failed.",
            )
        logger.debug("%s response: %s", self.label, response.text)
        return response

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._request("GET", url, **kwargs)
        return _decode_json(response)

    async def _set(self, key: str, value: object) -> None:
        """Write an auxiliary telemetry value to the store."""
        await self._ctx.store.set(key, value)

    async def _stable_timestamp(
        self,
        ts: int,
        watts: float | None,
        day_kwh: float | None = None,
        *,
        compare_day: bool = True,
    ) -> int:
        """Reuse the stored sample time when nothing observable changed.

        The reading counts as unchanged when watts (and, if *compare_day*,
        the day energy after storage rounding) equal the stored values.
        """
        store = self._ctx.store
        if watts != await store.get_number(KEY_WATTS):
            return ts
        if compare_day:
            if day_kwh is None:
                return ts
            if floor_decimals(day_kwh, 2) != await store.get_number(KEY_DAY_KWH):
                return ts
        previous = int(await store.get_number(KEY_LAST_REFRESH))
        return previous or ts


def _has_request(exc: httpx.HTTPError) -> bool:
    try:
        exc.request  # noqa: B018
    except RuntimeError:
        return False
    return True


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise VendorError(
            FailureKind.PROTOCOL, response.status_code, "Unparsable response body."
        ) from exc
