"""
Data model for one refresh cycle and for the process-wide polling state.

CanonicalReading is the normalized output of every vendor adapter.  Fields a
vendor does not deliver (or that did not change this cycle) are ``None``;
the orchestrator never writes a ``None`` field to the external store, which
keeps "no new information" distinct from a legitimate zero.

Adapter operations return explicit result values (InitOk, RefreshOk or
Failure) instead of raising, so the orchestrator only ever inspects a result.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Drop unused PollingState fields

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Vendor identifiers (value of the ``System`` store key)
# ---------------------------------------------------------------------------


class VendorId(IntEnum):
    """Supported monitoring systems.  ``0`` means none selected."""

    ENPHASE_LOCAL = 1
    ENPHASE_REMOTE = 2
    SOLAREDGE = 3
    PVOUTPUT = 4
    SUNGROW = 5
    FRONIUS = 6
    SOLARMAN = 7
    SOLAX = 8


# ---------------------------------------------------------------------------
# Canonical reading
# ---------------------------------------------------------------------------


class CanonicalReading(BaseModel):
    """A single normalized sample from the active vendor.

    Attributes:
        ts: Authoritative sample time in seconds since the epoch.
        watts: Instantaneous production in watts.
        day_kwh: Energy produced today in kWh.
        week_kwh: Trailing seven-day energy in kWh.
        month_kwh: Energy produced this calendar month in kWh.
        year_kwh: Energy produced this calendar year in kWh.
        life_kwh: Lifetime energy in kWh.
    """

    ts: int
    watts: float | None = None
    day_kwh: float | None = None
    week_kwh: float | None = None
    month_kwh: float | None = None
    year_kwh: float | None = None
    life_kwh: float | None = None


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class FailureKind(str, Enum):
    """Classification of a failed adapter operation."""

    CONFIG = "config"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True, slots=True)
class Failure:
    """A failed Init or Refresh.

    Attributes:
        kind: What went wrong.
        code: HTTP status, vendor status code, ``-99`` when the transport
            produced no status, or ``0`` for unexpected errors.
        message: Human readable reason, safe to log (no credentials).
    """

    kind: FailureKind
    code: int
    message: str


@dataclass(frozen=True, slots=True)
class InitOk:
    """Successful adapter initialisation."""


@dataclass(frozen=True, slots=True)
class RefreshOk:
    """Successful refresh carrying the normalized reading."""

    reading: CanonicalReading


InitResult = InitOk | Failure
RefreshResult = RefreshOk | Failure


# ---------------------------------------------------------------------------
# Process-wide polling state
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PollingState:
    """Mutable state carried across refresh cycles.

    Attributes:
        continuous_poll: True when the vendor reports grid or battery flows,
            which disables the night-time suspension of polling.
        http_code: ``"Ok"`` or the code of the last failure.
    """

    continuous_poll: bool = False
    http_code: str = ""
