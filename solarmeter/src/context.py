"""
Explicit runtime context threaded through the orchestrator and adapters.

Replaces process-wide globals: everything a refresh cycle touches (store,
clock, HTTP client, vendor credentials, polling state, rolling series) is
reachable from one MeterContext built at startup.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from solarmeter.src.aggregator import RollingAggregator
from solarmeter.src.config import VendorConfig
from solarmeter.src.models import PollingState

if TYPE_CHECKING:
    import httpx

    from solarmeter.src.clock import Clock, SunSchedule
    from solarmeter.src.store import Store

DEFAULT_REQUEST_TIMEOUT_S: float = 15.0


@dataclass(slots=True)
class MeterContext:
    """Everything one refresh cycle needs.

    Attributes:
        store: External key/value store.
        clock: Source of "now".
        sun: Sunrise/sunset schedule.
        http: Shared async HTTP client.
        vendor: Vendor credentials, loaded from the store at startup.
        polling: Mutable polling state.
        aggregator: Week/month/year rolling series.
        request_timeout_s: Timeout per vendor request.
    """

    store: Store
    clock: Clock
    sun: SunSchedule
    http: httpx.AsyncClient
    vendor: VendorConfig = field(default_factory=VendorConfig)
    polling: PollingState = field(default_factory=PollingState)
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    aggregator: RollingAggregator = field(init=False)

    def __post_init__(self) -> None:
        self.aggregator = RollingAggregator(self.store, self.clock)
