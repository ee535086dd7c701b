"""
Vendor adapters and the registry resolving a ``System`` id to its adapter.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from solarmeter.src.models import VendorId
from solarmeter.src.vendors.base import VendorAdapter
from solarmeter.src.vendors.enphase import EnphaseLocalAdapter, EnphaseRemoteAdapter
from solarmeter.src.vendors.fronius import FroniusAdapter
from solarmeter.src.vendors.overview import SolarEdgeAdapter, SolaxAdapter
from solarmeter.src.vendors.pvoutput import PVOutputAdapter
from solarmeter.src.vendors.solarman import SolarmanAdapter
from solarmeter.src.vendors.sungrow import SunGrowAdapter

if TYPE_CHECKING:
    from solarmeter.src.context import MeterContext

VENDORS: dict[VendorId, type[VendorAdapter]] = {
    adapter.vendor_id: adapter
    for adapter in (
        EnphaseLocalAdapter,
        EnphaseRemoteAdapter,
        SolarEdgeAdapter,
        PVOutputAdapter,
        SunGrowAdapter,
        FroniusAdapter,
        SolarmanAdapter,
        SolaxAdapter,
    )
}


def create_adapter(system: int, ctx: MeterContext) -> VendorAdapter | None:
    """Return the adapter for *system*, or ``None`` when none is selected."""
    try:
        vendor = VendorId(system)
    except ValueError:
        return None
    return VENDORS[vendor](ctx)


__all__ = ["VENDORS", "VendorAdapter", "create_adapter"]
