"""
Unit tests for the vendor registry.

Tests verify:
- Every supported System id maps to exactly one adapter.
- create_adapter() returns None for 0 and unknown ids.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from solarmeter.src.context import MeterContext
from solarmeter.src.models import VendorId
from solarmeter.src.vendors import VENDORS, create_adapter
from solarmeter.src.vendors.fronius import FroniusAdapter


class TestRegistry:
    def test_every_vendor_is_registered(self) -> None:
        assert set(VENDORS) == set(VendorId)

    def test_labels_are_unique(self) -> None:
        labels = [adapter.label for adapter in VENDORS.values()]

        assert len(labels) == len(set(labels))


class TestCreateAdapter:
    def test_known_id(self, make_ctx: Callable[..., MeterContext]) -> None:
        adapter = create_adapter(6, make_ctx())

        assert isinstance(adapter, FroniusAdapter)

    @pytest.mark.parametrize("system", [0, 9, -1])
    def test_unknown_id(
        self, system: int, make_ctx: Callable[..., MeterContext]
    ) -> None:
        assert create_adapter(system, make_ctx()) is None
