"""Shared pytest fixtures for cartcalc tests."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from cartcalc.services.telemetry import disable_telemetry

# Two items, two shipments, a flat item discount and a 75% shipment
# discount, taxed at 8%. Totals: 112.49 / 21.99 / 17.50 / 0.96 / 117.94.
SAMPLE_CART: dict[str, Any] = {
    "items": [
        {"id": "A", "price": "12.50", "qty": 1, "sku": "MUG-1", "category_ids": "1,2"},
        {"id": "B", "price": "99.99", "qty": 1, "sku": "KETTLE-9", "category_ids": "3"},
    ],
    "shipments": [
        {
            "id": "ups",
            "price": "11.99",
            "is_taxable": True,
            "is_discountable": False,
            "vendor": "ups",
            "method": "ground",
        },
        {"id": "fedex", "price": "10.00", "vendor": "fedex", "method": "2day"},
    ],
    "discounts": [
        {"id": "ten-off", "value": "10.00"},
        {"id": "ship75", "value": "0.75", "value_kind": "percent", "target": "shipments"},
    ],
    "include_tax": True,
    "tax_rate": "0.08",
}


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_cart_data() -> dict[str, Any]:
    """A fresh copy of the sample cart in its JSON shape."""
    return copy.deepcopy(SAMPLE_CART)


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON document under tmp_path and return its path."""

    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep telemetry, logging handlers, and config env vars test-local."""
    monkeypatch.delenv("CARTCALC_CONFIG", raising=False)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    pkg_level = logging.getLogger("cartcalc").level
    yield
    disable_telemetry()
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("cartcalc").setLevel(pkg_level)
