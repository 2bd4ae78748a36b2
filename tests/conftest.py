"""
Shared fixtures for the reorder-risk test suite.
"""

import copy
import threading
from typing import Any, Dict, List

import pytest

from reorder_risk.catalog.accessor import InventoryRecord, records_from_payload
from reorder_risk.config import PipelineSettings
from reorder_risk.pipeline.orchestrator import PipelineOrchestrator
from reorder_risk.pipeline.state import PipelineState


class StaticAccessor:
    """Returns the same payload on every call."""

    def __init__(self, payload: List[Dict[str, Any]]):
        self.payload = payload
        self.calls = 0

    def fetch_products(self):
        self.calls += 1
        return copy.deepcopy(self.payload)


class FailingAccessor:
    """Simulates an unreachable catalog API."""

    def __init__(self, error: Exception = None):
        self.error = error or ConnectionError('connection refused')

    def fetch_products(self):
        raise self.error


class BlockingAccessor(StaticAccessor):
    """Blocks inside fetch_products until released."""

    def __init__(self, payload):
        super().__init__(payload)
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch_products(self):
        self.entered.set()
        self.release.wait(timeout=10)
        return super().fetch_products()


@pytest.fixture
def catalog_payload() -> List[Dict[str, Any]]:
    """Mixed naming variants; reorder labels 1, 0, 1, 0, 1, 0."""
    return [
        {'id': 1, 'name': 'Widget', 'inventory': 5, 'avg_sales': 10, 'lead_time': 2},
        {'id': 2, 'name': 'Gadget', 'inventory': 400, 'avg_sales': 5, 'lead_time': 3},
        {'id': 3, 'product_name': 'Sprocket', 'inventory_level': 0, 'average_sales': 7, 'days_to_replenish': 4},
        {'id': 4, 'product_name': 'Bolt', 'inventory_level': 90, 'average_sales': 2, 'days_to_replenish': 10},
        {'id': 5, 'name': 'Nut', 'inventory': 12, 'avg_sales': 6, 'lead_time': 5},
        {'id': 6, 'name': 'Washer', 'inventory': 300, 'avg_sales': 1, 'lead_time': 1},
    ]


@pytest.fixture
def records(catalog_payload) -> List[InventoryRecord]:
    return records_from_payload(catalog_payload)


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(random_seed=7)


@pytest.fixture
def fast_options() -> Dict[str, Any]:
    return {'epochs': 40, 'learningRate': 0.01, 'randomState': 0}


@pytest.fixture
def make_orchestrator(settings):
    def factory(accessor=None) -> PipelineOrchestrator:
        return PipelineOrchestrator(PipelineState(), accessor, settings)
    return factory
