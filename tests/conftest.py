"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator, Optional

from config import ServiceContext
from models.product import Product
from models.warehouse import Warehouse
from models.vehicle import Vehicle
from services.batch_submitter import BatchSubmitter
from tests.factories import FakeCatalog, FakeSink, RecordingToken

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else 1)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, error: Exception = None):
        self._data = data or []
        self._filters: list[tuple[str, object]] = []
        self._limit: Optional[int] = None
        self._error = error

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add ids
        if isinstance(data, dict):
            data = [data]
        created = []
        for position, item in enumerate(data, start=1):
            created.append({**item, "id": f"new-{position}", "created_at": datetime.utcnow().isoformat() + "Z"})
        self._data = created
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        rows = [r for r in self._data if all(r.get(c) == v for c, v in self._filters)]
        if self._limit is not None:
            rows = rows[:self._limit]
        return MockSupabaseResponse(data=rows)


class MockSupabaseRpc:
    """Mock database function call."""

    def __init__(self, result=None, error: Exception = None):
        self._result = result
        self._error = error

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        return MockSupabaseResponse(data=self._result)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._errors: dict[str, Exception] = {}
        self.rpc_calls: list[tuple[str, dict]] = []
        self.inserts: list[tuple[str, list]] = []

    def set_table_data(self, table_name: str, data: list):
        """Configure mock data for a table."""
        self._tables[table_name] = data

    def set_error(self, name: str, error: Exception):
        """Make every call on a table or database function raise."""
        self._errors[name] = error

    def table(self, name: str) -> MockSupabaseQuery:
        client = self

        class _Table(MockSupabaseQuery):
            def insert(self, data):
                client.inserts.append((name, list(data)))
                return super().insert(data)

        return _Table(list(self._tables.get(name, [])), self._errors.get(name))

    def rpc(self, function: str, params: dict) -> MockSupabaseRpc:
        self.rpc_calls.append((function, params))
        if function in self._errors:
            return MockSupabaseRpc(error=self._errors[function])
        payload = dict(params["payload"])
        payload.setdefault("id", "movement-1")
        return MockSupabaseRpc(result=[payload])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "code": "TEST", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any catalog or sink built while this fixture is active gets the mock.
    """
    with patch("services.catalog_service.get_supabase_client", return_value=mock_supabase):
        with patch("services.persistence_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def service_context() -> ServiceContext:
    return ServiceContext(url="https://test.supabase.co", key="test-key")


@pytest.fixture
def sample_products() -> list[Product]:
    return [
        Product(id="p-phone", code="PH-100", name="Phone", serialized=True, barcodes=["7701"]),
        Product(id="p-cable", code="CB-200", name="Cable", serialized=False, barcodes=["7702"]),
        Product(id="p-router", code="RT-300", name="Router", serialized=True, barcodes=["7703"]),
    ]


@pytest.fixture
def catalog(sample_products) -> FakeCatalog:
    return FakeCatalog(
        products=sample_products,
        warehouses=[
            Warehouse(id="w-main", code="MAIN", name="Main warehouse"),
            Warehouse(id="w-north", code="NORTH", name="North depot"),
        ],
        vehicles=[Vehicle(id="v-1", plate_number="ABC123", description="Van")],
    )


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def token() -> RecordingToken:
    return RecordingToken()


@pytest.fixture
def submitter(token) -> BatchSubmitter:
    """Submitter with the default retry budget and no real sleeping."""
    return BatchSubmitter(max_attempts=3, base_delay=0.5, max_delay=8.0, token=token)


