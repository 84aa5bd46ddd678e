"""
Shared fixtures.

Every test gets a fresh store and fresh blob storage; nothing is shared
between tests. Time is frozen at FIXED_NOW wherever a clock is injected.
"""

from datetime import datetime, timezone

import pytest

from household_ledger.config import AppSettings, SyncSettings
from household_ledger.orchestrator import LedgerService
from household_ledger.services.storage import InMemoryBlobStorage, InMemoryTransactionStore
from household_ledger.sync import SnapshotReconciler


FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def expense(**overrides) -> dict:
    """A valid expense payload (camelCase, as a client sends it)."""
    data = {
        "type": "expense",
        "amount": "50.00",
        "description": "Groceries",
        "category": "food",
        "paymentMethod": "pix",
    }
    data.update(overrides)
    return data


def income(**overrides) -> dict:
    """A valid income payload."""
    data = {
        "type": "income",
        "amount": "1000.00",
        "description": "Salary",
        "category": "salary",
        "paymentMethod": "pix",
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return InMemoryTransactionStore(clock=fixed_clock)


@pytest.fixture
def blob_storage():
    return InMemoryBlobStorage()


@pytest.fixture
def app_settings():
    return AppSettings(default_profile="edson", max_transaction_amount=1000000.0)


@pytest.fixture
def sync_settings():
    return SyncSettings(
        root_folder="FinanceApp",
        snapshot_file_name="transactions.json",
        operation_timeout_seconds=10.0,
    )


@pytest.fixture
def reconciler(store, blob_storage, sync_settings):
    return SnapshotReconciler(store, blob_storage, settings=sync_settings)


@pytest.fixture
def service(store, reconciler, app_settings):
    return LedgerService(
        store=store,
        reconciler=reconciler,
        settings=app_settings,
        clock=fixed_clock,
    )
