"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Transactions live in memory; snapshots go to Google Sheets, but the blob
backend is designed to be swappable.
"""

from household_ledger.services.storage.interface import (
    BackendUnavailableError,
    BlobStorageInterface,
    DuplicateError,
    OperationTimeoutError,
    StorageError,
    TransactionStoreInterface,
)
from household_ledger.services.storage.memory import (
    InMemoryBlobStorage,
    InMemoryTransactionStore,
)
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsBlobStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "BlobStorageInterface",
    "TransactionStoreInterface",
    # Exceptions
    "BackendUnavailableError",
    "DuplicateError",
    "OperationTimeoutError",
    "StorageError",
    # In-memory implementation
    "InMemoryBlobStorage",
    "InMemoryTransactionStore",
    # Google Sheets implementation
    "GoogleSheetsBlobStorage",
    "GoogleSheetsClient",
]
