"""Services package."""

from household_ledger.services.storage import (
    BackendUnavailableError,
    BlobStorageInterface,
    DuplicateError,
    GoogleSheetsBlobStorage,
    GoogleSheetsClient,
    InMemoryBlobStorage,
    InMemoryTransactionStore,
    OperationTimeoutError,
    StorageError,
    TransactionStoreInterface,
)

__all__ = [
    "BackendUnavailableError",
    "BlobStorageInterface",
    "DuplicateError",
    "GoogleSheetsBlobStorage",
    "GoogleSheetsClient",
    "InMemoryBlobStorage",
    "InMemoryTransactionStore",
    "OperationTimeoutError",
    "StorageError",
    "TransactionStoreInterface",
]
