"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for both kinds of storage
the ledger talks to:
1. The transaction store (where records live while the process runs)
2. Remote blob storage (where snapshots live between runs)

This allows us to:
1. Swap the remote backend (Google Sheets today) without touching the
   reconciler
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interfaces are intentionally small. The store is not an ORM and the
blob storage is not a file system: just the operations the ledger needs.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from household_ledger.models.results import AccountInfo
from household_ledger.models.transaction import (
    Profile,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)


class TransactionStoreInterface(ABC):
    """
    Abstract interface for the transaction store.

    GUARANTEES every implementation must keep:
    - Not-found is a return value (None / False / 0), never an exception
    - A profile mismatch behaves exactly like not-found
    - Mutations are visible to the very next read
    """

    @abstractmethod
    async def create(
        self,
        draft: TransactionDraft,
        profile: Profile,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Store a new transaction.

        Args:
            draft: Validated income/expense draft
            profile: Owning profile
            transaction_id: Id to use verbatim (restore path). Generated
                when omitted.

        Returns:
            The stored transaction

        Raises:
            DuplicateError: If ``transaction_id`` is already taken
        """
        pass

    @abstractmethod
    async def create_many(
        self,
        entries: list[tuple[TransactionDraft, Optional[str]]],
        profile: Profile,
    ) -> list[Transaction]:
        """
        Store several transactions as one unit: all of them or none.

        Args:
            entries: (draft, id-or-None) pairs, in insertion order
            profile: Owning profile

        Raises:
            DuplicateError: If any supplied id is taken (nothing is written)
        """
        pass

    @abstractmethod
    async def get(
        self,
        transaction_id: str,
        profile: Optional[Profile] = None,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction by id.

        Returns:
            The transaction, or None if absent or owned by another profile
        """
        pass

    @abstractmethod
    async def list_transactions(self, profile: Profile) -> list[Transaction]:
        """
        All transactions of a profile, newest ``created_at`` first.
        """
        pass

    @abstractmethod
    async def update(
        self,
        transaction_id: str,
        patch: Union[TransactionUpdate, dict],
        profile: Optional[Profile] = None,
    ) -> Optional[Transaction]:
        """
        Apply a patch to the editable fields of a transaction.

        Returns:
            The updated transaction, or None if absent / other profile

        Raises:
            pydantic.ValidationError: If the patched record is invalid
        """
        pass

    @abstractmethod
    async def delete(
        self,
        transaction_id: str,
        profile: Optional[Profile] = None,
    ) -> bool:
        """
        Delete a single transaction.

        Returns:
            True if a record was deleted
        """
        pass

    @abstractmethod
    async def delete_by_parent(
        self,
        parent_id: str,
        profile: Optional[Profile] = None,
    ) -> int:
        """
        Delete every transaction whose parent is ``parent_id``.

        Returns:
            Number of deleted records
        """
        pass

    @abstractmethod
    async def clear(self, profile: Profile) -> None:
        """Delete every transaction of a profile."""
        pass

    @abstractmethod
    async def count(self, profile: Profile) -> int:
        """Number of transactions of a profile."""
        pass


class BlobStorageInterface(ABC):
    """
    Abstract interface for remote snapshot storage.

    Paths are '/'-separated; the first segments name a container
    (a folder), the last one names the blob.

    Any transport or authentication failure surfaces as
    BackendUnavailableError. Callers only ever distinguish "not found"
    from "everything else".
    """

    @abstractmethod
    async def ensure_container(self, name: str) -> str:
        """
        Create the container if it does not exist (idempotent).

        Returns:
            The backend's identifier for the container
        """
        pass

    @abstractmethod
    async def write_blob(self, path: str, content: str) -> bool:
        """
        Write a blob, replacing any previous content.

        Returns:
            True if written successfully
        """
        pass

    @abstractmethod
    async def read_blob(self, path: str) -> Optional[str]:
        """
        Read a blob.

        Returns:
            The content, or None if there is no blob at ``path``
        """
        pass

    @abstractmethod
    async def who_am_i(self) -> Optional[AccountInfo]:
        """
        Identify the account the backend is connected as.

        Returns:
            Account name and email, or None if the backend is unavailable
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class BackendUnavailableError(StorageError):
    """Remote storage failed or could not be reached."""
    pass


class OperationTimeoutError(StorageError):
    """A remote storage round trip exceeded its time limit."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} did not finish within {timeout:g} seconds")
