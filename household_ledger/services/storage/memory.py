"""
In-Memory Storage Implementations

The transaction store is the ledger's primary storage: records live in
process memory and are made durable only through snapshots (see
household_ledger.sync). The in-memory blob storage stands in for the
remote backend in tests and when no remote backend is configured.

DESIGN DECISION: Two secondary indexes are kept next to the record map:
- profile -> ids, so listing a profile never scans other profiles
- parent id -> child ids, so deleting an installment series costs
  O(children) rather than O(all records)

Methods are coroutines to satisfy the storage interface, but none of them
awaits while mutating, so under asyncio every call is atomic.
"""

from typing import Callable, Optional, Union
from uuid import uuid4

from household_ledger.models.results import AccountInfo
from household_ledger.models.transaction import (
    Profile,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    build_transaction,
    parse_draft,
    parse_transaction,
    utc_now,
)
from household_ledger.services.storage.interface import (
    BlobStorageInterface,
    DuplicateError,
    TransactionStoreInterface,
)


def _new_id() -> str:
    return str(uuid4())


class InMemoryTransactionStore(TransactionStoreInterface):
    """
    Transaction store backed by dictionaries.

    Construct one per process (or per test) and inject it; nothing here
    is module-level state.
    """

    def __init__(
        self,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable] = None,
    ):
        self._records: dict[str, Transaction] = {}
        # dict used as an insertion-ordered set
        self._by_profile: dict[Profile, dict[str, None]] = {p: {} for p in Profile}
        self._children: dict[str, set[str]] = {}
        self._new_id = id_factory or _new_id
        self._clock = clock or utc_now

    # -------------------------------------------------------------------------
    # Index maintenance
    # -------------------------------------------------------------------------

    def _insert(self, record: Transaction) -> None:
        self._records[record.id] = record
        self._by_profile[record.profile][record.id] = None
        if record.parent_transaction_id:
            self._children.setdefault(record.parent_transaction_id, set()).add(record.id)

    def _remove(self, transaction_id: str) -> Transaction:
        record = self._records.pop(transaction_id)
        self._by_profile[record.profile].pop(transaction_id, None)
        parent_id = record.parent_transaction_id
        if parent_id and parent_id in self._children:
            siblings = self._children[parent_id]
            siblings.discard(transaction_id)
            if not siblings:
                del self._children[parent_id]
        return record

    def _visible(self, transaction_id: str, profile: Optional[Profile]) -> Optional[Transaction]:
        record = self._records.get(transaction_id)
        if record is None:
            return None
        if profile is not None and record.profile != Profile(profile):
            return None
        return record

    # -------------------------------------------------------------------------
    # TransactionStoreInterface
    # -------------------------------------------------------------------------

    async def create(
        self,
        draft: TransactionDraft,
        profile: Profile,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """Store a new transaction, generating an id unless one is given."""
        transaction_id = transaction_id or self._new_id()
        if transaction_id in self._records:
            raise DuplicateError(f"Transaction id already exists: {transaction_id}")

        record = build_transaction(
            parse_draft(draft),
            transaction_id,
            Profile(profile),
            created_at=self._clock(),
        )
        self._insert(record)
        return record

    async def create_many(
        self,
        entries: list[tuple[TransactionDraft, Optional[str]]],
        profile: Profile,
    ) -> list[Transaction]:
        """Validate and id-check every entry first, then insert them all."""
        profile = Profile(profile)
        now = self._clock()
        pending: list[Transaction] = []
        claimed: set[str] = set()

        for draft, transaction_id in entries:
            transaction_id = transaction_id or self._new_id()
            if transaction_id in self._records or transaction_id in claimed:
                raise DuplicateError(f"Transaction id already exists: {transaction_id}")
            claimed.add(transaction_id)
            pending.append(
                build_transaction(parse_draft(draft), transaction_id, profile, created_at=now)
            )

        for record in pending:
            self._insert(record)
        return pending

    async def get(
        self,
        transaction_id: str,
        profile: Optional[Profile] = None,
    ) -> Optional[Transaction]:
        return self._visible(transaction_id, profile)

    async def list_transactions(self, profile: Profile) -> list[Transaction]:
        """Newest first; within one series, installment order."""
        records = [self._records[tid] for tid in self._by_profile[Profile(profile)]]
        return sorted(
            records,
            key=lambda t: (t.created_at, -t.current_installment),
            reverse=True,
        )

    async def update(
        self,
        transaction_id: str,
        patch: Union[TransactionUpdate, dict],
        profile: Optional[Profile] = None,
    ) -> Optional[Transaction]:
        existing = self._visible(transaction_id, profile)
        if existing is None:
            return None

        if not isinstance(patch, TransactionUpdate):
            patch = TransactionUpdate.model_validate(patch)

        merged = existing.model_dump()
        merged.update(patch.changes())
        updated = parse_transaction(merged)

        # Editable fields never touch the indexes
        self._records[transaction_id] = updated
        return updated

    async def delete(
        self,
        transaction_id: str,
        profile: Optional[Profile] = None,
    ) -> bool:
        if self._visible(transaction_id, profile) is None:
            return False
        self._remove(transaction_id)
        return True

    async def delete_by_parent(
        self,
        parent_id: str,
        profile: Optional[Profile] = None,
    ) -> int:
        count = 0
        for child_id in list(self._children.get(parent_id, ())):
            if self._visible(child_id, profile) is None:
                continue
            self._remove(child_id)
            count += 1
        return count

    async def clear(self, profile: Profile) -> None:
        for transaction_id in list(self._by_profile[Profile(profile)]):
            self._remove(transaction_id)

    async def count(self, profile: Profile) -> int:
        return len(self._by_profile[Profile(profile)])


class InMemoryBlobStorage(BlobStorageInterface):
    """
    Blob storage kept in a dictionary.

    Used by tests and as the fallback when remote storage is not configured:
    backups then only survive as long as the process does.
    """

    def __init__(self, account: Optional[AccountInfo] = None):
        self._containers: dict[str, str] = {}
        self._blobs: dict[str, str] = {}
        self._account = account or AccountInfo(name="Local storage")

    async def ensure_container(self, name: str) -> str:
        name = name.strip("/")
        if name not in self._containers:
            self._containers[name] = _new_id()
        return self._containers[name]

    async def write_blob(self, path: str, content: str) -> bool:
        self._blobs[path.strip("/")] = content
        return True

    async def read_blob(self, path: str) -> Optional[str]:
        return self._blobs.get(path.strip("/"))

    async def who_am_i(self) -> Optional[AccountInfo]:
        return self._account
