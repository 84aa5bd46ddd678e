"""
Snapshot Reconciler

Backs a profile up to remote blob storage and restores it from there.

SNAPSHOT FORMAT:
- One blob per profile at <root_folder>/<ProfileFolder>/<snapshot_file_name>
  (FinanceApp/Edson/transactions.json by default)
- A JSON list of camelCase transaction records, ids included, indented by 2
- No schema version field

DESIGN DECISION: Restore is a destructive replace, not a merge. The
profile is cleared, then the snapshot is written back in two passes:
1. Series heads and single transactions, keeping their original ids
2. Installments 2..N, with fresh ids and parentTransactionId rewritten
   through the old-id -> new-id map of pass 1

A child whose parent is not in the snapshot is still written, with its
original parent reference, and counted as orphaned. A row that does not
validate or whose id is taken is skipped and counted. No single bad row
aborts a restore.

Every remote round trip is time-boxed. A slow backend surfaces as
OperationTimeoutError, an unreachable one as BackendUnavailableError.
"""

import asyncio
import json
from typing import Any, Awaitable, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import TypeAdapter, ValidationError

from household_ledger.audit import AuditLogger
from household_ledger.config import SyncSettings, get_settings
from household_ledger.models.audit import AuditEventBuilder
from household_ledger.models.results import AccountInfo, BackupReport, RestoreReport
from household_ledger.models.transaction import Profile, Transaction, parse_draft
from household_ledger.services.storage.interface import (
    BackendUnavailableError,
    BlobStorageInterface,
    DuplicateError,
    OperationTimeoutError,
    TransactionStoreInterface,
)


T = TypeVar("T")

_snapshot_adapter = TypeAdapter(list[Transaction])

logger = structlog.get_logger(__name__)


class SnapshotFormatError(Exception):
    """The remote snapshot exists but is not a JSON list."""
    pass


def _parent_reference(row: dict) -> Optional[str]:
    value = row.get("parentTransactionId", row.get("parent_transaction_id"))
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return str(value)


class SnapshotReconciler:
    """
    Moves a profile's transactions between the store and remote storage.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        blob_storage: BlobStorageInterface,
        settings: Optional[SyncSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._blobs = blob_storage
        self._settings = settings or get_settings().sync
        self._audit = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    def container_name(self, profile: Profile) -> str:
        return f"{self._settings.root_folder}/{Profile(profile).folder_name}"

    def snapshot_path(self, profile: Profile) -> str:
        return f"{self.container_name(profile)}/{self._settings.snapshot_file_name}"

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        """Await a remote call, giving up after the configured timeout."""
        timeout = self._settings.operation_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise OperationTimeoutError(operation, timeout)

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    def serialize(self, records: list[Transaction]) -> str:
        """Snapshot JSON for a list of records."""
        return _snapshot_adapter.dump_json(
            records,
            indent=2,
            by_alias=True,
            exclude_none=True,
        ).decode("utf-8")

    async def backup(
        self,
        profile: Profile,
        correlation_id: Optional[UUID] = None,
    ) -> BackupReport:
        """
        Write every transaction of the profile to its snapshot blob.

        Raises:
            BackendUnavailableError: Remote storage failed
            OperationTimeoutError: Remote storage was too slow
        """
        profile = Profile(profile)
        records = await self._store.list_transactions(profile)
        path = self.snapshot_path(profile)

        await self._bounded(
            "ensure_container",
            self._blobs.ensure_container(self.container_name(profile)),
        )
        written = await self._bounded(
            "write_blob",
            self._blobs.write_blob(path, self.serialize(records)),
        )
        if not written:
            raise BackendUnavailableError(f"Remote storage refused to write {path}")

        report = BackupReport(profile=profile.value, path=path, count=len(records))
        await self._audit.log(AuditEventBuilder.backup_completed(
            profile=profile.value,
            path=path,
            count=report.count,
            correlation_id=correlation_id,
        ))
        return report

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    async def load_snapshot(self, profile: Profile) -> Optional[list[Any]]:
        """
        Read and parse the profile's snapshot.

        Returns:
            The snapshot rows, or None if there is no snapshot (or it is null)

        Raises:
            SnapshotFormatError: The blob is not a JSON list
        """
        path = self.snapshot_path(profile)
        content = await self._bounded("read_blob", self._blobs.read_blob(path))
        if content is None:
            return None
        if not content.strip():
            return []

        try:
            rows = json.loads(content)
        except json.JSONDecodeError as e:
            raise SnapshotFormatError(f"Snapshot at {path} is not valid JSON: {e}") from e
        if rows is None:
            return None
        if not isinstance(rows, list):
            raise SnapshotFormatError(
                f"Snapshot at {path} must be a list, got {type(rows).__name__}"
            )
        return rows

    async def restore(
        self,
        profile: Profile,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[RestoreReport]:
        """
        Replace the profile's transactions with its remote snapshot.

        Returns:
            The restore report, or None if there is no (or an empty)
            snapshot. Nothing is cleared in that case.
        """
        profile = Profile(profile)
        rows = await self.load_snapshot(profile)
        if not rows:
            await self._audit.log(AuditEventBuilder.snapshot_not_found(
                profile=profile.value,
                path=self.snapshot_path(profile),
                correlation_id=correlation_id,
            ))
            return None
        return await self.restore_snapshot(profile, rows, correlation_id)

    async def restore_snapshot(
        self,
        profile: Profile,
        rows: list[Any],
        correlation_id: Optional[UUID] = None,
    ) -> Optional[RestoreReport]:
        """Replace the profile's transactions with ``rows``."""
        if not rows:
            return None

        profile = Profile(profile)
        report = RestoreReport(profile=profile.value)
        await self._store.clear(profile)

        parents: list[dict] = []
        children: list[dict] = []
        for row in rows:
            if not isinstance(row, dict):
                report.skipped += 1
            elif _parent_reference(row) is None:
                parents.append(row)
            else:
                children.append(row)

        # Pass 1: heads keep their ids
        id_map: dict[str, str] = {}
        for row in parents:
            original_id = row.get("id")
            if not original_id:
                report.skipped += 1
                continue
            try:
                created = await self._store.create(
                    parse_draft(row), profile, transaction_id=str(original_id)
                )
            except (ValidationError, DuplicateError) as e:
                logger.warning(
                    "restore_row_skipped",
                    profile=profile.value,
                    id=original_id,
                    error=str(e),
                )
                report.skipped += 1
                continue
            id_map[str(original_id)] = created.id
            report.written += 1

        # Pass 2: children get fresh ids and a remapped parent
        for row in children:
            data = {k: v for k, v in row.items() if k not in ("parent_transaction_id", "id")}
            old_parent = _parent_reference(row)
            new_parent = id_map.get(old_parent)
            data["parentTransactionId"] = new_parent or old_parent
            try:
                await self._store.create(parse_draft(data), profile)
            except (ValidationError, DuplicateError) as e:
                logger.warning(
                    "restore_row_skipped",
                    profile=profile.value,
                    id=row.get("id"),
                    error=str(e),
                )
                report.skipped += 1
                continue
            if new_parent is None:
                report.orphaned += 1
            report.written += 1

        await self._audit.log(AuditEventBuilder.restore_completed(
            profile=profile.value,
            written=report.written,
            skipped=report.skipped,
            orphaned=report.orphaned,
            correlation_id=correlation_id,
        ))
        return report

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def account_info(self) -> Optional[AccountInfo]:
        """Who remote storage is connected as; None when unreachable."""
        try:
            return await self._bounded("who_am_i", self._blobs.who_am_i())
        except (BackendUnavailableError, OperationTimeoutError) as e:
            logger.warning("remote_status_unavailable", error=str(e))
            return None
