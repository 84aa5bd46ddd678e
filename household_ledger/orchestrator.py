"""
Main Orchestrator for Household Ledger

This module ties together all the components and defines the operation
surface any transport (HTTP routes, a CLI, tests) calls into:
1. Transactions (list, get, create with installment expansion, update,
   delete with series cascade)
2. Queries (monthly summary, breakdowns)
3. Export / import (import is validated and de-duplicated)
4. Remote snapshots (backup, restore, status)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every operation is scoped to one profile; unknown profiles fall back
  to the configured default
- Every operation returns an OperationOutcome, never raises, never leaks
  a stack trace
- Every mutation is audited

This is the "glue" that ensures the system behaves predictably even when
individual components (remote storage in particular) do not.
"""

import functools
from datetime import datetime
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import AppSettings, get_settings, validate_all_settings
from household_ledger.installments import ExpansionError, InstallmentExpander
from household_ledger.models.audit import AuditEventBuilder
from household_ledger.models.results import (
    FailureKind,
    ImportReport,
    OperationOutcome,
    ValidationIssue,
)
from household_ledger.models.transaction import (
    Profile,
    TransactionUpdate,
    parse_draft,
    utc_now,
)
from household_ledger.queries import (
    PeriodFilter,
    SummaryAggregator,
    TransactionFilter,
    filter_transactions,
)
from household_ledger.services.storage import (
    BackendUnavailableError,
    BlobStorageInterface,
    GoogleSheetsBlobStorage,
    GoogleSheetsClient,
    InMemoryBlobStorage,
    InMemoryTransactionStore,
    OperationTimeoutError,
    TransactionStoreInterface,
)
from household_ledger.sync import SnapshotFormatError, SnapshotReconciler
from household_ledger.validation import (
    DuplicateDetector,
    TransactionValidator,
    issues_from_error,
)


logger = structlog.get_logger(__name__)

ProfileLike = Union[Profile, str, None]


def _issue_dicts(issues: list[ValidationIssue]) -> list[dict]:
    return [issue.to_record() for issue in issues]


def guarded(operation: str):
    """
    Turn an unexpected exception into an internal_error outcome.

    Expected failures are handled inside each operation; this only
    catches what slipped through, after logging it.
    """
    def decorator(method):
        @functools.wraps(method)
        async def wrapper(self, *args, **kwargs) -> OperationOutcome:
            try:
                return await method(self, *args, **kwargs)
            except Exception as e:
                await self._audit.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation},
                )
                return OperationOutcome.failure(
                    FailureKind.INTERNAL_ERROR,
                    f"Unexpected error while trying to {operation}",
                )
        return wrapper
    return decorator


class LedgerService:
    """
    The ledger's operation surface.

    Flow of a create:
    1. Resolve profile
    2. Schema validation (pydantic)
    3. Expand into installments if it is a split credit-card purchase
    4. Store (all installments or none)
    5. Audit

    Flow of an import:
    1. Validate each row (schema + semantic)
    2. Drop rows matching a stored record or an earlier row of the batch
    3. Store accepted rows as they are (no installment expansion)
    4. Report imported / duplicates / invalid
    """

    def __init__(
        self,
        store: Optional[TransactionStoreInterface] = None,
        blob_storage: Optional[BlobStorageInterface] = None,
        validator: Optional[TransactionValidator] = None,
        expander: Optional[InstallmentExpander] = None,
        aggregator: Optional[SummaryAggregator] = None,
        reconciler: Optional[SnapshotReconciler] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or get_settings().app
        self._clock = clock or utc_now
        self._audit = audit_logger or AuditLogger()
        self._store = store or InMemoryTransactionStore(clock=self._clock)
        self._validator = validator or TransactionValidator(self._settings)
        self._expander = expander or InstallmentExpander(self._store, clock=self._clock)
        self._aggregator = aggregator or SummaryAggregator(self._store, clock=self._clock)
        self._reconciler = reconciler or SnapshotReconciler(
            self._store,
            blob_storage or InMemoryBlobStorage(),
            audit_logger=self._audit,
        )

    # =========================================================================
    # PROFILES
    # =========================================================================

    def resolve_profile(self, value: ProfileLike) -> Profile:
        """
        Map a request's profile value to a Profile.

        Missing or unknown values fall back to the default profile.
        """
        if isinstance(value, Profile):
            return value
        if isinstance(value, str):
            try:
                return Profile(value.strip().lower())
            except ValueError:
                pass
        try:
            return Profile(self._settings.default_profile.strip().lower())
        except ValueError:
            return Profile.EDSON

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @guarded("list transactions")
    async def list_transactions(
        self,
        profile: ProfileLike,
        filters: Union[TransactionFilter, dict, None] = None,
    ) -> OperationOutcome:
        profile = self.resolve_profile(profile)
        if isinstance(filters, dict):
            try:
                filters = TransactionFilter.model_validate(filters)
            except ValidationError as e:
                return OperationOutcome.failure(
                    FailureKind.VALIDATION_FAILURE,
                    "Invalid filters",
                    _issue_dicts(issues_from_error(e)),
                )

        records = await self._store.list_transactions(profile)
        return OperationOutcome.ok(filter_transactions(records, filters, self._clock()))

    @guarded("fetch the transaction")
    async def get_transaction(self, profile: ProfileLike, transaction_id: str) -> OperationOutcome:
        record = await self._store.get(transaction_id, self.resolve_profile(profile))
        if record is None:
            return OperationOutcome.failure(FailureKind.NOT_FOUND, "Transaction not found")
        return OperationOutcome.ok(record)

    @guarded("create the transaction")
    async def create_transaction(
        self,
        profile: ProfileLike,
        payload: Any,
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        """
        Create a transaction, or a whole installment series.

        On success ``data`` is the created record, or the list of
        installments (in order) for a split credit-card purchase.
        """
        profile = self.resolve_profile(profile)
        correlation_id = correlation_id or create_correlation_id()

        try:
            draft = parse_draft(payload)
        except ValidationError as e:
            issues = _issue_dicts(issues_from_error(e))
            await self._audit.log_validation_failed(profile.value, issues, correlation_id)
            return OperationOutcome.failure(
                FailureKind.VALIDATION_FAILURE,
                "Invalid transaction data",
                issues,
            )

        try:
            created = await self._expander.expand(draft, profile)
        except ExpansionError as e:
            await self._audit.log(AuditEventBuilder.expansion_failed(
                profile=profile.value,
                requested=e.requested,
                created=e.created,
                error_message=str(e.cause),
                correlation_id=correlation_id,
            ))
            if isinstance(e.cause, ValidationError):
                return OperationOutcome.failure(
                    FailureKind.VALIDATION_FAILURE,
                    "Installments could not be created",
                    _issue_dicts(issues_from_error(e.cause)),
                )
            return OperationOutcome.failure(
                FailureKind.CONFLICT,
                "Installments could not be created",
            )

        head = created[0]
        if len(created) > 1:
            await self._audit.log(AuditEventBuilder.installments_expanded(
                profile=profile.value,
                parent_id=head.id,
                installments=len(created),
                installment_amount=str(head.amount),
                correlation_id=correlation_id,
            ))
            return OperationOutcome.ok(created, f"{len(created)} installments created")

        await self._audit.log(AuditEventBuilder.transaction_created(
            profile=profile.value,
            transaction_id=head.id,
            amount=str(head.amount),
            correlation_id=correlation_id,
        ))
        return OperationOutcome.ok(head, "Transaction created")

    @guarded("update the transaction")
    async def update_transaction(
        self,
        profile: ProfileLike,
        transaction_id: str,
        patch: Union[TransactionUpdate, dict],
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        profile = self.resolve_profile(profile)

        try:
            if not isinstance(patch, TransactionUpdate):
                patch = TransactionUpdate.model_validate(patch)
            updated = await self._store.update(transaction_id, patch, profile)
        except ValidationError as e:
            issues = _issue_dicts(issues_from_error(e))
            await self._audit.log_validation_failed(profile.value, issues, correlation_id)
            return OperationOutcome.failure(
                FailureKind.VALIDATION_FAILURE,
                "Invalid transaction data",
                issues,
            )

        if updated is None:
            return OperationOutcome.failure(FailureKind.NOT_FOUND, "Transaction not found")

        await self._audit.log(AuditEventBuilder.transaction_updated(
            profile=profile.value,
            transaction_id=transaction_id,
            fields=sorted(patch.changes()),
            correlation_id=correlation_id,
        ))
        return OperationOutcome.ok(updated, "Transaction updated")

    @guarded("delete the transaction")
    async def delete_transaction(
        self,
        profile: ProfileLike,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        """
        Delete a transaction.

        Deleting installment 1 of a series deletes the whole series.
        Deleting any other installment deletes only that one.
        """
        profile = self.resolve_profile(profile)
        record = await self._store.get(transaction_id, profile)
        if record is None:
            return OperationOutcome.failure(FailureKind.NOT_FOUND, "Transaction not found")

        cascaded = 0
        if record.installments > 1 and not record.parent_transaction_id:
            cascaded = await self._store.delete_by_parent(transaction_id, profile)
        await self._store.delete(transaction_id, profile)

        await self._audit.log(AuditEventBuilder.transaction_deleted(
            profile=profile.value,
            transaction_id=transaction_id,
            cascaded=cascaded,
            correlation_id=correlation_id,
        ))
        return OperationOutcome.ok({"deleted": cascaded + 1}, "Transaction deleted")

    # =========================================================================
    # QUERIES
    # =========================================================================

    @guarded("compute the summary")
    async def get_summary(
        self,
        profile: ProfileLike,
        now: Optional[datetime] = None,
    ) -> OperationOutcome:
        summary = await self._aggregator.summarize(self.resolve_profile(profile), now)
        return OperationOutcome.ok(summary)

    @guarded("compute the breakdown")
    async def get_breakdown(
        self,
        profile: ProfileLike,
        dimension: str,
        transaction_type: str,
        period: str = PeriodFilter.ALL.value,
        now: Optional[datetime] = None,
    ) -> OperationOutcome:
        try:
            entries = await self._aggregator.breakdown(
                self.resolve_profile(profile),
                dimension,
                transaction_type,
                period,
                now,
            )
        except ValueError as e:
            return OperationOutcome.failure(FailureKind.VALIDATION_FAILURE, str(e))
        return OperationOutcome.ok(entries)

    # =========================================================================
    # EXPORT / IMPORT
    # =========================================================================

    @guarded("export transactions")
    async def export_transactions(self, profile: ProfileLike) -> OperationOutcome:
        """Every record of the profile as plain camelCase dicts."""
        records = await self._store.list_transactions(self.resolve_profile(profile))
        return OperationOutcome.ok([record.to_record() for record in records])

    @guarded("import transactions")
    async def import_transactions(
        self,
        profile: ProfileLike,
        candidates: Any,
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        """
        Import already-parsed rows.

        Invalid rows and duplicates are skipped and reported, never fatal.
        A row without a creation date is dated now, before its duplicate
        check, since that is the date it will be stored with.
        """
        profile = self.resolve_profile(profile)
        correlation_id = correlation_id or create_correlation_id()

        if not isinstance(candidates, list):
            return OperationOutcome.failure(
                FailureKind.VALIDATION_FAILURE,
                "Invalid data: expected a list of transactions",
            )

        now = self._clock()
        detector = DuplicateDetector(await self._store.list_transactions(profile))
        report = ImportReport()

        for row, candidate in enumerate(candidates):
            if isinstance(candidate, dict) and not (
                candidate.get("createdAt") or candidate.get("created_at")
            ):
                candidate = {**candidate, "createdAt": now.isoformat()}

            result = self._validator.validate(candidate, detector=detector, row=row)
            report.issues.extend(result.issues)

            if not result.is_valid:
                report.invalid += 1
            elif result.is_duplicate:
                report.duplicates += 1
            else:
                report.transactions.append(await self._store.create(result.draft, profile))
                report.imported += 1

        if report.invalid:
            await self._audit.log_validation_failed(
                profile.value,
                _issue_dicts([i for i in report.issues if i.severity == "error"]),
                correlation_id,
            )
        await self._audit.log(AuditEventBuilder.import_completed(
            profile=profile.value,
            imported=report.imported,
            duplicates=report.duplicates,
            invalid=report.invalid,
            correlation_id=correlation_id,
        ))
        return OperationOutcome.ok(report, f"{report.imported} transactions imported")

    # =========================================================================
    # REMOTE SNAPSHOTS
    # =========================================================================

    async def _remote_failure(
        self,
        error: Exception,
        operation: str,
        profile: Profile,
        correlation_id: Optional[UUID],
    ) -> OperationOutcome:
        await self._audit.log_external_service_error(
            service="remote_storage",
            operation=operation,
            error_message=str(error),
            profile=profile.value,
            correlation_id=correlation_id,
        )
        if isinstance(error, OperationTimeoutError):
            return OperationOutcome.failure(
                FailureKind.TIMEOUT,
                "Remote storage took too long to answer, try again later",
            )
        return OperationOutcome.failure(
            FailureKind.BACKEND_UNAVAILABLE,
            "Remote storage is unavailable, check your connection",
        )

    @guarded("back up transactions")
    async def backup(
        self,
        profile: ProfileLike,
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        profile = self.resolve_profile(profile)
        correlation_id = correlation_id or create_correlation_id()
        try:
            report = await self._reconciler.backup(profile, correlation_id)
        except (BackendUnavailableError, OperationTimeoutError) as e:
            return await self._remote_failure(e, "backup", profile, correlation_id)
        return OperationOutcome.ok(report, "Backup completed")

    @guarded("restore transactions")
    async def restore(
        self,
        profile: ProfileLike,
        correlation_id: Optional[UUID] = None,
    ) -> OperationOutcome:
        profile = self.resolve_profile(profile)
        correlation_id = correlation_id or create_correlation_id()
        try:
            report = await self._reconciler.restore(profile, correlation_id)
        except (BackendUnavailableError, OperationTimeoutError) as e:
            return await self._remote_failure(e, "restore", profile, correlation_id)
        except SnapshotFormatError as e:
            return OperationOutcome.failure(FailureKind.VALIDATION_FAILURE, str(e))

        if report is None:
            return OperationOutcome.failure(FailureKind.NOT_FOUND, "No backup found")
        return OperationOutcome.ok(report, "Restore completed")

    @guarded("check remote storage")
    async def remote_status(self) -> OperationOutcome:
        account = await self._reconciler.account_info()
        return OperationOutcome.ok({"connected": account is not None, "user": account})


def create_ledger_components(
    use_remote_storage: bool = True,
) -> tuple[LedgerService, BlobStorageInterface]:
    """
    Factory function to create the ledger service.

    Args:
        use_remote_storage: Whether to back snapshots with Google Sheets.
                    Set to False for testing without remote storage.

    Returns:
        (ledger_service, blob_storage)
    """
    blob_storage: BlobStorageInterface = InMemoryBlobStorage()

    if use_remote_storage:
        status = validate_all_settings()
        if status["google_sheets"]:
            blob_storage = GoogleSheetsBlobStorage(GoogleSheetsClient())
        else:
            # Remote storage not configured - continue with local snapshots
            logger.warning(
                "remote_storage_not_configured",
                error=status.get("google_sheets_error"),
            )

    return LedgerService(blob_storage=blob_storage), blob_storage
