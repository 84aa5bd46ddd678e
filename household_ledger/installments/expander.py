"""
Installment Expander

Turns one credit-card purchase paid in N installments into N linked
records, one per month.

SERIES LAYOUT:
- Installment 1 has no parent; its id is generated up front
- Installments 2..N carry parent_transaction_id = id of installment 1
- Every installment has installments=N and current_installment=i
- Due dates are one calendar month apart, starting at the purchase's due
  date (or now)

DESIGN DECISION: Each installment amount is total / N rounded half-up to
cents, independently. There is no remainder correction, so the series can
sum to up to N-1 cents away from the total (100.00 / 3 gives 3 x 33.33).

DESIGN DECISION: Month arithmetic uses dateutil's relativedelta, always
offset from the base date, never chained. A base of Jan 31 gives Feb 29
(or 28), then Mar 31: short months clamp, later months recover.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import uuid4

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from household_ledger.models.transaction import (
    PaymentMethod,
    Profile,
    Transaction,
    TransactionDraft,
    parse_draft,
    round_currency,
    utc_now,
)
from household_ledger.services.storage.interface import (
    DuplicateError,
    TransactionStoreInterface,
)


DESCRIPTION_LIMIT = 200


class ExpansionError(Exception):
    """An installment series could not be stored. Nothing was written."""

    def __init__(self, requested: int, created: int, cause: Exception):
        self.requested = requested
        self.created = created
        self.cause = cause
        super().__init__(
            f"Installment expansion failed ({created} of {requested} created): {cause}"
        )


def split_amount(total: Decimal, installments: int) -> Decimal:
    """Amount of a single installment."""
    return round_currency(Decimal(total) / installments)


def installment_description(description: str, position: int, installments: int) -> str:
    """
    Append the " (i/N)" marker.

    The root is shortened when needed so the result still fits the
    description limit.
    """
    suffix = f" ({position}/{installments})"
    root = description[:DESCRIPTION_LIMIT - len(suffix)].rstrip()
    return f"{root}{suffix}"


class InstallmentExpander:
    """
    Plans and stores installment series.

    ``plan`` has no side effects; ``expand`` writes the planned records
    through the store as a single all-or-nothing batch.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._store = store
        self._clock = clock or utc_now
        self._new_id = id_factory or (lambda: str(uuid4()))

    @staticmethod
    def needs_expansion(draft: TransactionDraft) -> bool:
        return (
            draft.payment_method == PaymentMethod.CREDIT_CARD
            and draft.installments > 1
        )

    def plan(
        self,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
    ) -> list[tuple[TransactionDraft, Optional[str]]]:
        """
        Build the (draft, id) pairs to store, in installment order.

        A purchase that is not split yields a single pair without an id
        (the store assigns one), normalized to installment 1 of 1.

        Raises:
            pydantic.ValidationError: If an installment would be invalid
                (e.g. an amount that rounds to zero)
        """
        now = now or self._clock()

        if not self.needs_expansion(draft):
            single = draft.model_dump()
            single.update(
                installments=1,
                current_installment=1,
                parent_transaction_id=None,
            )
            return [(parse_draft(single), None)]

        total = draft.installments
        amount = split_amount(draft.amount, total)
        base_date = draft.due_date or now
        parent_id = self._new_id()

        planned: list[tuple[TransactionDraft, Optional[str]]] = []
        for position in range(1, total + 1):
            data: dict[str, Any] = draft.model_dump()
            data.update(
                amount=amount,
                description=installment_description(draft.description, position, total),
                installments=total,
                current_installment=position,
                parent_transaction_id=None if position == 1 else parent_id,
                created_at=now,
                due_date=base_date + relativedelta(months=position - 1),
            )
            planned.append((parse_draft(data), parent_id if position == 1 else None))

        return planned

    async def expand(
        self,
        draft: Any,
        profile: Profile,
    ) -> list[Transaction]:
        """
        Store a purchase, split into installments when it is a credit-card
        purchase with more than one installment.

        Returns:
            The created records, in installment order

        Raises:
            ExpansionError: If the series could not be planned or stored
        """
        draft = parse_draft(draft)
        requested = draft.installments if self.needs_expansion(draft) else 1

        try:
            planned = self.plan(draft)
            created = await self._store.create_many(planned, profile)
        except (DuplicateError, ValidationError) as e:
            raise ExpansionError(requested=requested, created=0, cause=e) from e

        return created
