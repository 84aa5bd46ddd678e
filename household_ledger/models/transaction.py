"""
Core Data Models for Household Ledger

A transaction is the only entity in the ledger. These models define its
strict schema and are designed to:
1. Make invalid records unrepresentable (category sets are tied to the type)
2. Provide clear validation error messages
3. Serialize to the same camelCase JSON the snapshots have always used

DESIGN DECISION: Income and expense records are two pydantic models joined
in a tagged union on ``type``. An income record cannot carry an expense
category because no such model exists, not because a validator rejects it.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from dateutil import parser as date_parser
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


MAX_INSTALLMENTS = 48
CENT = Decimal("0.01")


# =============================================================================
# TIME HELPERS
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or timestamp leniently.

    Returns None for empty or unparseable input instead of raising.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return to_utc(date_parser.isoparse(value.strip()))
        except (ValueError, OverflowError):
            return None
    return None


def round_currency(value: Decimal) -> Decimal:
    """Round half-up to whole cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Profile(str, Enum):
    """
    Data partitions of the ledger.

    A profile is an isolation key, not an account: there is no login.
    """
    EDSON = "edson"
    TAIS = "tais"

    @property
    def label(self) -> str:
        return PROFILE_LABELS[self]

    @property
    def folder_name(self) -> str:
        """Name of the remote folder holding this profile's snapshot."""
        return PROFILE_FOLDERS[self]


PROFILE_LABELS = {
    Profile.EDSON: "Edson",
    Profile.TAIS: "Taís",
}

PROFILE_FOLDERS = {
    Profile.EDSON: "Edson",
    Profile.TAIS: "Tais",
}


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class IncomeCategory(str, Enum):
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENTS = "investments"
    RENT = "rent"
    OTHER_INCOME = "other_income"


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    HEALTH = "health"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    BILLS = "bills"
    HOUSING = "housing"
    REIMBURSEMENT = "reimbursement"
    OTHER_EXPENSE = "other_expense"


class PaymentMethod(str, Enum):
    """How a transaction was paid."""
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PIX = "pix"
    CASH = "cash"

    @property
    def is_card(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)


class CardOperator(str, Enum):
    """Card issuers. Only meaningful for card payment methods."""
    SANTANDER = "santander"
    C6 = "c6"
    PORTO = "porto"
    MERCADO_PAGO = "mercado_pago"
    NUBANK = "nubank"
    ITAU = "itau"
    BRADESCO = "bradesco"
    CAIXA = "caixa"
    BANCO_DO_BRASIL = "banco_do_brasil"
    INTER = "inter"
    NEXT = "next"
    PICPAY = "picpay"
    OTHER = "other"


# =============================================================================
# BASE MODEL
# =============================================================================

class LedgerModel(BaseModel):
    """
    Shared configuration for every ledger model.

    Python code uses snake_case; JSON (requests, exports, snapshots) uses
    camelCase. Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_record(self) -> dict:
        """JSON-ready camelCase dict, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionFields(LedgerModel):
    """
    Fields common to income and expense records.

    Used directly as the body of a create request (through the
    ``TransactionDraft`` union), before an id and profile are assigned.
    """

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount, rounded to cents"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    payment_method: PaymentMethod
    card_operator: Optional[CardOperator] = None

    # Installment series
    installments: int = Field(
        default=1,
        ge=1,
        le=MAX_INSTALLMENTS,
        description="Size of the installment series (1 = not a series)"
    )
    current_installment: int = Field(
        default=1,
        ge=1,
        description="1-based position within the series"
    )
    parent_transaction_id: Optional[str] = Field(
        default=None,
        description="Id of installment 1 of the series (absent on installment 1)"
    )

    # Timestamps
    created_at: Optional[datetime] = None
    due_date: Optional[datetime] = Field(
        default=None,
        description="Date the transaction counts for; falls back to created_at"
    )

    @field_validator('card_operator', 'parent_transaction_id', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Spreadsheets and forms send empty strings for 'not set'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('created_at', 'due_date', mode='before')
    @classmethod
    def parse_dates(cls, v):
        if v is None or v == "":
            return None
        parsed = parse_timestamp(v)
        if parsed is None:
            raise ValueError(f"Not an ISO-8601 date: {v!r}")
        return parsed

    @field_validator('created_at', 'due_date')
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None

    @field_validator('amount')
    @classmethod
    def normalize_amount(cls, v: Decimal) -> Decimal:
        rounded = round_currency(v)
        if rounded <= 0:
            raise ValueError("Amount must be at least 0.01")
        return rounded

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    @model_validator(mode='after')
    def validate_installment_position(self):
        if self.current_installment > self.installments:
            raise ValueError(
                "Current installment cannot be greater than the number of installments"
            )
        return self

    @property
    def effective_date(self) -> Optional[datetime]:
        """The date used for period classification."""
        return self.due_date or self.created_at


class IncomeDraft(TransactionFields):
    type: Literal["income"]
    category: IncomeCategory


class ExpenseDraft(TransactionFields):
    type: Literal["expense"]
    category: ExpenseCategory


class IncomeTransaction(IncomeDraft):
    """A stored income record."""
    id: str = Field(..., min_length=1)
    profile: Profile
    created_at: datetime


class ExpenseTransaction(ExpenseDraft):
    """A stored expense record."""
    id: str = Field(..., min_length=1)
    profile: Profile
    created_at: datetime


TransactionDraft = Annotated[
    Union[IncomeDraft, ExpenseDraft],
    Field(discriminator="type"),
]

Transaction = Annotated[
    Union[IncomeTransaction, ExpenseTransaction],
    Field(discriminator="type"),
]

DRAFT_CLASSES = (IncomeDraft, ExpenseDraft)
TRANSACTION_CLASSES = (IncomeTransaction, ExpenseTransaction)

_draft_adapter = TypeAdapter(TransactionDraft)
_transaction_adapter = TypeAdapter(Transaction)


def parse_draft(data: Any) -> TransactionDraft:
    """
    Validate a create request (dict or model) into an income/expense draft.

    Raises:
        pydantic.ValidationError: If the payload is malformed
    """
    return _draft_adapter.validate_python(data)


def parse_transaction(data: Any) -> Transaction:
    """Validate a stored record (dict or model)."""
    return _transaction_adapter.validate_python(data)


def build_transaction(
    draft: TransactionDraft,
    transaction_id: str,
    profile: Profile,
    created_at: Optional[datetime] = None,
) -> Transaction:
    """
    Promote a draft to a stored record.

    The draft's own ``created_at`` wins over the supplied one; if neither is
    present the record is stamped with the current time.
    """
    data = draft.model_dump()
    data["id"] = transaction_id
    data["profile"] = profile
    data["created_at"] = draft.created_at or created_at or utc_now()
    return parse_transaction(data)


class TransactionUpdate(LedgerModel):
    """
    Patch for an existing transaction.

    Only these fields are editable. Identity and series linkage (id,
    profile, created_at, installments, current_installment,
    parent_transaction_id) are not fields here, so a patch that carries
    them simply has those keys dropped.
    """

    type: Optional[Literal["income", "expense"]] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    card_operator: Optional[CardOperator] = None

    @field_validator('card_operator', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def changes(self) -> dict:
        """Fields explicitly present in the patch, snake_case keys."""
        return self.model_dump(exclude_unset=True)
