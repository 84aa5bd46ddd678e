"""Installment series expansion."""

from household_ledger.installments.expander import (
    ExpansionError,
    InstallmentExpander,
    installment_description,
    split_amount,
)

__all__ = [
    "ExpansionError",
    "InstallmentExpander",
    "installment_description",
    "split_amount",
]
