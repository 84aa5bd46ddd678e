"""
Household Ledger - Source Package

A per-profile income/expense ledger for a small household: credit card
purchases split into monthly installments, monthly summaries, spreadsheet
import with duplicate detection, and backup/restore to remote storage.

DESIGN PRINCIPLES:
1. Profiles are isolated partitions, never permissions
2. Not-found is a value, not an exception
3. Batches never die on a single bad row
4. Every mutation is auditable
5. Remote storage is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
