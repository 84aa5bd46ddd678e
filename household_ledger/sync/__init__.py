"""Backup and restore of profile snapshots."""

from household_ledger.sync.reconciler import SnapshotFormatError, SnapshotReconciler

__all__ = ["SnapshotFormatError", "SnapshotReconciler"]
