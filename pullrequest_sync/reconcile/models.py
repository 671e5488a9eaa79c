"""Enums describing reconciliation decisions and item provenance."""

from enum import Enum


class SyncDecision(str, Enum):
    """Decision taken for a single item during a reconciliation pass."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"


class ProvenanceState(str, Enum):
    """Provenance of a trackable item relative to the manifest, desired and remote state."""

    UNTRACKED = "untracked"
    TRACKED_PRESENT = "tracked_present"
    TRACKED_REMOVED = "tracked_removed"
    NEWLY_REQUESTED = "newly_requested"


class ReconcileCategory(str, Enum):
    """Categories of items applied by an upload."""

    STATUSES = "statuses"
    LABELS = "labels"
    COMMENTS = "comments"
