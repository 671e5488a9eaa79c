"""Contains per-item results of a reconciliation pass."""

from pullrequest_sync.exceptions import AggregateReconciliationError
from pullrequest_sync.reconcile.models import ReconcileCategory, SyncDecision


class ItemResult:
    """Outcome of one remote operation attempted during reconciliation."""

    def __init__(self, category: ReconcileCategory, decision: SyncDecision, key: str, error: Exception | None = None) -> None:
        """Initialize the result with the item's category, the decision applied, its key and any error raised."""
        self.category = category
        self.decision = decision
        self.key = key
        self.error = error

    @property
    def succeeded(self) -> bool:
        """Whether the remote operation completed without error."""
        return self.error is None

    def __str__(self) -> str:
        outcome = "ok" if self.error is None else f"failed: {self.error}"
        return f"{self.category.value} {self.decision.value} {self.key!r} {outcome}"

    def __repr__(self) -> str:
        return f"ItemResult(category={self.category.value!r}, decision={self.decision.value!r}, key={self.key!r}, error={self.error!r})"


class ReconciliationResults:
    """Ordered collection of item results for one reconciliation pass."""

    def __init__(self, results: list[ItemResult] | None = None) -> None:
        """Initialize the collection, optionally with existing results."""
        self.results: list[ItemResult] = list(results or [])

    def record(self, category: ReconcileCategory, decision: SyncDecision, key: str, error: Exception | None = None) -> ItemResult:
        """Record the outcome of a single remote operation."""
        result = ItemResult(category, decision, key, error)
        self.results.append(result)
        return result

    def extend(self, other: "ReconciliationResults") -> None:
        """Merge another collection's results into this one, preserving order."""
        self.results.extend(other.results)

    @property
    def failures(self) -> list[ItemResult]:
        """Results whose remote operation raised an error."""
        return [result for result in self.results if not result.succeeded]

    def for_category(self, category: ReconcileCategory) -> list[ItemResult]:
        """Results recorded for a single category."""
        return [result for result in self.results if result.category == category]

    def keys(self, category: ReconcileCategory, decision: SyncDecision) -> list[str]:
        """Keys of items in a category that were given a particular decision."""
        return [result.key for result in self.results if result.category == category and result.decision == decision]

    def raise_for_failures(self) -> None:
        """Raise an AggregateReconciliationError if any recorded operation failed."""
        failures = self.failures
        if failures:
            raise AggregateReconciliationError(failures)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.results)
