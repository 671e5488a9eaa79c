"""Exceptions raised while downloading and reconciling pull requests."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pullrequest_sync.reconcile.results import ItemResult


class PullRequestSyncError(Exception):
    """Base class for all pull request synchronization errors."""

    pass


class PullRequestURLParseError(PullRequestSyncError):
    """Raised when a pull/merge request URL cannot be parsed."""

    def __init__(self, url: str, reason: str) -> None:
        """Initializes the exception with the offending URL."""
        super().__init__(f"Could not parse pull request URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class HostAPIError(PullRequestSyncError):
    """Raised when a call to the remote hosting service fails."""

    def __init__(self, host: str, operation: str, message: str, status_code: int | None = None) -> None:
        """Initializes the exception with the failing operation and HTTP status code, if any."""
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{host} API error in {operation}{detail}: {message}")
        self.host = host
        self.operation = operation
        self.status_code = status_code


class UnmappedStatusError(PullRequestSyncError):
    """Raised when a status value has no mapping in a host's status vocabulary."""

    def __init__(self, host: str, value: str, direction: str) -> None:
        """Initializes the exception with the unmapped value and the lookup direction."""
        super().__init__(f"No {direction} {host} status mapping for {value!r}")
        self.host = host
        self.value = value
        self.direction = direction


class AggregateReconciliationError(PullRequestSyncError):
    """Raised when one or more independent items failed during a reconciliation pass."""

    def __init__(self, failures: "list[ItemResult]") -> None:
        """Initializes the exception with the failed item results, in the order they were attempted."""
        lines = [f"{len(failures)} item(s) failed to reconcile:"]
        lines.extend(f"  - {failure}" for failure in failures)
        super().__init__("\n".join(lines))
        self.failures = failures

    def failures_for(self, category: str) -> "list[ItemResult]":
        """Return the failures recorded for a single category (statuses, labels or comments)."""
        return [failure for failure in self.failures if failure.category == category]
