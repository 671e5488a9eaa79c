"""Maps commit statuses between the canonical status codes and host vocabularies.

Every host declares two tables: ``inbound`` (remote value to canonical code)
and ``outbound`` (canonical code to remote value). Lookups never fall back to
a default. An unknown inbound value fails the whole status fetch, while a
canonical code with no outbound entry fails only that status during upload.

Hosts without a neutral state map ``StatusCode.NEUTRAL`` to their "success"
value so that a neutral result does not block the pull request.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Sequence

import structlog

from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.exceptions import UnmappedStatusError
from pullrequest_sync.reconcile.models import ReconcileCategory, SyncDecision
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.schemas.pull_request import Status, StatusCode

if TYPE_CHECKING:
    from pullrequest_sync.hosts.abc import PullRequestRemoteBase

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StatusVocabulary:
    """Bidirectional status tables for a single host."""

    host: HostType
    inbound: Mapping[str, StatusCode]
    outbound: Mapping[StatusCode, str]

    def to_canonical(self, value: str) -> StatusCode:
        """Translate a remote status value into a canonical status code."""
        try:
            return self.inbound[value]
        except KeyError:
            raise UnmappedStatusError(self.host.value, value, "inbound") from None

    def to_remote(self, code: StatusCode) -> str:
        """Translate a canonical status code into the host's status value."""
        try:
            return self.outbound[code]
        except KeyError:
            raise UnmappedStatusError(self.host.value, str(getattr(code, "value", code)), "outbound") from None


GITHUB_STATUS_VOCABULARY = StatusVocabulary(
    host=HostType.GITHUB,
    inbound=MappingProxyType(
        {
            "success": StatusCode.SUCCESS,
            "failure": StatusCode.FAILURE,
            "error": StatusCode.ERROR,
            "pending": StatusCode.QUEUED,
        }
    ),
    outbound=MappingProxyType(
        {
            StatusCode.UNKNOWN: "error",
            StatusCode.SUCCESS: "success",
            StatusCode.FAILURE: "failure",
            StatusCode.ERROR: "error",
            # GitHub has no neutral state.
            StatusCode.NEUTRAL: "success",
            StatusCode.QUEUED: "pending",
            StatusCode.IN_PROGRESS: "pending",
            StatusCode.TIMEOUT: "error",
            StatusCode.CANCELED: "error",
            StatusCode.ACTION_REQUIRED: "error",
        }
    ),
)

GITLAB_STATUS_VOCABULARY = StatusVocabulary(
    host=HostType.GITLAB,
    inbound=MappingProxyType(
        {
            "created": StatusCode.QUEUED,
            "waiting_for_resource": StatusCode.QUEUED,
            "preparing": StatusCode.QUEUED,
            "pending": StatusCode.QUEUED,
            "scheduled": StatusCode.QUEUED,
            "running": StatusCode.IN_PROGRESS,
            "success": StatusCode.SUCCESS,
            "failed": StatusCode.FAILURE,
            "canceled": StatusCode.CANCELED,
            # Jobs waiting on a person to start them.
            "manual": StatusCode.ACTION_REQUIRED,
            "skipped": StatusCode.NEUTRAL,
        }
    ),
    outbound=MappingProxyType(
        {
            StatusCode.UNKNOWN: "failed",
            StatusCode.SUCCESS: "success",
            StatusCode.FAILURE: "failed",
            StatusCode.ERROR: "failed",
            # GitLab has no neutral state.
            StatusCode.NEUTRAL: "success",
            StatusCode.QUEUED: "pending",
            StatusCode.IN_PROGRESS: "running",
            StatusCode.TIMEOUT: "failed",
            StatusCode.CANCELED: "canceled",
            StatusCode.ACTION_REQUIRED: "failed",
        }
    ),
)


async def sync_statuses(remote: "PullRequestRemoteBase", sha: str, statuses: Sequence[Status]) -> ReconciliationResults:
    """Upsert every status on the given commit, keyed by context.

    No diff against the remote is computed: the host overwrites a status with
    a repeated context.
    """
    results = ReconciliationResults()
    for status in statuses:
        try:
            state = remote.status_vocabulary.to_remote(status.code)
        except UnmappedStatusError as exc:
            logger.warning("Status code has no remote mapping", context=status.id, code=status.code, error=str(exc))
            results.record(ReconcileCategory.STATUSES, SyncDecision.UPDATE, status.id, exc)
            continue

        logger.info("Setting commit status", sha=sha, context=status.id, state=state)
        try:
            await remote.set_status(sha, context=status.id, state=state, description=status.description, target_url=status.url)
        except Exception as exc:
            logger.warning("Error setting commit status", context=status.id, error=str(exc))
            results.record(ReconcileCategory.STATUSES, SyncDecision.UPDATE, status.id, exc)
            continue
        results.record(ReconcileCategory.STATUSES, SyncDecision.UPDATE, status.id)
    return results
