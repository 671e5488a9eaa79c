"""Orchestrates a reconciliation pass of statuses, labels and comments for one pull request."""

import time
from collections.abc import Mapping

import structlog

from pullrequest_sync.hosts.abc import PullRequestRemoteBase
from pullrequest_sync.reconcile.comments import sync_comments
from pullrequest_sync.reconcile.labels import sync_labels
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.reconcile.statuses import sync_statuses
from pullrequest_sync.schemas.pull_request import Manifest, ManifestCategory, PullRequest

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def manifest_for(manifests: Mapping[ManifestCategory | str, Manifest], category: ManifestCategory) -> Manifest:
    """Return the manifest for a category, accepting enum or plain string keys.

    A missing category yields an empty manifest, so nothing in it is deleted.
    Keys naming no category are ignored.
    """
    for key, manifest in manifests.items():
        if key == category or key == category.value:
            return set(manifest)
    return set()


async def reconcile_pull_request(
    remote: PullRequestRemoteBase,
    pull_request: PullRequest,
    manifests: Mapping[ManifestCategory | str, Manifest],
) -> ReconciliationResults:
    """Apply statuses, labels and comments to the host.

    A failure in one category does not prevent the others from being attempted.
    The returned results hold every attempted operation; callers decide whether
    to raise on failures.
    """
    results = ReconciliationResults()
    start_time = time.time()

    results.extend(await sync_statuses(remote, pull_request.head.sha, pull_request.statuses))
    results.extend(await sync_labels(remote, pull_request.labels, manifest_for(manifests, ManifestCategory.LABELS)))
    results.extend(await sync_comments(remote, pull_request.comments, manifest_for(manifests, ManifestCategory.COMMENTS)))

    logger.info(
        "Reconciled pull request",
        operations=len(results),
        failures=len(results.failures),
        duration=round(time.time() - start_time, 2),
    )
    return results
