"""Contains synchronization logic for pull request comments.

Remote comments are only ever updated or deleted when their ID is present in
the manifest. Desired comments with an ID of zero are always created, and are
never matched against existing remote comments.
"""

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from pullrequest_sync.reconcile.models import ProvenanceState, ReconcileCategory, SyncDecision
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.schemas.pull_request import Comment, RemoteComment, manifest_key_for_comment

if TYPE_CHECKING:
    from pullrequest_sync.hosts.abc import PullRequestRemoteBase

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass
class CommentSyncPlan:
    """Remote operations needed to bring the host's comments in line with the desired comments."""

    creates: list[Comment] = field(default_factory=list)
    updates: list[tuple[RemoteComment, Comment]] = field(default_factory=list)
    deletes: list[RemoteComment] = field(default_factory=list)
    untracked: list[RemoteComment] = field(default_factory=list)
    unchanged: list[RemoteComment] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether the plan issues no remote calls."""
        return not (self.creates or self.updates or self.deletes)


def classify_comment(comment_id: int, desired_ids: Collection[int], manifest: Collection[str]) -> ProvenanceState:
    """Classify a comment ID relative to the desired comments and the manifest."""
    if comment_id == 0:
        return ProvenanceState.NEWLY_REQUESTED
    if manifest_key_for_comment(comment_id) not in manifest:
        return ProvenanceState.UNTRACKED
    if comment_id in desired_ids:
        return ProvenanceState.TRACKED_PRESENT
    return ProvenanceState.TRACKED_REMOVED


def plan_comment_sync(
    desired_comments: Sequence[Comment],
    remote_comments: Sequence[RemoteComment],
    manifest: Collection[str],
) -> CommentSyncPlan:
    """Compare desired and remote comments, and decide what to create, update or delete."""
    plan = CommentSyncPlan()
    existing: dict[int, Comment] = {}
    for comment in desired_comments:
        if comment.id == 0:
            plan.creates.append(comment)
        else:
            existing[comment.id] = comment

    for remote_comment in remote_comments:
        state = classify_comment(remote_comment.id, existing.keys(), manifest)
        if state == ProvenanceState.UNTRACKED:
            logger.debug("Not tracking comment, skipping", comment_id=remote_comment.id)
            plan.untracked.append(remote_comment)
        elif state == ProvenanceState.TRACKED_REMOVED:
            plan.deletes.append(remote_comment)
        elif existing[remote_comment.id].text != remote_comment.text:
            plan.updates.append((remote_comment, existing[remote_comment.id]))
        else:
            plan.unchanged.append(remote_comment)
    return plan


async def sync_comments(
    remote: "PullRequestRemoteBase",
    desired_comments: Sequence[Comment],
    manifest: Collection[str],
) -> ReconciliationResults:
    """Synchronize the desired comments to the host.

    Remote comments are fetched fresh. Every operation is attempted, and each
    failure is recorded rather than raised.
    """
    results = ReconciliationResults()
    try:
        remote_comments = await remote.list_comments()
    except Exception as exc:
        logger.warning("Error listing comments", error=str(exc))
        results.record(ReconcileCategory.COMMENTS, SyncDecision.LIST, "*", exc)
        remote_comments = []
        # Creation requests do not depend on the remote state.
        plan = plan_comment_sync([c for c in desired_comments if c.id == 0], [], manifest)
    else:
        plan = plan_comment_sync(desired_comments, remote_comments, manifest)

    logger.info(
        "Planned comment synchronization",
        creates=len(plan.creates),
        updates=len(plan.updates),
        deletes=len(plan.deletes),
        untracked=len(plan.untracked),
    )

    for remote_comment in plan.deletes:
        key = manifest_key_for_comment(remote_comment.id)
        logger.info("Deleting comment", comment_id=remote_comment.id)
        try:
            await remote.delete_comment(remote_comment)
        except Exception as exc:
            logger.warning("Error deleting comment", comment_id=remote_comment.id, error=str(exc))
            results.record(ReconcileCategory.COMMENTS, SyncDecision.DELETE, key, exc)
            continue
        results.record(ReconcileCategory.COMMENTS, SyncDecision.DELETE, key)

    for remote_comment, desired_comment in plan.updates:
        key = manifest_key_for_comment(remote_comment.id)
        logger.info("Updating comment", comment_id=remote_comment.id, text=desired_comment.text)
        try:
            await remote.update_comment(remote_comment, desired_comment.text)
        except Exception as exc:
            logger.warning("Error editing comment", comment_id=remote_comment.id, error=str(exc))
            results.record(ReconcileCategory.COMMENTS, SyncDecision.UPDATE, key, exc)
            continue
        results.record(ReconcileCategory.COMMENTS, SyncDecision.UPDATE, key)

    for index, desired_comment in enumerate(plan.creates):
        key = f"new-{index}"
        logger.info("Creating comment", text=desired_comment.text)
        try:
            await remote.create_comment(desired_comment.text)
        except Exception as exc:
            logger.warning("Error creating comment", error=str(exc))
            results.record(ReconcileCategory.COMMENTS, SyncDecision.CREATE, key, exc)
            continue
        results.record(ReconcileCategory.COMMENTS, SyncDecision.CREATE, key)

    return results
