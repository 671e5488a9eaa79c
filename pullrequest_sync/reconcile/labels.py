"""Contains synchronization logic for pull request labels.

Key is label text.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from pullrequest_sync.reconcile.models import ProvenanceState, ReconcileCategory, SyncDecision
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.schemas.pull_request import Label

if TYPE_CHECKING:
    from pullrequest_sync.hosts.abc import PullRequestRemoteBase

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

LabelType = str | Label


@dataclass
class LabelSyncPlan:
    """Labels to add and remove on the host."""

    add: list[str] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether the plan issues no remote calls."""
        return not (self.add or self.remove)


def extract_label_texts(labels: Iterable[LabelType]) -> set[str]:
    """Extract label texts from canonical labels or strings."""
    texts: set[str] = set()
    for label in labels:
        if isinstance(label, str):
            texts.add(label)
        else:
            texts.add(label.text)
    return texts


def classify_label(label: str, desired: Collection[str], manifest: Collection[str]) -> ProvenanceState:
    """Classify a label relative to the desired labels and the manifest."""
    if label not in manifest:
        return ProvenanceState.UNTRACKED
    if label in desired:
        return ProvenanceState.TRACKED_PRESENT
    return ProvenanceState.TRACKED_REMOVED


def plan_label_sync(desired_labels: Iterable[LabelType], current_labels: Iterable[LabelType], manifest: Collection[str]) -> LabelSyncPlan:
    """Compare desired and current labels, and decide which to add and which to remove.

    A label is only removed when the manifest shows it was known at download time.
    """
    desired = extract_label_texts(desired_labels)
    current = extract_label_texts(current_labels)
    plan = LabelSyncPlan(add=sorted(desired - current))
    for label in sorted(current - desired):
        if classify_label(label, desired, manifest) == ProvenanceState.TRACKED_REMOVED:
            plan.remove.append(label)
        else:
            logger.debug("Not tracking label, skipping", label=label)
            plan.untracked.append(label)
    return plan


async def sync_labels(
    remote: "PullRequestRemoteBase",
    desired_labels: Iterable[LabelType],
    manifest: Collection[str],
) -> ReconciliationResults:
    """Synchronize the desired labels to the host.

    Additions go out as one batched call, which is skipped when there is
    nothing to add. Removals go out one call per label.
    """
    results = ReconciliationResults()
    try:
        current_labels = await remote.list_labels()
    except Exception as exc:
        logger.warning("Error listing labels", error=str(exc))
        results.record(ReconcileCategory.LABELS, SyncDecision.LIST, "*", exc)
        return results
    logger.info("Current labels", labels=sorted(current_labels))

    plan = plan_label_sync(desired_labels, current_labels, manifest)
    if plan.add:
        logger.info("Adding labels", labels=plan.add)
        try:
            await remote.add_labels(plan.add)
        except Exception as exc:
            logger.warning("Error adding labels", labels=plan.add, error=str(exc))
            for label in plan.add:
                results.record(ReconcileCategory.LABELS, SyncDecision.CREATE, label, exc)
        else:
            for label in plan.add:
                results.record(ReconcileCategory.LABELS, SyncDecision.CREATE, label)

    for label in plan.remove:
        logger.info("Removing label", label=label)
        try:
            await remote.remove_label(label)
        except Exception as exc:
            logger.warning("Error removing label", label=label, error=str(exc))
            results.record(ReconcileCategory.LABELS, SyncDecision.DELETE, label, exc)
            continue
        results.record(ReconcileCategory.LABELS, SyncDecision.DELETE, label)
    return results
