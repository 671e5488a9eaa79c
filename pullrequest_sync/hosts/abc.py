"""Base ABCs for pull request hosts."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from pullrequest_sync.schemas.pull_request import Manifest, ManifestCategory, PullRequest, RemoteComment

if TYPE_CHECKING:
    from pullrequest_sync.reconcile.results import ReconciliationResults
    from pullrequest_sync.reconcile.statuses import StatusVocabulary


class HostAdapterBase(ABC):
    """Capability interface every host integration exposes to callers."""

    @abstractmethod
    async def download(self, path: Path) -> PullRequest:
        """Fetch the pull request, its discussion and its commit statuses as a canonical model.

        Raw host payloads are written beneath ``path``.
        """
        pass

    @abstractmethod
    async def upload(
        self,
        pull_request: PullRequest,
        manifests: Mapping[ManifestCategory | str, Manifest],
    ) -> "ReconciliationResults":
        """Apply the statuses, labels and comments of a canonical model to the host."""
        pass

    async def aclose(self) -> None:
        """Release any network resources held by the adapter."""
        return None


class PullRequestRemoteBase(ABC):
    """Per-item remote operations the reconcilers drive for a single pull request."""

    status_vocabulary: "StatusVocabulary"

    # Comment CRUD
    @abstractmethod
    async def list_comments(self) -> list[RemoteComment]:
        """List the comments currently on the pull request, flattening discussion threads."""
        pass

    @abstractmethod
    async def create_comment(self, text: str) -> None:
        """Create a new comment (or discussion) on the pull request."""
        pass

    @abstractmethod
    async def update_comment(self, comment: RemoteComment, text: str) -> None:
        """Replace the body of an existing comment."""
        pass

    @abstractmethod
    async def delete_comment(self, comment: RemoteComment) -> None:
        """Delete an existing comment."""
        pass

    # Label operations
    @abstractmethod
    async def list_labels(self) -> list[str]:
        """List the label texts currently on the pull request."""
        pass

    @abstractmethod
    async def add_labels(self, labels: list[str]) -> None:
        """Add labels to the pull request in a single call. ``labels`` is never empty."""
        pass

    @abstractmethod
    async def remove_label(self, label: str) -> None:
        """Remove a single label from the pull request."""
        pass

    # Commit status operations
    @abstractmethod
    async def set_status(self, sha: str, context: str, state: str, description: str, target_url: str) -> None:
        """Create or overwrite the commit status identified by ``context``."""
        pass
