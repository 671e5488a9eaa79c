"""Pydantic schema for the canonical, host-neutral pull request model."""

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from pullrequest_sync.configuration.models import HostType


class StatusCode(str, Enum):
    """Canonical commit status codes."""

    UNKNOWN = "Unknown"
    SUCCESS = "Success"
    FAILURE = "Failure"
    ERROR = "Error"
    NEUTRAL = "Neutral"
    QUEUED = "Queued"
    IN_PROGRESS = "InProgress"
    TIMEOUT = "Timeout"
    CANCELED = "Canceled"
    ACTION_REQUIRED = "ActionRequired"


class ManifestCategory(str, Enum):
    """Categories of items whose provenance is tracked by a manifest."""

    LABELS = "labels"
    COMMENTS = "comments"


Manifest: TypeAlias = set[str]
"""Keys known to the caller when the pull request was downloaded.

Comment keys are decimal comment IDs, label keys are the label text.
"""


class GitReference(BaseModel):
    """Pydantic model for one side (head or base) of a pull request."""

    model_config = ConfigDict(frozen=True)

    repo: str
    branch: str
    sha: str


class Label(BaseModel):
    """Pydantic model for a pull request label. The text is the key."""

    text: str


class Comment(BaseModel):
    """Pydantic model for a pull request comment.

    An ID of zero means the comment does not exist remotely yet.
    """

    id: int = 0
    author: str = ""
    text: str
    raw: str | None = None


class Status(BaseModel):
    """Pydantic model for a commit status, keyed by its context name."""

    id: str
    code: StatusCode
    description: str = ""
    url: str = ""


class PullRequest(BaseModel):
    """Pydantic model for a pull or merge request."""

    type: HostType
    id: int
    head: GitReference
    base: GitReference
    labels: list[Label] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    statuses: list[Status] = Field(default_factory=list)
    raw: str | None = None
    raw_status: str | None = None

    def label_texts(self) -> set[str]:
        """Return the set of label texts on the pull request."""
        return {label.text for label in self.labels}


@dataclass(frozen=True)
class RemoteComment:
    """A comment (or discussion note) as currently stored by the host.

    ``thread_id`` identifies the discussion that owns a note on hosts that
    group comments into threads, and is None otherwise.
    """

    id: int
    text: str
    author: str = ""
    thread_id: str | None = None


def manifest_key_for_comment(comment_id: int) -> str:
    """Return the manifest key for a comment ID."""
    return str(comment_id)


def build_manifests(pull_request: PullRequest) -> dict[ManifestCategory, Manifest]:
    """Build the manifests a caller should persist right after a download."""
    return {
        ManifestCategory.LABELS: pull_request.label_texts(),
        ManifestCategory.COMMENTS: {manifest_key_for_comment(c.id) for c in pull_request.comments if c.id != 0},
    }
