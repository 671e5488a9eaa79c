"""Fixtures for unit tests."""

from typing import Any, Callable, Generator

import pytest
import structlog

from pullrequest_sync.hosts.abc import PullRequestRemoteBase
from pullrequest_sync.reconcile.statuses import GITHUB_STATUS_VOCABULARY, StatusVocabulary
from pullrequest_sync.schemas.pull_request import RemoteComment


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


class FakeHost(PullRequestRemoteBase):
    """In-memory pull request host that records every remote call."""

    def __init__(
        self,
        comments: list[RemoteComment] | None = None,
        labels: list[str] | None = None,
        status_vocabulary: StatusVocabulary = GITHUB_STATUS_VOCABULARY,
    ) -> None:
        """Initialize the fake with the host's current comments and labels."""
        self.comments: dict[int, RemoteComment] = {c.id: c for c in comments or []}
        self.labels: list[str] = list(labels or [])
        self.statuses: dict[tuple[str, str], dict[str, str]] = {}
        self.status_vocabulary = status_vocabulary
        self.calls: list[tuple[str, Any]] = []
        self.failing: set[tuple[str, Any]] = set()
        self._next_id = 1000

    def fail_on(self, operation: str, key: Any = None) -> None:
        """Make an operation raise, optionally only for a single key."""
        self.failing.add((operation, key))

    def _maybe_fail(self, operation: str, key: Any = None) -> None:
        if (operation, None) in self.failing or (operation, key) in self.failing:
            raise RuntimeError(f"{operation} failed for {key!r}")

    def calls_to(self, operation: str) -> list[Any]:
        """Arguments of every recorded call to an operation."""
        return [argument for name, argument in self.calls if name == operation]

    async def list_comments(self) -> list[RemoteComment]:
        self.calls.append(("list_comments", None))
        self._maybe_fail("list_comments")
        return list(self.comments.values())

    async def create_comment(self, text: str) -> None:
        self.calls.append(("create_comment", text))
        self._maybe_fail("create_comment", text)
        self._next_id += 1
        self.comments[self._next_id] = RemoteComment(id=self._next_id, text=text, author="bot")

    async def update_comment(self, comment: RemoteComment, text: str) -> None:
        self.calls.append(("update_comment", (comment.id, text)))
        self._maybe_fail("update_comment", comment.id)
        self.comments[comment.id] = RemoteComment(id=comment.id, text=text, author=comment.author, thread_id=comment.thread_id)

    async def delete_comment(self, comment: RemoteComment) -> None:
        self.calls.append(("delete_comment", comment.id))
        self._maybe_fail("delete_comment", comment.id)
        del self.comments[comment.id]

    async def list_labels(self) -> list[str]:
        self.calls.append(("list_labels", None))
        self._maybe_fail("list_labels")
        return list(self.labels)

    async def add_labels(self, labels: list[str]) -> None:
        self.calls.append(("add_labels", list(labels)))
        self._maybe_fail("add_labels")
        self.labels.extend(label for label in labels if label not in self.labels)

    async def remove_label(self, label: str) -> None:
        self.calls.append(("remove_label", label))
        self._maybe_fail("remove_label", label)
        self.labels.remove(label)

    async def set_status(self, sha: str, context: str, state: str, description: str, target_url: str) -> None:
        self.calls.append(("set_status", (context, state)))
        self._maybe_fail("set_status", context)
        self.statuses[(sha, context)] = {"state": state, "description": description, "target_url": target_url}


@pytest.fixture
def make_fake_host() -> Callable[..., FakeHost]:
    """Factory fixture for in-memory hosts."""
    return FakeHost
