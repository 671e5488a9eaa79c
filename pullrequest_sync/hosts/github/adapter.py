"""GitHub host adapter for the githubkit library."""

from collections.abc import Mapping
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Self, TypeVar

import structlog
from githubkit import Response
from githubkit.exception import RequestFailed
from githubkit.versions.latest.models import CombinedCommitStatus, IssueComment, SimpleCommitStatus
from githubkit.versions.latest.models import Label as GitHubLabel
from githubkit.versions.latest.models import PullRequest as GitHubPullRequest
from structlog.contextvars import bound_contextvars

from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.exceptions import HostAPIError
from pullrequest_sync.hosts.abc import HostAdapterBase, PullRequestRemoteBase
from pullrequest_sync.reconcile.engine import reconcile_pull_request
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.reconcile.statuses import GITHUB_STATUS_VOCABULARY
from pullrequest_sync.schemas.pull_request import (
    Comment,
    GitReference,
    Label,
    Manifest,
    ManifestCategory,
    PullRequest,
    RemoteComment,
    Status,
)
from pullrequest_sync.utils.retry import retry_on_rate_limit
from pullrequest_sync.utils.storage import write_json
from pullrequest_sync.utils.urls import parse_github_url

from .client import GitHubClient, get_github_client

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def handle_github_errors(func: F) -> F:
    """Decorator to translate failed GitHub requests into HostAPIError, logging the details."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except RequestFailed as exc:
            try:
                error_data = exc.response.json()
            except ValueError:
                error_data = {}
            message = (error_data.get("message") if isinstance(error_data, dict) else None) or str(exc)
            logger.error(
                "GitHub request failed",
                function=func.__name__,
                message=message,
                status_code=exc.response.status_code,
            )
            raise HostAPIError(HostType.GITHUB.value, func.__name__, message, exc.response.status_code) from exc

    return wrapper  # type: ignore


class GitHubKitAdapter(HostAdapterBase, PullRequestRemoteBase):
    """GitHub host adapter for a single pull request."""

    status_vocabulary = GITHUB_STATUS_VOCABULARY

    def __init__(self, client: GitHubClient, owner: str, repo_name: str, pull_number: int) -> None:
        """Initialize the adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name
        self.pull_number = pull_number

    @classmethod
    async def create(cls, url: str, token: str | None = None, github_api_url: str | None = None) -> Self:
        """Create a new GitHub adapter for the pull request at ``url``.

        Raises:
            PullRequestURLParseError: If the URL does not identify a GitHub pull request
        """
        location = parse_github_url(url)
        logger.info(
            "Creating client for GitHub instance and repository",
            host_url=location.host_url,
            owner=location.owner,
            repo_name=location.repo,
            pull_number=location.number,
        )
        client = await get_github_client(location, token, github_api_url)
        return cls(client, location.owner, location.repo, location.number)

    def _bound_context(self) -> Any:
        return bound_contextvars(host=HostType.GITHUB.value, owner=self.owner, repo_name=self.repo_name, pull_number=self.pull_number)

    # Pull request reads
    @handle_github_errors
    @retry_on_rate_limit()
    async def get_pull_request(self) -> GitHubPullRequest:
        """Get the pull request."""
        response: Response[GitHubPullRequest] = await self.client.rest.pulls.async_get(
            owner=self.owner, repo=self.repo_name, pull_number=self.pull_number
        )
        return response.parsed_data

    @handle_github_errors
    @retry_on_rate_limit()
    async def list_issue_comments(self, per_page: int = 100) -> list[IssueComment]:
        """List all comments on the pull request, handling pagination."""
        all_comments: list[IssueComment] = []
        page: int = 1
        while True:
            response: Response[list[IssueComment]] = await self.client.rest.issues.async_list_comments(
                owner=self.owner,
                repo=self.repo_name,
                issue_number=self.pull_number,
                per_page=per_page,
                page=page,
            )
            comments: list[IssueComment] = response.parsed_data
            all_comments.extend(comments)
            if len(comments) < per_page:
                break
            page += 1
        return all_comments

    @handle_github_errors
    @retry_on_rate_limit()
    async def list_commit_statuses(self, ref: str, per_page: int = 100) -> list[SimpleCommitStatus]:
        """List the latest status of every context on a ref, handling pagination."""
        all_statuses: list[SimpleCommitStatus] = []
        page: int = 1
        while True:
            response: Response[CombinedCommitStatus] = await self.client.rest.repos.async_get_combined_status_for_ref(
                owner=self.owner,
                repo=self.repo_name,
                ref=ref,
                per_page=per_page,
                page=page,
            )
            statuses: list[SimpleCommitStatus] = response.parsed_data.statuses
            all_statuses.extend(statuses)
            if len(statuses) < per_page:
                break
            page += 1
        return all_statuses

    # Comment CRUD
    async def list_comments(self) -> list[RemoteComment]:
        """List the comments currently on the pull request."""
        return [
            RemoteComment(id=comment.id, text=comment.body or "", author=comment.user.login if comment.user else "")
            for comment in await self.list_issue_comments()
        ]

    @handle_github_errors
    @retry_on_rate_limit()
    async def create_comment(self, text: str) -> None:
        """Create a comment on the pull request."""
        await self.client.rest.issues.async_create_comment(owner=self.owner, repo=self.repo_name, issue_number=self.pull_number, body=text)

    @handle_github_errors
    @retry_on_rate_limit()
    async def update_comment(self, comment: RemoteComment, text: str) -> None:
        """Replace the body of a comment."""
        await self.client.rest.issues.async_update_comment(owner=self.owner, repo=self.repo_name, comment_id=comment.id, body=text)

    @handle_github_errors
    @retry_on_rate_limit()
    async def delete_comment(self, comment: RemoteComment) -> None:
        """Delete a comment."""
        await self.client.rest.issues.async_delete_comment(owner=self.owner, repo=self.repo_name, comment_id=comment.id)

    # Label operations
    @handle_github_errors
    @retry_on_rate_limit()
    async def list_labels(self, per_page: int = 100) -> list[str]:
        """List the labels on the pull request, handling pagination."""
        names: list[str] = []
        page: int = 1
        while True:
            response: Response[list[GitHubLabel]] = await self.client.rest.issues.async_list_labels_on_issue(
                owner=self.owner,
                repo=self.repo_name,
                issue_number=self.pull_number,
                per_page=per_page,
                page=page,
            )
            labels: list[GitHubLabel] = response.parsed_data
            names.extend(label.name for label in labels)
            if len(labels) < per_page:
                break
            page += 1
        return names

    @handle_github_errors
    @retry_on_rate_limit()
    async def add_labels(self, labels: list[str]) -> None:
        """Add labels to the pull request. GitHub rejects an empty list."""
        await self.client.rest.issues.async_add_labels(owner=self.owner, repo=self.repo_name, issue_number=self.pull_number, labels=labels)

    @handle_github_errors
    @retry_on_rate_limit()
    async def remove_label(self, label: str) -> None:
        """Remove a label from the pull request."""
        await self.client.rest.issues.async_remove_label(owner=self.owner, repo=self.repo_name, issue_number=self.pull_number, name=label)

    # Commit status operations
    @handle_github_errors
    @retry_on_rate_limit()
    async def set_status(self, sha: str, context: str, state: str, description: str, target_url: str) -> None:
        """Create or overwrite a commit status."""
        await self.client.rest.repos.async_create_commit_status(
            owner=self.owner,
            repo=self.repo_name,
            sha=sha,
            state=state,  # type: ignore
            context=context,
            description=description or None,
            target_url=target_url or None,
        )

    # Host adapter contract
    async def download(self, path: Path) -> PullRequest:
        """Fetch the pull request, its comments and its commit statuses.

        Raw payloads are written beneath ``<path>/github``.
        """
        raw_prefix = path / HostType.GITHUB.value
        with self._bound_context():
            github_pr = await self.get_pull_request()
            pull_request = PullRequest(
                type=HostType.GITHUB,
                id=github_pr.id,
                head=GitReference(
                    repo=github_pr.head.repo.clone_url if github_pr.head.repo else "",
                    branch=github_pr.head.ref,
                    sha=github_pr.head.sha,
                ),
                base=GitReference(
                    repo=github_pr.base.repo.clone_url if github_pr.base.repo else "",
                    branch=github_pr.base.ref,
                    sha=github_pr.base.sha,
                ),
                labels=[Label(text=label.name) for label in github_pr.labels],
            )

            commit_statuses = await self.list_commit_statuses(pull_request.head.sha)
            pull_request.raw_status = str(write_json(raw_prefix / "status.json", commit_statuses))
            pull_request.statuses = [
                Status(
                    id=status.context,
                    code=self.status_vocabulary.to_canonical(status.state),
                    description=status.description or "",
                    url=status.target_url or "",
                )
                for status in commit_statuses
            ]

            pull_request.raw = str(write_json(raw_prefix / "pr.json", github_pr))

            for comment in await self.list_issue_comments():
                raw_comment = write_json(raw_prefix / "comments" / f"{comment.id}.json", comment)
                logger.info("Wrote comment", comment_id=comment.id, path=str(raw_comment))
                pull_request.comments.append(
                    Comment(
                        id=comment.id,
                        author=comment.user.login if comment.user else "",
                        text=comment.body or "",
                        raw=str(raw_comment),
                    )
                )

            logger.info(
                "Downloaded pull request",
                labels=len(pull_request.labels),
                comments=len(pull_request.comments),
                statuses=len(pull_request.statuses),
            )
        return pull_request

    async def upload(
        self,
        pull_request: PullRequest,
        manifests: Mapping[ManifestCategory | str, Manifest],
    ) -> ReconciliationResults:
        """Apply statuses, labels and comments to the pull request.

        Raises:
            AggregateReconciliationError: If any individual operation failed
        """
        with self._bound_context():
            logger.info("Syncing pull request", pull_request_id=pull_request.id)
            results = await reconcile_pull_request(self, pull_request, manifests)
        results.raise_for_failures()
        return results
