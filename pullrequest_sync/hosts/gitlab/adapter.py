"""GitLab host adapter over the GitLab v4 REST API."""

from collections.abc import Mapping
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Self, TypeVar
from urllib.parse import quote

import httpx
import structlog
from structlog.contextvars import bound_contextvars

from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.exceptions import HostAPIError
from pullrequest_sync.hosts.abc import HostAdapterBase, PullRequestRemoteBase
from pullrequest_sync.reconcile.engine import reconcile_pull_request
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.reconcile.statuses import GITLAB_STATUS_VOCABULARY
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
from pullrequest_sync.utils.urls import parse_gitlab_url

from .client import get_gitlab_client

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def handle_gitlab_errors(func: F) -> F:
    """Decorator to translate failed GitLab requests into HostAPIError, logging the details."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except httpx.HTTPStatusError as exc:
            try:
                error_data = exc.response.json()
            except ValueError:
                error_data = {}
            message = str(error_data.get("message") or error_data.get("error") or exc) if isinstance(error_data, dict) else str(exc)
            logger.error(
                "GitLab request failed",
                function=func.__name__,
                message=message,
                status_code=exc.response.status_code,
                url=str(exc.request.url),
            )
            raise HostAPIError(HostType.GITLAB.value, func.__name__, message, exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("GitLab request could not be sent", function=func.__name__, error=str(exc))
            raise HostAPIError(HostType.GITLAB.value, func.__name__, str(exc)) from exc

    return wrapper  # type: ignore


class GitLabAdapter(HostAdapterBase, PullRequestRemoteBase):
    """GitLab host adapter for a single merge request.

    Comments are the user notes of the merge request's discussions. System
    notes (label changes, pushes) are not comments and are never returned.
    """

    status_vocabulary = GITLAB_STATUS_VOCABULARY

    def __init__(self, client: httpx.AsyncClient, project: str, merge_request_iid: int) -> None:
        """Initialize the adapter with an already-initialized client."""
        self.client = client
        self.project = project
        self.merge_request_iid = merge_request_iid

    @classmethod
    async def create(cls, url: str, token: str | None = None, gitlab_api_url: str | None = None) -> Self:
        """Create a new GitLab adapter for the merge request at ``url``.

        Raises:
            PullRequestURLParseError: If the URL does not identify a GitLab merge request
        """
        location = parse_gitlab_url(url)
        logger.info(
            "Creating client for GitLab instance and project",
            host_url=location.host_url,
            project=location.project,
            merge_request_iid=location.number,
        )
        client = await get_gitlab_client(location, token, gitlab_api_url)
        return cls(client, location.project, location.number)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @property
    def _project_path(self) -> str:
        return f"/projects/{quote(self.project, safe='')}"

    @property
    def _merge_request_path(self) -> str:
        return f"{self._project_path}/merge_requests/{self.merge_request_iid}"

    def _bound_context(self) -> Any:
        return bound_contextvars(host=HostType.GITLAB.value, project=self.project, merge_request_iid=self.merge_request_iid)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self.client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    async def _get_paginated(self, path: str, per_page: int = 100, **params: Any) -> list[Any]:
        items: list[Any] = []
        page: int = 1
        while True:
            response = await self._request("GET", path, params={**params, "per_page": per_page, "page": page})
            batch = response.json()
            items.extend(batch)
            next_page = response.headers.get("x-next-page")
            if not next_page or len(batch) < per_page:
                break
            page = int(next_page)
        return items

    # Merge request reads
    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def get_merge_request(self) -> dict[str, Any]:
        """Get the merge request."""
        response = await self._request("GET", self._merge_request_path)
        return response.json()

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def get_project(self, project_id: int | str) -> dict[str, Any]:
        """Get a project by numeric ID or path."""
        response = await self._request("GET", f"/projects/{quote(str(project_id), safe='')}")
        return response.json()

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def list_discussions(self) -> list[dict[str, Any]]:
        """List all discussions on the merge request, handling pagination."""
        return await self._get_paginated(f"{self._merge_request_path}/discussions")

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def list_commit_statuses(self, sha: str) -> list[dict[str, Any]]:
        """List the latest commit statuses for a commit, handling pagination."""
        return await self._get_paginated(f"{self._project_path}/repository/commits/{sha}/statuses")

    # Comment CRUD
    async def list_comments(self) -> list[RemoteComment]:
        """List the user notes of every discussion on the merge request."""
        comments: list[RemoteComment] = []
        for discussion in await self.list_discussions():
            for note in discussion.get("notes") or []:
                if note.get("system"):
                    continue
                comments.append(
                    RemoteComment(
                        id=note["id"],
                        text=note.get("body") or "",
                        author=(note.get("author") or {}).get("username", ""),
                        thread_id=str(discussion["id"]),
                    )
                )
        return comments

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def create_comment(self, text: str) -> None:
        """Start a new discussion on the merge request."""
        await self._request("POST", f"{self._merge_request_path}/discussions", json={"body": text})

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def update_comment(self, comment: RemoteComment, text: str) -> None:
        """Replace the body of a discussion note."""
        await self._request("PUT", f"{self._merge_request_path}/discussions/{comment.thread_id}/notes/{comment.id}", json={"body": text})

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def delete_comment(self, comment: RemoteComment) -> None:
        """Delete a discussion note."""
        await self._request("DELETE", f"{self._merge_request_path}/discussions/{comment.thread_id}/notes/{comment.id}")

    # Label operations
    async def list_labels(self) -> list[str]:
        """List the labels on the merge request."""
        merge_request = await self.get_merge_request()
        return list(merge_request.get("labels") or [])

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def add_labels(self, labels: list[str]) -> None:
        """Add labels to the merge request."""
        await self._request("PUT", self._merge_request_path, json={"add_labels": ",".join(labels)})

    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def remove_label(self, label: str) -> None:
        """Remove a label from the merge request."""
        await self._request("PUT", self._merge_request_path, json={"remove_labels": label})

    # Commit status operations
    @handle_gitlab_errors
    @retry_on_rate_limit()
    async def set_status(self, sha: str, context: str, state: str, description: str, target_url: str) -> None:
        """Create or overwrite a commit status."""
        payload = {"state": state, "name": context}
        if description:
            payload["description"] = description
        if target_url:
            payload["target_url"] = target_url
        await self._request("POST", f"{self._project_path}/statuses/{sha}", json=payload)

    # Host adapter contract
    async def download(self, path: Path) -> PullRequest:
        """Fetch the merge request, its discussion notes and its commit statuses.

        Raw payloads are written beneath ``<path>/gitlab``.
        """
        raw_prefix = path / HostType.GITLAB.value
        with self._bound_context():
            merge_request = await self.get_merge_request()
            source_project = await self.get_project(merge_request["source_project_id"])
            target_project = await self.get_project(merge_request["target_project_id"])
            diff_refs = merge_request.get("diff_refs") or {}

            pull_request = PullRequest(
                type=HostType.GITLAB,
                id=merge_request["id"],
                head=GitReference(
                    repo=source_project.get("http_url_to_repo") or source_project.get("web_url", ""),
                    branch=merge_request["source_branch"],
                    sha=diff_refs.get("head_sha") or merge_request.get("sha") or "",
                ),
                base=GitReference(
                    repo=target_project.get("http_url_to_repo") or target_project.get("web_url", ""),
                    branch=merge_request["target_branch"],
                    sha=diff_refs.get("base_sha") or "",
                ),
                labels=[Label(text=label) for label in merge_request.get("labels") or []],
            )
            pull_request.raw = str(write_json(raw_prefix / "pr.json", merge_request))

            commit_statuses = await self.list_commit_statuses(pull_request.head.sha)
            pull_request.raw_status = str(write_json(raw_prefix / "status.json", commit_statuses))
            pull_request.statuses = [
                Status(
                    id=status["name"],
                    code=self.status_vocabulary.to_canonical(status["status"]),
                    description=status.get("description") or "",
                    url=status.get("target_url") or "",
                )
                for status in commit_statuses
            ]

            for discussion in await self.list_discussions():
                for note in discussion.get("notes") or []:
                    if note.get("system"):
                        continue
                    raw_comment = write_json(raw_prefix / "comments" / f"{note['id']}.json", note)
                    pull_request.comments.append(
                        Comment(
                            id=note["id"],
                            author=(note.get("author") or {}).get("username", ""),
                            text=note.get("body") or "",
                            raw=str(raw_comment),
                        )
                    )

            logger.info(
                "Downloaded merge request",
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
        """Apply statuses, labels and comments to the merge request.

        Raises:
            AggregateReconciliationError: If any individual operation failed
        """
        with self._bound_context():
            logger.info("Syncing merge request", pull_request_id=pull_request.id)
            results = await reconcile_pull_request(self, pull_request, manifests)
        results.raise_for_failures()
        return results
