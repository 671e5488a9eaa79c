"""Unit tests for the GitLabAdapter class."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.exceptions import HostAPIError, UnmappedStatusError
from pullrequest_sync.hosts.gitlab.adapter import GitLabAdapter
from pullrequest_sync.hosts.gitlab.client import get_gitlab_api_url
from pullrequest_sync.schemas.pull_request import Comment, GitReference, Label, PullRequest, Status, StatusCode
from pullrequest_sync.utils.urls import parse_gitlab_url

PROJECT = "/api/v4/projects/group%2Fsub%2Fproject"
MERGE_REQUEST = f"{PROJECT}/merge_requests/3"


class FakeGitLab:
    """Routes GitLab API requests to canned responses and records them."""

    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        """Initialize the fake with responses keyed by method and raw path."""
        self.routes = routes
        self.requests: list[tuple[str, str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode().split("?")[0]
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": "404 Not Found"})
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    def requests_to(self, method: str) -> list[tuple[str, Any]]:
        """Paths and bodies of the recorded requests with a given method."""
        return [(path, body) for m, path, body in self.requests if m == method]


def make_adapter(fake: FakeGitLab) -> GitLabAdapter:
    """Build an adapter whose client is served by the fake."""
    client = httpx.AsyncClient(base_url="https://gitlab.example.com/api/v4", transport=httpx.MockTransport(fake))
    return GitLabAdapter(client, "group/sub/project", 3)


MERGE_REQUEST_PAYLOAD = {
    "id": 501,
    "iid": 3,
    "source_branch": "feature",
    "target_branch": "main",
    "source_project_id": 11,
    "target_project_id": 10,
    "labels": ["bug", "wip"],
    "sha": "headsha",
    "diff_refs": {"base_sha": "basesha", "head_sha": "headsha", "start_sha": "basesha"},
}

DISCUSSIONS_PAYLOAD = [
    {
        "id": "d1",
        "notes": [
            {"id": 71, "body": "first", "author": {"username": "alice"}, "system": False},
            {"id": 72, "body": "reply", "author": {"username": "bob"}, "system": False},
        ],
    },
    {"id": "d2", "notes": [{"id": 73, "body": "added ~bug label", "author": {"username": "alice"}, "system": True}]},
]


def test_gitlab_api_url() -> None:
    """Test that the API URL follows the merge request's host."""
    location = parse_gitlab_url("https://gitlab.example.com/group/project/-/merge_requests/1")
    assert get_gitlab_api_url(location) == "https://gitlab.example.com/api/v4"
    assert get_gitlab_api_url(location, "https://other/api/v4/") == "https://other/api/v4"


@pytest.mark.asyncio
async def test_download_builds_canonical_model(tmp_path: Path) -> None:
    """Test that download maps the merge request, statuses and discussion notes."""
    fake = FakeGitLab(
        {
            ("GET", MERGE_REQUEST): MERGE_REQUEST_PAYLOAD,
            ("GET", "/api/v4/projects/11"): {"id": 11, "http_url_to_repo": "https://gitlab.example.com/fork/project.git"},
            ("GET", "/api/v4/projects/10"): {"id": 10, "web_url": "https://gitlab.example.com/group/sub/project"},
            ("GET", f"{PROJECT}/repository/commits/headsha/statuses"): [
                {"name": "ci/build", "status": "running", "description": None, "target_url": "https://ci/2"},
            ],
            ("GET", f"{MERGE_REQUEST}/discussions"): DISCUSSIONS_PAYLOAD,
        }
    )
    adapter = make_adapter(fake)

    pull_request = await adapter.download(tmp_path)
    await adapter.aclose()

    assert pull_request.type == HostType.GITLAB
    assert pull_request.id == 501
    assert pull_request.head == GitReference(repo="https://gitlab.example.com/fork/project.git", branch="feature", sha="headsha")
    assert pull_request.base == GitReference(repo="https://gitlab.example.com/group/sub/project", branch="main", sha="basesha")
    assert [label.text for label in pull_request.labels] == ["bug", "wip"]
    assert pull_request.statuses == [Status(id="ci/build", code=StatusCode.IN_PROGRESS, url="https://ci/2")]
    assert [(c.id, c.author, c.text) for c in pull_request.comments] == [(71, "alice", "first"), (72, "bob", "reply")]
    assert (tmp_path / "gitlab" / "comments" / "72.json").exists()
    assert not (tmp_path / "gitlab" / "comments" / "73.json").exists()


@pytest.mark.asyncio
async def test_download_unknown_status_fails(tmp_path: Path) -> None:
    """Test that an unmapped remote status fails the whole download."""
    fake = FakeGitLab(
        {
            ("GET", MERGE_REQUEST): MERGE_REQUEST_PAYLOAD,
            ("GET", "/api/v4/projects/11"): {"id": 11, "web_url": "w"},
            ("GET", "/api/v4/projects/10"): {"id": 10, "web_url": "w"},
            ("GET", f"{PROJECT}/repository/commits/headsha/statuses"): [{"name": "ci", "status": "bogus"}],
            ("GET", f"{MERGE_REQUEST}/discussions"): [],
        }
    )
    with pytest.raises(UnmappedStatusError):
        await make_adapter(fake).download(tmp_path)
    assert fake.requests_to("GET")[-1][0].endswith("/statuses")


@pytest.mark.asyncio
async def test_download_maps_pipeline_job_statuses(tmp_path: Path) -> None:
    """Test that statuses of queued, manual and skipped pipeline jobs are all downloaded."""
    job_states = ["created", "waiting_for_resource", "preparing", "scheduled", "manual", "skipped"]
    fake = FakeGitLab(
        {
            ("GET", MERGE_REQUEST): MERGE_REQUEST_PAYLOAD,
            ("GET", "/api/v4/projects/11"): {"id": 11, "web_url": "w"},
            ("GET", "/api/v4/projects/10"): {"id": 10, "web_url": "w"},
            ("GET", f"{PROJECT}/repository/commits/headsha/statuses"): [{"name": state, "status": state} for state in job_states],
            ("GET", f"{MERGE_REQUEST}/discussions"): [],
        }
    )
    pull_request = await make_adapter(fake).download(tmp_path)
    assert [(status.id, status.code) for status in pull_request.statuses] == [
        ("created", StatusCode.QUEUED),
        ("waiting_for_resource", StatusCode.QUEUED),
        ("preparing", StatusCode.QUEUED),
        ("scheduled", StatusCode.QUEUED),
        ("manual", StatusCode.ACTION_REQUIRED),
        ("skipped", StatusCode.NEUTRAL),
    ]


@pytest.mark.asyncio
async def test_download_host_error_is_translated(tmp_path: Path) -> None:
    """Test that a failed request surfaces as HostAPIError."""
    fake = FakeGitLab({})
    with pytest.raises(HostAPIError) as exc_info:
        await make_adapter(fake).download(tmp_path)
    assert exc_info.value.status_code == 404
    assert exc_info.value.operation == "get_merge_request"
    assert "404 Not Found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_list_comments_follows_next_page_header() -> None:
    """Test that discussions are fetched page by page using x-next-page."""
    full_page = [{"id": f"d{i}", "notes": [{"id": i, "body": "x", "author": {"username": "a"}}]} for i in range(100)]

    def discussions(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=full_page, headers={"x-next-page": "2"})
        return httpx.Response(200, json=[{"id": "last", "notes": [{"id": 100, "body": "y", "author": None}]}], headers={"x-next-page": ""})

    fake = FakeGitLab({("GET", f"{MERGE_REQUEST}/discussions"): discussions})
    comments = await make_adapter(fake).list_comments()
    assert len(comments) == 101
    assert comments[-1].thread_id == "last"
    assert comments[-1].author == ""


@pytest.mark.asyncio
async def test_upload_applies_operations() -> None:
    """Test that upload issues the expected GitLab calls, addressing notes by discussion."""
    fake = FakeGitLab(
        {
            ("POST", f"{PROJECT}/statuses/headsha"): {},
            ("GET", MERGE_REQUEST): {**MERGE_REQUEST_PAYLOAD, "labels": ["wip", "external"]},
            ("PUT", MERGE_REQUEST): {},
            ("GET", f"{MERGE_REQUEST}/discussions"): DISCUSSIONS_PAYLOAD,
            ("PUT", f"{MERGE_REQUEST}/discussions/d1/notes/71"): {},
            ("DELETE", f"{MERGE_REQUEST}/discussions/d1/notes/72"): httpx.Response(204),
            ("POST", f"{MERGE_REQUEST}/discussions"): {},
        }
    )
    pull_request = PullRequest(
        type=HostType.GITLAB,
        id=501,
        head=GitReference(repo="r", branch="feature", sha="headsha"),
        base=GitReference(repo="r", branch="main", sha="basesha"),
        labels=[Label(text="bug")],
        comments=[Comment(id=71, text="edited"), Comment(text="new thread")],
        statuses=[Status(id="ci/build", code=StatusCode.CANCELED, description="stopped")],
    )

    results = await make_adapter(fake).upload(pull_request, {"labels": {"wip"}, "comments": {"71", "72", "73"}})

    assert results.failures == []
    assert fake.requests_to("POST") == [
        (f"{PROJECT}/statuses/headsha", {"state": "canceled", "name": "ci/build", "description": "stopped"}),
        (f"{MERGE_REQUEST}/discussions", {"body": "new thread"}),
    ]
    assert fake.requests_to("PUT") == [
        (MERGE_REQUEST, {"add_labels": "bug"}),
        (MERGE_REQUEST, {"remove_labels": "wip"}),
        (f"{MERGE_REQUEST}/discussions/d1/notes/71", {"body": "edited"}),
    ]
    assert fake.requests_to("DELETE") == [(f"{MERGE_REQUEST}/discussions/d1/notes/72", None)]
