"""Contains utility functions for parsing pull and merge request URLs."""

from dataclasses import dataclass
from urllib.parse import urlparse

from pullrequest_sync.exceptions import PullRequestURLParseError


@dataclass(frozen=True)
class GitHubPullRequestLocation:
    """Identifies a GitHub pull request, e.g. https://github.com/owner/repo/pull/1."""

    host_url: str
    owner: str
    repo: str
    number: int

    @property
    def is_enterprise(self) -> bool:
        """Whether the pull request lives on a GitHub Enterprise Server host."""
        return "github.com" not in self.host_url


@dataclass(frozen=True)
class GitLabMergeRequestLocation:
    """Identifies a GitLab merge request, e.g. https://gitlab.com/group/project/-/merge_requests/1."""

    host_url: str
    project: str
    number: int


def _split_url(raw: str) -> tuple[str, list[str]]:
    parsed = urlparse(raw.strip())
    if not parsed.scheme or not parsed.netloc:
        raise PullRequestURLParseError(raw, "URL must include a scheme and host")
    segments = [segment for segment in parsed.path.split("/") if segment]
    return f"{parsed.scheme}://{parsed.netloc}", segments


def _parse_number(raw: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise PullRequestURLParseError(raw, f"{value!r} is not a pull request number") from None
    if number <= 0:
        raise PullRequestURLParseError(raw, f"{value!r} is not a pull request number")
    return number


def parse_github_url(raw: str) -> GitHubPullRequestLocation:
    """Extract the host, owner, repository and pull request number from a GitHub URL."""
    host_url, segments = _split_url(raw)
    if len(segments) < 4 or segments[2] not in ("pull", "pulls"):
        raise PullRequestURLParseError(raw, "expected a path of the form /<owner>/<repo>/pull/<number>")
    owner, repo, number = segments[0], segments[1], segments[3]
    return GitHubPullRequestLocation(host_url=host_url, owner=owner, repo=repo, number=_parse_number(raw, number))


def parse_gitlab_url(raw: str) -> GitLabMergeRequestLocation:
    """Extract the host, project path and merge request number from a GitLab URL.

    The project path can be several groups deep, so it is everything before
    the ``merge_requests`` segment (and the optional ``-`` separator).
    """
    host_url, segments = _split_url(raw)
    if len(segments) < 3 or segments[-2] != "merge_requests":
        raise PullRequestURLParseError(raw, "expected a path ending in /merge_requests/<number>")
    number = _parse_number(raw, segments[-1])
    project_segments = segments[:-2]
    if project_segments and project_segments[-1] == "-":
        project_segments = project_segments[:-1]
    if not project_segments:
        raise PullRequestURLParseError(raw, "URL does not contain a project path")
    return GitLabMergeRequestLocation(host_url=host_url, project="/".join(project_segments), number=number)
