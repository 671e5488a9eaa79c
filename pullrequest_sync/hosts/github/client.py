"""Sets up the githubkit client for github.com or a GitHub Enterprise Server host."""

from typing import TypeAlias

from githubkit import GitHub
from githubkit.auth import TokenAuthStrategy, UnauthAuthStrategy

from pullrequest_sync.utils.urls import GitHubPullRequestLocation

GitHubClient: TypeAlias = GitHub[TokenAuthStrategy] | GitHub[UnauthAuthStrategy]

GITHUB_API_URL = "https://api.github.com"


def get_github_api_url(location: GitHubPullRequestLocation, github_api_url: str | None = None) -> str:
    """Return the REST API URL serving the pull request.

    An explicit URL wins. Otherwise github.com uses the public API, and any
    other host is treated as GitHub Enterprise Server at ``<host>/api/v3``.
    """
    if github_api_url:
        return github_api_url.rstrip("/")
    if location.is_enterprise:
        return f"{location.host_url}/api/v3"
    return GITHUB_API_URL


async def get_github_client(location: GitHubPullRequestLocation, token: str | None, github_api_url: str | None = None) -> GitHubClient:
    """Returns a GitHub client, authenticated with a token when one is given."""
    base_url = get_github_api_url(location, github_api_url)
    # Disable HTTP caching to always get fresh data
    if token:
        return GitHub(TokenAuthStrategy(token.strip()), base_url=base_url, http_cache=False)
    return GitHub(UnauthAuthStrategy(), base_url=base_url, http_cache=False)
