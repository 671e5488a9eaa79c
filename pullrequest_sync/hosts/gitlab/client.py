"""Sets up the httpx client for the GitLab REST API."""

import httpx

from pullrequest_sync.utils.urls import GitLabMergeRequestLocation

DEFAULT_TIMEOUT = 30.0


def get_gitlab_api_url(location: GitLabMergeRequestLocation, gitlab_api_url: str | None = None) -> str:
    """Return the v4 REST API URL of the host serving the merge request."""
    if gitlab_api_url:
        return gitlab_api_url.rstrip("/")
    return f"{location.host_url}/api/v4"


async def get_gitlab_client(
    location: GitLabMergeRequestLocation,
    token: str | None,
    gitlab_api_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Returns an async GitLab API client, authenticated with a token when one is given."""
    headers = {"Accept": "application/json"}
    if token:
        headers["PRIVATE-TOKEN"] = token.strip()
    return httpx.AsyncClient(
        base_url=get_gitlab_api_url(location, gitlab_api_url),
        headers=headers,
        timeout=DEFAULT_TIMEOUT,
        transport=transport,
    )
