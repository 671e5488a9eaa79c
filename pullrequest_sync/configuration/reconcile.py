"""Reconcile host configuration between CLI arguments and the pull request URL."""

from urllib.parse import urlparse

from pullrequest_sync.configuration.exceptions import HostConfigurationError
from pullrequest_sync.configuration.models import HostType


async def validate_host_configuration(url: str, host_type: HostType | None = None) -> HostType:
    """Validates the host configuration and determines which host serves the pull request.

    Args:
        url (str): The pull or merge request URL.
        host_type (HostType | None): The host type given explicitly, if any.

    Raises:
        HostConfigurationError: If the host type cannot be determined, or contradicts the URL.

    Returns:
        HostType: The type of host serving the pull request.
    """
    path = urlparse(url).path
    is_merge_request = "/merge_requests/" in path
    is_pull_request = "/pull/" in path or "/pulls/" in path

    if host_type is not None:
        if host_type == HostType.GITHUB and is_merge_request:
            raise HostConfigurationError(f"Host type is github but {url} is a merge request URL.")
        if host_type == HostType.GITLAB and is_pull_request:
            raise HostConfigurationError(f"Host type is gitlab but {url} is a pull request URL.")
        return host_type

    if is_merge_request:
        return HostType.GITLAB
    if is_pull_request:
        return HostType.GITHUB
    raise HostConfigurationError(
        f"Unable to determine the host of {url}. Please provide a pull or merge request URL, or set the host type explicitly."
    )
