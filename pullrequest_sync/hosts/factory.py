"""Creates the host adapter serving a pull or merge request URL."""

import structlog

from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.configuration.reconcile import validate_host_configuration
from pullrequest_sync.configuration.settings import Settings, settings
from pullrequest_sync.hosts.abc import HostAdapterBase
from pullrequest_sync.hosts.github.adapter import GitHubKitAdapter
from pullrequest_sync.hosts.gitlab.adapter import GitLabAdapter

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def create_host_adapter(
    url: str,
    token: str | None = None,
    host_type: HostType | None = None,
    app_settings: Settings | None = None,
) -> HostAdapterBase:
    """Create the adapter for the host serving ``url``.

    Raises:
        HostConfigurationError: If the host cannot be determined from the URL
        PullRequestURLParseError: If the URL is malformed for its host
    """
    app_settings = app_settings or settings
    resolved_host_type = await validate_host_configuration(url, host_type)
    token = token if token is not None else app_settings.AUTHTOKEN
    logger.info("Resolved host for pull request", url=url, host_type=resolved_host_type.value, authenticated=bool(token))
    if resolved_host_type == HostType.GITLAB:
        return await GitLabAdapter.create(url, token=token, gitlab_api_url=app_settings.GITLAB_API_URL)
    return await GitHubKitAdapter.create(url, token=token, github_api_url=app_settings.GITHUB_API_URL)
