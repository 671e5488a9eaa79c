"""Unit tests for the configuration.reconcile module."""

import pytest

from pullrequest_sync.configuration.exceptions import HostConfigurationError
from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.configuration.reconcile import validate_host_configuration


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url,expected",
    [
        pytest.param("https://github.com/o/r/pull/1", HostType.GITHUB, id="github"),
        pytest.param("https://git.example.com/o/r/pulls/1", HostType.GITHUB, id="github enterprise"),
        pytest.param("https://gitlab.com/g/p/-/merge_requests/1", HostType.GITLAB, id="gitlab"),
    ],
)
async def test_host_detected_from_url(url: str, expected: HostType) -> None:
    """Test that the host type is detected from the URL path."""
    assert await validate_host_configuration(url) == expected


@pytest.mark.asyncio
async def test_explicit_host_type_is_kept() -> None:
    """Test that an explicit host type is used for URLs that do not contradict it."""
    assert await validate_host_configuration("https://code.example.com/x/y/z", HostType.GITLAB) == HostType.GITLAB


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url,host_type",
    [
        pytest.param("https://gitlab.com/g/p/-/merge_requests/1", HostType.GITHUB, id="github for a merge request"),
        pytest.param("https://github.com/o/r/pull/1", HostType.GITLAB, id="gitlab for a pull request"),
    ],
)
async def test_contradicting_host_type_raises(url: str, host_type: HostType) -> None:
    """Test that an explicit host type contradicting the URL raises HostConfigurationError."""
    with pytest.raises(HostConfigurationError):
        await validate_host_configuration(url, host_type)


@pytest.mark.asyncio
async def test_undeterminable_host_raises() -> None:
    """Test that HostConfigurationError is raised when the host cannot be determined."""
    with pytest.raises(HostConfigurationError, match="Unable to determine the host"):
        await validate_host_configuration("https://example.com/something/else")
