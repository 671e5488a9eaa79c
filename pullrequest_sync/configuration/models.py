"""Models shared between CLI arguments, environment variables and host adapters."""

from enum import Enum


class HostType(str, Enum):
    """Enum for supported pull request hosting services."""

    GITHUB = "github"
    GITLAB = "gitlab"
