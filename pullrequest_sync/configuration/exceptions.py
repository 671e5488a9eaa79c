"""Contains exceptions raised when reconciling application configuration."""


class HostConfigurationError(Exception):
    """Raised when the host configuration is inconsistent with the pull request URL."""

    pass
