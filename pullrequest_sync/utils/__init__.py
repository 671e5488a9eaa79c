"""Utility modules for shared functionality."""

from .retry import retry_on_rate_limit
from .urls import parse_github_url, parse_gitlab_url

__all__ = [
    "parse_github_url",
    "parse_gitlab_url",
    "retry_on_rate_limit",
]
