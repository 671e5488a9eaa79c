"""Pydantic Settings model for application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Token used for both GitHub and GitLab. Anonymous access when unset.
    AUTHTOKEN: str | None = None

    # API URL overrides. When unset, the API URL is derived from the pull request URL.
    GITHUB_API_URL: str | None = None
    GITLAB_API_URL: str | None = None


settings = Settings()
