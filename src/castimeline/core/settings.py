"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod

The same object configures the timeline client (data source, local storage,
publish endpoint), the local authoring server (admin password, port, site
root) and the publish worker (GitHub coordinates and publish password).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `CAS_TIMELINE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    data_url : str
        Where the static front-end reads the authoritative dataset from
        (file path or http(s) URL); maps from `CAS_TIMELINE_DATA_URL`.
    site_root : Path
        Directory served by the local authoring server; maps from `CAS_TIMELINE_ROOT`.
    storage_path : Path
        JSON file backing the per-device durable key-value store.
    publish_endpoint : str
        URL of the publish worker; empty disables publishing.
    admin_password : str
        Staff password for the authoring session; maps from `ADMIN_PASSWORD`.
    """

    environment: EnvName = Field(default="dev", alias="CAS_TIMELINE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")

    # Timeline client
    data_url: str = Field(default="assets/timeline-data.json", alias="CAS_TIMELINE_DATA_URL")
    storage_path: Path = Field(
        default=Path(".cas-timeline") / "local-storage.json", alias="CAS_TIMELINE_STORAGE"
    )
    publish_endpoint: str = Field(default="", alias="CAS_TIMELINE_PUBLISH_ENDPOINT")
    update_poll_seconds: float = Field(default=120.0, alias="UPDATE_POLL_SECONDS", gt=0)

    # Local authoring server
    site_root: Path = Field(default=Path("."), alias="CAS_TIMELINE_ROOT")
    admin_password: str = Field(default="admin", alias="ADMIN_PASSWORD")
    port: int = Field(default=3000, alias="PORT")

    # Publish worker
    publish_password: str | None = Field(default=None, alias="PUBLISH_PASSWORD")
    github_owner: str | None = Field(default=None, alias="GITHUB_OWNER")
    github_repo: str | None = Field(default=None, alias="GITHUB_REPO")
    github_path: str = Field(default="assets/timeline-data.json", alias="GITHUB_PATH")
    github_branch: str = Field(default="main", alias="GITHUB_BRANCH")
    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")
    github_message: str = Field(default="Update timeline data", alias="GITHUB_MESSAGE")
    github_committer_name: str = Field(default="CAS Timeline Bot", alias="GITHUB_COMMITTER_NAME")
    github_committer_email: str = Field(
        default="timeline-bot@users.noreply.github.com", alias="GITHUB_COMMITTER_EMAIL"
    )
    cors_origin: str = Field(default="*", alias="CORS_ORIGIN")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    @property
    def github_configured(self) -> bool:
        """Return True when the publish worker can reach a repository."""
        return bool(self.github_owner and self.github_repo and self.github_token)

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("CAS_TIMELINE_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "castimeline") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
