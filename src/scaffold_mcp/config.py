"""Configuration loading for scaffold-mcp.

Configuration is supplied by the host environment, never by tool callers.
Loading does not fail when the GitHub token or the managed owner is absent:
the operations that need them report a configuration error naming the
missing variable instead. GITHUB_OWNER is never snapshotted here; it is read
through ``current_managed_owner`` at each use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import configuration_error

TOKEN_ENV = "GITHUB_TOKEN"
MANAGED_OWNER_ENV = "GITHUB_OWNER"


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Timeouts, retries and payload limits."""

    # Per-call ceiling, shared by the typed client and GitHub requests
    request_timeout_s: float = 30.0
    connect_timeout_s: float = 5.0

    max_attempts: int = 3
    max_backoff_s: float = 5.0

    max_request_bytes: int = 1024 * 1024
    list_per_page: int = 100


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    token: str | None
    api_base_url: str = "https://api.github.com"

    @property
    def has_token(self) -> bool:
        return bool(self.token)


@dataclass(frozen=True, slots=True)
class AppConfig:
    github: GitHubConfig
    limits: LimitsConfig
    audit_log_path: Path | None = None
    audit_max_bytes: int = 5 * 1024 * 1024
    audit_max_backups: int = 2
    http_host: str = "127.0.0.1"
    http_port: int = 8000


def _parse_optional(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parse_float(name: str, value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise configuration_error(f"{name} must be a number") from exc
    if parsed <= 0:
        raise configuration_error(f"{name} must be greater than zero")
    return parsed


def _parse_int(name: str, value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise configuration_error(f"{name} must be an integer") from exc
    if parsed <= 0:
        raise configuration_error(f"{name} must be greater than zero")
    return parsed


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables.

    Raises:
        AppError: If a variable is set but malformed.
    """
    api_base_url = _parse_optional(os.getenv("GITHUB_API_URL")) or "https://api.github.com"
    if not api_base_url.startswith("https://"):
        raise configuration_error("GITHUB_API_URL must be an https:// URL")

    github = GitHubConfig(
        token=_parse_optional(os.getenv(TOKEN_ENV)),
        api_base_url=api_base_url.rstrip("/"),
    )

    limits = LimitsConfig(
        request_timeout_s=_parse_float(
            "SCAFFOLD_MCP_REQUEST_TIMEOUT_S", os.getenv("SCAFFOLD_MCP_REQUEST_TIMEOUT_S"), 30.0
        ),
        max_attempts=_parse_int("SCAFFOLD_MCP_MAX_ATTEMPTS", os.getenv("SCAFFOLD_MCP_MAX_ATTEMPTS"), 3),
        max_request_bytes=_parse_int(
            "SCAFFOLD_MCP_MAX_REQUEST_BYTES", os.getenv("SCAFFOLD_MCP_MAX_REQUEST_BYTES"), 1024 * 1024
        ),
    )

    audit_path: Path | None = None
    audit_raw = _parse_optional(os.getenv("SCAFFOLD_MCP_AUDIT_LOG_PATH"))
    if audit_raw:
        audit_path = Path(audit_raw)
        if not audit_path.is_absolute():
            raise configuration_error("SCAFFOLD_MCP_AUDIT_LOG_PATH must be an absolute path when set")

    return AppConfig(
        github=github,
        limits=limits,
        audit_log_path=audit_path,
        http_host=_parse_optional(os.getenv("SCAFFOLD_MCP_HOST")) or "127.0.0.1",
        http_port=_parse_int("SCAFFOLD_MCP_PORT", os.getenv("SCAFFOLD_MCP_PORT"), 8000),
    )


def missing_required(config: AppConfig) -> list[str]:
    """Return the names of required settings that are absent."""
    missing: list[str] = []
    if not config.github.has_token:
        missing.append(TOKEN_ENV)
    return missing


def current_managed_owner() -> str | None:
    """Read GITHUB_OWNER now, bypassing any loaded configuration."""
    return _parse_optional(os.getenv(MANAGED_OWNER_ENV))
