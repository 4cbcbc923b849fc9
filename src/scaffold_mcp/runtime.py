"""Per-process runtime shared by all tool calls."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .audit import AuditLogger
from .config import AppConfig, current_managed_owner, load_config_from_env
from .github_client import GitHubClient
from .github_service import GitHubService, RestGitHubService
from .permissions import PermissionValidator


@dataclass(frozen=True, slots=True)
class Runtime:
    config: AppConfig
    audit: AuditLogger
    github: GitHubService
    permissions: PermissionValidator
    # Read on every use; GITHUB_OWNER may change while the process runs.
    managed_owner: Callable[[], str | None]


_RUNTIME: Runtime | None = None


def build_runtime(
    config: AppConfig,
    *,
    github: GitHubService | None = None,
    managed_owner: Callable[[], str | None] = current_managed_owner,
) -> Runtime:
    """Wire a runtime from configuration; ``github`` may be injected."""
    if github is None:
        client = GitHubClient(
            token=config.github.token,
            limits=config.limits,
            api_base_url=config.github.api_base_url,
        )
        github = RestGitHubService(client)
    audit = AuditLogger(
        sink_path=config.audit_log_path,
        max_bytes=config.audit_max_bytes,
        max_backups=config.audit_max_backups,
    )
    return Runtime(
        config=config,
        audit=audit,
        github=github,
        permissions=PermissionValidator(managed_owner=managed_owner, github=github),
        managed_owner=managed_owner,
    )


def initialize_runtime_from_env() -> Runtime:
    """Initialize and cache the runtime from the environment.

    Called at server startup (fail-fast on malformed settings), and lazily by
    the dispatcher.
    """
    global _RUNTIME  # pylint: disable=global-statement
    if _RUNTIME is None:
        _RUNTIME = build_runtime(load_config_from_env())
    return _RUNTIME
