from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from scaffold_mcp.config import AppConfig, GitHubConfig, LimitsConfig
from scaffold_mcp.github_service import CommitFile, ListRepositoryOptions, RepoConfig, ServiceResult
from scaffold_mcp.runtime import Runtime, build_runtime


def raw_repo(owner: str, name: str, description: str | None = None, private: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "full_name": f"{owner}/{name}",
        "html_url": f"https://github.com/{owner}/{name}",
        "description": description,
        "private": private,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-02-01T00:00:00Z",
        "stargazers_count": 3,
        "forks_count": 1,
        "open_issues_count": 0,
        "size": 42,
        "license": {"name": "MIT License", "spdx_id": "MIT"},
        "default_branch": "main",
    }


class FakeGitHub:
    """In-memory GitHubService that records every call.

    ``overrides`` maps a method name to a ServiceResult to return, or to an
    exception to raise, instead of the default behavior.
    """

    def __init__(
        self,
        *,
        login: str | None = "alice",
        available: bool = True,
        repositories: list[dict[str, Any]] | None = None,
    ) -> None:
        self.login = login
        self.available = available
        self.repositories = list(repositories or [])
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.overrides: dict[str, ServiceResult | Exception] = {}

    def _record(self, name: str, *args: Any) -> ServiceResult | None:
        self.calls.append((name, args))
        override = self.overrides.get(name)
        if isinstance(override, Exception):
            raise override
        return override

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    def is_github_available(self) -> bool:
        return self.available

    async def get_authenticated_user(self) -> ServiceResult:
        if (res := self._record("get_authenticated_user")) is not None:
            return res
        if self.login is None:
            return ServiceResult(False, "Failed to get authenticated user: Bad credentials")
        user = {"login": self.login, "id": 1, "type": "User", "name": None, "email": None}
        return ServiceResult(True, f"Authenticated as {self.login}", user)

    async def check_owner_type(self, owner: str) -> ServiceResult:
        if (res := self._record("check_owner_type", owner)) is not None:
            return res
        if owner.endswith("-org"):
            return ServiceResult(True, f"'{owner}' is an organization", "organization")
        return ServiceResult(True, f"'{owner}' is a user", "user")

    async def list_repositories(self, options: ListRepositoryOptions) -> ServiceResult:
        if (res := self._record("list_repositories", options)) is not None:
            return res
        return ServiceResult(True, "ok", list(self.repositories))

    async def get_repository(self, owner: str, repo: str) -> ServiceResult:
        if (res := self._record("get_repository", owner, repo)) is not None:
            return res
        for r in self.repositories:
            if r.get("full_name") == f"{owner}/{repo}":
                return ServiceResult(True, "ok", r)
        return ServiceResult(False, f"Repository {owner}/{repo} not found")

    async def delete_repository(self, owner: str, repo: str) -> ServiceResult:
        if (res := self._record("delete_repository", owner, repo)) is not None:
            return res
        return ServiceResult(True, f"Repository '{owner}/{repo}' deleted successfully")

    async def create_repository(self, config: RepoConfig) -> ServiceResult:
        if (res := self._record("create_repository", config)) is not None:
            return res
        return ServiceResult(True, "created", {"url": f"https://github.com/{config.owner}/{config.repo}"})

    async def commit_files(self, config: RepoConfig, files: list[CommitFile], message: str) -> ServiceResult:
        if (res := self._record("commit_files", config, files, message)) is not None:
            return res
        return ServiceResult(True, "committed", {"commitSha": "abc123", "commitUrl": None})

    async def get_repository_languages(self, owner: str, repo: str) -> ServiceResult:
        if (res := self._record("get_repository_languages", owner, repo)) is not None:
            return res
        return ServiceResult(True, "ok", {"Python": 300, "Shell": 100})

    async def get_repository_topics(self, owner: str, repo: str) -> ServiceResult:
        if (res := self._record("get_repository_topics", owner, repo)) is not None:
            return res
        return ServiceResult(True, "ok", ["cli", "mcp"])

    async def get_repository_readme(self, owner: str, repo: str) -> ServiceResult:
        if (res := self._record("get_repository_readme", owner, repo)) is not None:
            return res
        return ServiceResult(True, "ok", "# Hello")


@pytest.fixture()
def make_runtime(tmp_path: Path) -> Callable[..., Runtime]:
    def _make(
        github: FakeGitHub | None = None,
        *,
        managed_owner: str | None = "bots-org",
        token: str | None = "test-token",
        audit_file: bool = False,
    ) -> Runtime:
        config = AppConfig(
            github=GitHubConfig(token=token),
            limits=LimitsConfig(),
            audit_log_path=tmp_path / "audit.jsonl" if audit_file else None,
        )
        return build_runtime(config, github=github or FakeGitHub(), managed_owner=lambda: managed_owner)

    return _make
