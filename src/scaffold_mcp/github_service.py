"""GitHub service used by the tool handlers.

Every operation is asynchronous and fallible, and reports its outcome as a
``ServiceResult`` instead of raising: failures of the underlying REST client
are folded into ``success=False`` with the client's message.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import AppError, external_service_error
from .github_client import GitHubClient

logger = logging.getLogger(__name__)

TOKEN_MISSING_MESSAGE = "GitHub token not available. Set the GITHUB_TOKEN environment variable."


@dataclass(frozen=True, slots=True)
class ServiceResult:
    success: bool
    message: str
    data: Any = None


@dataclass(frozen=True, slots=True)
class ListRepositoryOptions:
    owner: str | None = None
    name_filter: str | None = None
    type: str = "all"
    sort: str = "updated"
    direction: str = "desc"
    per_page: int = 100
    page: int = 1


@dataclass(frozen=True, slots=True)
class RepoConfig:
    owner: str
    repo: str
    description: str | None = None
    private: bool = False


@dataclass(frozen=True, slots=True)
class CommitFile:
    path: str
    content: str


class GitHubService(Protocol):
    """Contract the repository handlers depend on."""

    def is_github_available(self) -> bool:
        ...

    async def get_authenticated_user(self) -> ServiceResult:
        ...

    async def check_owner_type(self, owner: str) -> ServiceResult:
        ...

    async def list_repositories(self, options: ListRepositoryOptions) -> ServiceResult:
        ...

    async def get_repository(self, owner: str, repo: str) -> ServiceResult:
        ...

    async def delete_repository(self, owner: str, repo: str) -> ServiceResult:
        ...

    async def create_repository(self, config: RepoConfig) -> ServiceResult:
        ...

    async def commit_files(self, config: RepoConfig, files: list[CommitFile], message: str) -> ServiceResult:
        ...

    async def get_repository_languages(self, owner: str, repo: str) -> ServiceResult:
        ...

    async def get_repository_topics(self, owner: str, repo: str) -> ServiceResult:
        ...

    async def get_repository_readme(self, owner: str, repo: str) -> ServiceResult:
        ...


def _matches_filter(repo: dict[str, Any], needle: str) -> bool:
    for key in ("name", "full_name", "description"):
        value = repo.get(key)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


class RestGitHubService:
    """GitHubService backed by the REST API."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    def is_github_available(self) -> bool:
        return self._client.is_available

    async def get_authenticated_user(self) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path="/user")
        except AppError as err:
            return ServiceResult(False, f"Failed to get authenticated user: {err.message}")
        if not isinstance(data, dict) or not isinstance(data.get("login"), str):
            return ServiceResult(False, "Unexpected response for authenticated user")
        user = {
            "login": data["login"],
            "id": data.get("id"),
            "type": data.get("type"),
            "name": data.get("name"),
            "email": data.get("email"),
        }
        return ServiceResult(True, f"Authenticated as {user['login']}", user)

    async def check_owner_type(self, owner: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path=f"/users/{owner}")
        except AppError as err:
            return ServiceResult(False, err.message)
        raw_type = data.get("type") if isinstance(data, dict) else None
        if raw_type == "Organization":
            return ServiceResult(True, f"'{owner}' is an organization", "organization")
        if raw_type == "User":
            return ServiceResult(True, f"'{owner}' is a user", "user")
        return ServiceResult(False, f"Unknown owner type for '{owner}'")

    async def list_repositories(self, options: ListRepositoryOptions) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)

        path = "/user/repos"
        params = {
            "type": options.type,
            "sort": options.sort,
            "direction": options.direction,
            "per_page": str(min(options.per_page, 100)),
            "page": str(options.page),
        }
        if options.owner:
            owner_type = await self.check_owner_type(options.owner)
            if not owner_type.success:
                return ServiceResult(False, f"Failed to verify owner '{options.owner}': {owner_type.message}")
            if owner_type.data == "organization":
                path = f"/orgs/{options.owner}/repos"
            else:
                path = f"/users/{options.owner}/repos"
                # The per-user endpoint only understands all/owner/member.
                if options.type != "all":
                    params["type"] = "owner"

        try:
            data = await self._client.request_json(method="GET", path=path, params=params)
        except AppError as err:
            return ServiceResult(False, f"Failed to list repositories: {err.message}")
        if not isinstance(data, list):
            return ServiceResult(False, "Unexpected repository list response")

        repositories = [r for r in data if isinstance(r, dict)]
        if options.owner and options.type in ("public", "private"):
            want_private = options.type == "private"
            repositories = [r for r in repositories if bool(r.get("private")) == want_private]
        if options.name_filter:
            needle = options.name_filter.lower()
            repositories = [r for r in repositories if _matches_filter(r, needle)]

        return ServiceResult(True, f"Retrieved {len(repositories)} repositories", repositories)

    async def get_repository(self, owner: str, repo: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path=f"/repos/{owner}/{repo}")
        except AppError as err:
            if err.status_code == 404:
                return ServiceResult(False, f"Repository {owner}/{repo} not found")
            return ServiceResult(False, err.message)
        if not isinstance(data, dict):
            return ServiceResult(False, "Unexpected repository response")
        return ServiceResult(True, f"Repository information retrieved for {owner}/{repo}", data)

    async def delete_repository(self, owner: str, repo: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)

        existing = await self.get_repository(owner, repo)
        if not existing.success:
            return ServiceResult(False, f"Cannot delete repository: {existing.message}")

        logger.info("Deleting repository %s/%s", owner, repo)
        try:
            await self._client.request_json(method="DELETE", path=f"/repos/{owner}/{repo}")
        except AppError as err:
            return ServiceResult(False, f"Repository deletion failed: {err.message}")
        return ServiceResult(True, f"Repository '{owner}/{repo}' deleted successfully")

    async def create_repository(self, config: RepoConfig) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)

        owner_type = await self.check_owner_type(config.owner)
        if not owner_type.success:
            return ServiceResult(False, f"Failed to verify owner '{config.owner}': {owner_type.message}")

        payload = {
            "name": config.repo,
            "description": config.description or f"Generated project: {config.repo}",
            "private": config.private,
            "auto_init": True,
        }
        if owner_type.data == "organization":
            path = f"/orgs/{config.owner}/repos"
        else:
            user = await self.get_authenticated_user()
            if not user.success or user.data["login"] != config.owner:
                return ServiceResult(
                    False,
                    f"Cannot create repository under user '{config.owner}': "
                    "repositories can only be created under your own user account",
                )
            path = "/user/repos"

        logger.info("Creating repository %s/%s", config.owner, config.repo)
        try:
            data = await self._client.request_json(method="POST", path=path, json_body=payload)
        except AppError as err:
            return ServiceResult(False, f"Repository creation failed: {err.message}")
        url = data.get("html_url") if isinstance(data, dict) else None
        return ServiceResult(True, f"Repository '{config.owner}/{config.repo}' created successfully", {"url": url})

    async def commit_files(self, config: RepoConfig, files: list[CommitFile], message: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        if not files:
            return ServiceResult(False, "No files provided for commit")

        base = f"/repos/{config.owner}/{config.repo}"
        try:
            repo_data = await self._client.request_json(method="GET", path=base)
            if not isinstance(repo_data, dict) or not isinstance(repo_data.get("default_branch"), str):
                raise external_service_error("Unexpected repository response")
            branch = repo_data["default_branch"]

            ref = await self._client.request_json(method="GET", path=f"{base}/git/ref/heads/{branch}")
            head_sha = ref["object"]["sha"] if isinstance(ref, dict) else None
            if not isinstance(head_sha, str):
                raise external_service_error(f"Failed to get branch reference for {branch}")

            head_commit = await self._client.request_json(method="GET", path=f"{base}/git/commits/{head_sha}")
            base_tree = head_commit["tree"]["sha"] if isinstance(head_commit, dict) else None

            async def create_blob(file: CommitFile) -> dict[str, str]:
                blob = await self._client.request_json(
                    method="POST",
                    path=f"{base}/git/blobs",
                    json_body={
                        "content": base64.b64encode(file.content.encode("utf-8")).decode("ascii"),
                        "encoding": "base64",
                    },
                )
                if not isinstance(blob, dict) or not isinstance(blob.get("sha"), str):
                    raise external_service_error(f"Failed to create blob for {file.path}")
                return {"path": file.path, "mode": "100644", "type": "blob", "sha": blob["sha"]}

            blob_tasks = [asyncio.ensure_future(create_blob(f)) for f in files]
            try:
                entries = await asyncio.gather(*blob_tasks)
            except BaseException:
                for task in blob_tasks:
                    task.cancel()
                await asyncio.gather(*blob_tasks, return_exceptions=True)
                raise

            tree = await self._client.request_json(
                method="POST",
                path=f"{base}/git/trees",
                json_body={"base_tree": base_tree, "tree": list(entries)},
            )
            commit = await self._client.request_json(
                method="POST",
                path=f"{base}/git/commits",
                json_body={"message": message, "tree": tree["sha"], "parents": [head_sha]},
            )
            await self._client.request_json(
                method="PATCH",
                path=f"{base}/git/refs/heads/{branch}",
                json_body={"sha": commit["sha"]},
            )
        except AppError as err:
            return ServiceResult(False, f"Commit failed: {err.message}")
        except (KeyError, TypeError) as exc:
            logger.warning("Unexpected commit response shape for %s/%s: %s", config.owner, config.repo, exc)
            return ServiceResult(False, "Commit failed: unexpected response from GitHub")

        return ServiceResult(
            True,
            f"Successfully committed {len(files)} files to {config.owner}/{config.repo}",
            {"commitSha": commit["sha"], "commitUrl": commit.get("html_url")},
        )

    async def get_repository_languages(self, owner: str, repo: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path=f"/repos/{owner}/{repo}/languages")
        except AppError as err:
            return ServiceResult(False, err.message)
        if not isinstance(data, dict):
            return ServiceResult(False, "Unexpected languages response")
        return ServiceResult(True, f"Languages retrieved for {owner}/{repo}", data)

    async def get_repository_topics(self, owner: str, repo: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path=f"/repos/{owner}/{repo}/topics")
        except AppError as err:
            return ServiceResult(False, err.message)
        names = data.get("names") if isinstance(data, dict) else None
        if not isinstance(names, list):
            return ServiceResult(False, "Unexpected topics response")
        return ServiceResult(True, f"Topics retrieved for {owner}/{repo}", names)

    async def get_repository_readme(self, owner: str, repo: str) -> ServiceResult:
        if not self.is_github_available():
            return ServiceResult(False, TOKEN_MISSING_MESSAGE)
        try:
            data = await self._client.request_json(method="GET", path=f"/repos/{owner}/{repo}/readme")
        except AppError as err:
            return ServiceResult(False, err.message)
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            return ServiceResult(False, "Unexpected README response")
        if data.get("encoding") != "base64":
            return ServiceResult(True, f"README retrieved for {owner}/{repo}", data["content"])
        try:
            text = base64.b64decode(data["content"]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return ServiceResult(False, "README content could not be decoded")
        return ServiceResult(True, f"README retrieved for {owner}/{repo}", text)
