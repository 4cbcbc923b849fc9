"""GitHub identity and publishing tools."""

from __future__ import annotations

import logging
import re
from typing import Any

from .errors import failure_result
from .github_service import TOKEN_MISSING_MESSAGE, CommitFile, RepoConfig
from .runtime import Runtime

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9._-]")


def normalize_repository_name(name: str) -> str:
    """Lowercase and replace characters GitHub would reject with ``-``."""
    return _INVALID_NAME_CHARS.sub("-", name.strip().lower()).strip("-.") or "project"


async def get_github_user(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    user = await runtime.github.get_authenticated_user()
    if not user.success:
        return failure_result(user.message)
    return {"success": True, "message": user.message, "user": user.data}


async def check_github_owner_type(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    owner = arguments["owner"]
    checked = await runtime.github.check_owner_type(owner)
    if not checked.success:
        return failure_result(checked.message, owner=owner)
    return {"success": True, "message": checked.message, "owner": owner, "type": checked.data}


async def create_github_repository(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    """Create a repository under the authenticated user and commit the given files."""
    if not runtime.github.is_github_available():
        return failure_result(TOKEN_MISSING_MESSAGE)

    user = await runtime.github.get_authenticated_user()
    if not user.success or not isinstance(user.data, dict):
        return failure_result(user.message or "Failed to authenticate with GitHub. Check GITHUB_TOKEN.")
    login = user.data["login"]

    project_name = arguments["name"]
    repo_name = normalize_repository_name(project_name)
    files = [CommitFile(path=f["path"], content=f["content"]) for f in arguments["files"]]
    config = RepoConfig(
        owner=login,
        repo=repo_name,
        description=arguments.get("description") or f"Generated project: {project_name}",
        private=bool(arguments.get("private", False)),
    )

    created = await runtime.github.create_repository(config)
    if not created.success:
        return failure_result(f"Failed to create repository: {created.message}")
    url = (created.data or {}).get("url")
    logger.info("Created repository %s/%s, committing %s files", login, repo_name, len(files))

    committed = await runtime.github.commit_files(
        config,
        files,
        arguments.get("commitMessage") or f"Generated project: {project_name}",
    )
    if not committed.success:
        return failure_result(
            f"Repository created but file upload failed: {committed.message}",
            repositoryName=repo_name,
            repositoryUrl=url,
        )

    return {
        "success": True,
        "message": f"GitHub repository '{repo_name}' created successfully with {len(files)} files",
        "repositoryName": repo_name,
        "repositoryUrl": url,
        "fileCount": len(files),
        "owner": login,
    }
