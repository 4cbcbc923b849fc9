"""Repository lifecycle tools.

Handlers return ``{"success": bool, "message": str, ...}``. Expected
failures (missing configuration, bad parameters, GitHub refusals, permission
denials) come back as ``success: False`` with an actionable message; only
unexpected exceptions escape to the dispatcher.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from .config import missing_required
from .errors import failure_result
from .github_service import ListRepositoryOptions
from .result import Failure
from .runtime import Runtime
from .safety import redact_text

logger = logging.getLogger(__name__)

_SCAFFOLD_NAME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^project-", re.IGNORECASE),
    re.compile(r"^my-project-", re.IGNORECASE),
    re.compile(r"^scaffolded-", re.IGNORECASE),
    re.compile(r"^generated-", re.IGNORECASE),
    re.compile(r"-project$", re.IGNORECASE),
    re.compile(r"-app$", re.IGNORECASE),
    re.compile(r"-demo$", re.IGNORECASE),
    # Millisecond timestamps, as appended to generated names.
    re.compile(r"(?<!\d)\d{13}(?!\d)"),
)

_SCAFFOLD_DESCRIPTION_RE = re.compile(r"generated project|scaffolded|auto-generated|created by", re.IGNORECASE)


def is_scaffolded_project(name: str, description: str | None) -> bool:
    """Guess whether a repository was produced by the scaffolder.

    Best-effort display hint from naming and description patterns. It is not
    a security boundary and must never feed the deletion permission guard.
    """
    if any(p.search(name) for p in _SCAFFOLD_NAME_PATTERNS):
        return True
    return bool(description) and bool(_SCAFFOLD_DESCRIPTION_RE.search(description))


def to_repository(raw: dict[str, Any]) -> dict[str, Any]:
    """Project a GitHub repository payload onto the view returned by tools."""
    name = raw.get("name") or ""
    description = raw.get("description")
    full_name = raw.get("full_name") or name
    return {
        "id": full_name,
        "name": name,
        "fullName": full_name,
        "url": raw.get("html_url") or raw.get("url"),
        "description": description,
        "private": bool(raw.get("private")),
        "createdAt": raw.get("created_at"),
        "updatedAt": raw.get("updated_at"),
        "isScaffoldedProject": is_scaffolded_project(name, description if isinstance(description, str) else None),
    }


def _missing_env_result(runtime: Runtime) -> dict[str, Any] | None:
    missing = missing_required(runtime.config)
    if missing:
        return failure_result(f"Missing required environment variables: {', '.join(missing)}")
    return None


def _owner_and_repo(arguments: dict[str, Any]) -> tuple[str, str] | None:
    owner = arguments.get("owner")
    repo = arguments.get("repo")
    if not isinstance(owner, str) or not owner.strip() or not isinstance(repo, str) or not repo.strip():
        return None
    return owner.strip(), repo.strip()


async def _resolve_owner(runtime: Runtime, requested: str | None) -> str | None:
    """Explicit owner, then GITHUB_OWNER, then the authenticated account."""
    if requested:
        return requested
    managed = runtime.managed_owner()
    if managed:
        return managed
    user = await runtime.github.get_authenticated_user()
    if user.success and isinstance(user.data, dict):
        login = user.data.get("login")
        if isinstance(login, str) and login:
            return login
    return None


async def list_repositories(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    missing = _missing_env_result(runtime)
    if missing is not None:
        return missing

    requested = arguments.get("owner")
    owner = await _resolve_owner(runtime, requested.strip() if isinstance(requested, str) else None)
    if owner is None:
        return failure_result(
            "Unable to determine GitHub owner. Set GITHUB_OWNER environment variable or ensure GitHub token is valid."
        )

    options = ListRepositoryOptions(
        owner=owner,
        name_filter=arguments.get("nameFilter") or None,
        type=arguments.get("type") or "all",
        sort=arguments.get("sort") or "updated",
        direction=arguments.get("direction") or "desc",
        per_page=runtime.config.limits.list_per_page,
    )
    listed = await runtime.github.list_repositories(options)
    if not listed.success:
        return failure_result(listed.message)

    # Classification is recomputed on every listing.
    repositories = [to_repository(r) for r in listed.data or []]
    logger.info("Listed %s repositories for %s", len(repositories), owner)
    return {
        "success": True,
        "message": f"Found {len(repositories)} repositories",
        "repositories": repositories,
        "owner": owner,
        "total": len(repositories),
    }


async def get_repository(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    target = _owner_and_repo(arguments)
    if target is None:
        return failure_result("Owner and repository name are required")
    missing = _missing_env_result(runtime)
    if missing is not None:
        return missing

    owner, repo = target
    found = await runtime.github.get_repository(owner, repo)
    if not found.success or not isinstance(found.data, dict):
        return failure_result(found.message or f"Repository {owner}/{repo} not found")
    return {
        "success": True,
        "message": f"Repository {owner}/{repo} retrieved successfully",
        "repository": to_repository(found.data),
    }


async def delete_repository(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    target = _owner_and_repo(arguments)
    if target is None:
        return failure_result("Owner and repository name are required")
    missing = _missing_env_result(runtime)
    if missing is not None:
        return missing

    owner, repo = target
    permission = await runtime.permissions.check_deletion(owner)
    if isinstance(permission, Failure):
        return failure_result(permission.error.message)

    deleted = await runtime.github.delete_repository(owner, repo)
    if not deleted.success:
        return failure_result(deleted.message)
    logger.info("Repository %s/%s deleted", owner, repo)
    return {"success": True, "message": f"Repository '{owner}/{repo}' deleted successfully"}


async def validate_repository_permissions(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    """Report the decision ``delete_repository`` would make, without deleting."""
    owner = arguments.get("owner")
    if not isinstance(owner, str) or not owner.strip():
        return failure_result("Owner is required", canDelete=False)

    outcome = await runtime.permissions.evaluate(owner.strip())
    if isinstance(outcome, Failure):
        return failure_result(outcome.error.message, canDelete=False)

    decision = outcome.data
    return {
        "success": True,
        "message": decision.message,
        "canDelete": decision.can_delete,
        "githubOwner": decision.configured_owner,
        "authenticatedUser": decision.authenticated_user,
    }


def _language_percentages(languages: dict[str, Any]) -> dict[str, int]:
    sizes = {k: v for k, v in languages.items() if isinstance(v, (int, float)) and not isinstance(v, bool)}
    total = sum(sizes.values())
    if total <= 0:
        return {}
    return {lang: round(size / total * 100) for lang, size in sizes.items()}


async def get_repository_details(runtime: Runtime, arguments: dict[str, Any]) -> dict[str, Any]:
    """Fetch metadata, languages, topics and README concurrently.

    Each part settles independently; whatever succeeded is returned and the
    parts that failed are listed under ``unavailable``.
    """
    target = _owner_and_repo(arguments)
    if target is None:
        return failure_result("Owner and repository name are required")
    if not runtime.github.is_github_available():
        return failure_result("GitHub API not available - missing GITHUB_TOKEN")

    owner, repo = target
    parts = ("repository", "languages", "topics", "readme")
    settled = await asyncio.gather(
        runtime.github.get_repository(owner, repo),
        runtime.github.get_repository_languages(owner, repo),
        runtime.github.get_repository_topics(owner, repo),
        runtime.github.get_repository_readme(owner, repo),
        return_exceptions=True,
    )

    data: dict[str, Any] = {}
    unavailable: list[str] = []
    for part, outcome in zip(parts, settled):
        if isinstance(outcome, BaseException):
            logger.warning("Repository details part %s failed for %s/%s: %s", part, owner, repo, redact_text(str(outcome)))
            unavailable.append(part)
            continue
        if not outcome.success or outcome.data is None:
            unavailable.append(part)
            continue

        if part == "repository":
            meta = outcome.data
            license_info = meta.get("license") or {}
            data.update(
                {
                    "stars": meta.get("stargazers_count"),
                    "forks": meta.get("forks_count"),
                    "openIssues": meta.get("open_issues_count"),
                    "size": meta.get("size"),
                    "license": license_info.get("name") or license_info.get("spdx_id"),
                    "defaultBranch": meta.get("default_branch"),
                }
            )
        elif part == "languages":
            data["languages"] = outcome.data
            percentages = _language_percentages(outcome.data)
            if percentages:
                data["languagesPercentages"] = percentages
        else:
            data[part] = outcome.data

    if len(unavailable) == len(parts):
        return failure_result(f"Failed to fetch repository details for {owner}/{repo}", unavailable=unavailable)
    return {
        "success": True,
        "message": f"Repository details retrieved for {owner}/{repo}",
        "data": data,
        "unavailable": unavailable,
    }
