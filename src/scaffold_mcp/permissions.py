"""Repository deletion permission guard.

Deletion is only ever allowed against an explicitly configured managed owner
(GITHUB_OWNER) that is not the account the token authenticates as. The
checks run in a fixed order, fresh on every attempt, and the first failing
check decides the outcome:

1. a managed owner is configured
2. the authenticated account can be resolved
3. the managed owner is not the authenticated account
4. the requested owner is exactly the managed owner

Nothing here is cached: configuration and token identity may change between
calls. The scaffolded-project heuristic is deliberately not an input.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .errors import AppError, configuration_error, permission_error, validation_error
from .github_service import GitHubService
from .result import Failure, Result, Success

logger = logging.getLogger(__name__)

MANAGED_OWNER_MISSING = "GITHUB_OWNER environment variable must be specified for repository operations"
IDENTITY_UNAVAILABLE = "Unable to validate GitHub token permissions"


@dataclass(frozen=True, slots=True)
class PermissionDecision:
    """Outcome of checks 3 and 4 once configuration and identity are known."""

    can_delete: bool
    configured_owner: str
    authenticated_user: str
    requested_owner: str
    denial: AppError | None = None

    @property
    def message(self) -> str:
        if self.denial is not None:
            return self.denial.message
        return f"Repository deletion allowed for owner '{self.requested_owner}'"


class PermissionValidator:
    """Evaluates the deletion guard against live configuration and identity."""

    def __init__(self, *, managed_owner: Callable[[], str | None], github: GitHubService) -> None:
        self._managed_owner = managed_owner
        self._github = github

    async def evaluate(self, requested_owner: str) -> Result[PermissionDecision, AppError]:
        """Run the guard and describe the decision without enforcing it.

        Checks 1 and 2 fail with an error because no decision can be made;
        checks 3 and 4 produce a decision with ``can_delete=False``.
        """
        configured_owner = self._managed_owner()
        if not configured_owner:
            return Failure(
                configuration_error(MANAGED_OWNER_MISSING, hint="Set GITHUB_OWNER to a dedicated account or organization")
            )

        user = await self._github.get_authenticated_user()
        login = user.data.get("login") if user.success and isinstance(user.data, dict) else None
        if not isinstance(login, str) or not login:
            logger.warning("Permission check could not resolve the authenticated user: %s", user.message)
            return Failure(validation_error(IDENTITY_UNAVAILABLE, field="authentication"))

        denial: AppError | None = None
        # GitHub logins are case-insensitive; compare the same way here.
        if configured_owner.lower() == login.lower():
            denial = validation_error(
                f"Repository deletion not allowed: GITHUB_OWNER ({configured_owner}) cannot be the same as "
                "the authenticated user. This prevents accidental deletion of personal repositories.",
                field="permission",
            )
        elif requested_owner != configured_owner:
            denial = permission_error(
                f"Not enough permission to delete repositories under '{requested_owner}'. "
                f"Only repositories under '{configured_owner}' can be deleted."
            )

        return Success(
            PermissionDecision(
                can_delete=denial is None,
                configured_owner=configured_owner,
                authenticated_user=login,
                requested_owner=requested_owner,
                denial=denial,
            )
        )

    async def check_deletion(self, requested_owner: str) -> Result[PermissionDecision, AppError]:
        """Run the guard and fail unless deletion may proceed."""
        outcome = await self.evaluate(requested_owner)
        if isinstance(outcome, Failure):
            return outcome
        decision = outcome.data
        if decision.denial is not None:
            logger.info(
                "Deletion under '%s' denied (managed owner '%s')",
                requested_owner,
                decision.configured_owner,
            )
            return Failure(decision.denial)
        return outcome
