"""Error taxonomy and handler result envelopes.

Messages carried by these errors are shown to users as-is, so they must be
actionable (name the missing setting, the offending owner, the bad field)
and must never include credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONFIG = "Config"
USER_INPUT = "UserInput"
FORBIDDEN = "Forbidden"
GITHUB = "GitHub"
NETWORK = "Network"

# Categories that describe a refused request rather than a broken one.
DENIAL_CATEGORIES: frozenset[str] = frozenset({CONFIG, USER_INPUT, FORBIDDEN})


@dataclass(frozen=True, slots=True)
class AppError(Exception):
    """An expected failure that is safe to report to the caller."""

    category: str
    message: str
    hint: str | None = None
    status_code: int | None = None
    field: str | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def is_validation_error(self) -> bool:
        return self.category in (USER_INPUT, FORBIDDEN)


def configuration_error(message: str, hint: str | None = None) -> AppError:
    """A required setting is absent or invalid."""
    return AppError(category=CONFIG, message=message, hint=hint)


def validation_error(message: str, field: str | None = None) -> AppError:
    """Malformed or missing parameters."""
    return AppError(category=USER_INPUT, message=message, field=field)


def permission_error(message: str) -> AppError:
    """An operation outside the permitted scope."""
    return AppError(category=FORBIDDEN, message=message, field="permission")


def external_service_error(message: str, *, status_code: int | None = None, hint: str | None = None) -> AppError:
    """A GitHub call failed or returned an unusable response."""
    return AppError(category=GITHUB, message=message, status_code=status_code, hint=hint)


def failure_result(message: str, **extra: Any) -> dict[str, Any]:
    """Build the ``{"success": False, ...}`` envelope returned by tool handlers."""
    out: dict[str, Any] = {"success": False, "message": message}
    out.update(extra)
    return out

