"""Input safety checks.

Tool callers never supply credentials: the GitHub token comes from the host
environment only. Parameters that look like credentials are rejected without
echoing the suspicious value, and anything logged passes through
``redact_text``.
"""

from __future__ import annotations

import re
from typing import Any

from .errors import validation_error

_CREDENTIAL_FIELDS = frozenset(
    {
        "token",
        "access_token",
        "github_token",
        "authorization",
        "password",
        "secret",
        "private_key",
    }
)

# Token prefix plus a token-shaped tail; a bare prefix is a legal repository name.
_GITHUB_TOKEN_RE = re.compile(r"^(?:gh[pousr]_[A-Za-z0-9]{36,}|github_pat_[A-Za-z0-9_]{22,})$")

_JWT_LIKE_RE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")


def looks_like_secret(value: object) -> bool:
    """Return True if a string looks like a bearer header, GitHub token or JWT."""
    if not isinstance(value, str):
        return False
    trimmed = value.strip()
    lowered = trimmed.lower()
    if lowered.startswith("bearer ") or _GITHUB_TOKEN_RE.match(trimmed):
        return True
    return len(trimmed) >= 40 and bool(_JWT_LIKE_RE.match(trimmed))


def reject_credentials(params: Any, path: str = "params") -> None:
    """Raise a validation error if ``params`` carries anything credential-like."""
    if isinstance(params, dict):
        for key, value in params.items():
            if str(key).strip().lower() in _CREDENTIAL_FIELDS:
                raise validation_error("Credential-like fields are not accepted as tool parameters", field=f"{path}.{key}")
            reject_credentials(value, f"{path}.{key}")
    elif isinstance(params, list):
        for i, item in enumerate(params):
            reject_credentials(item, f"{path}[{i}]")
    elif looks_like_secret(params):
        raise validation_error("Credential-like values are not accepted as tool parameters", field=path)


def redact_text(text: object) -> str:
    if not isinstance(text, str):
        return "<non-string>"
    return "<redacted>" if looks_like_secret(text) else text
