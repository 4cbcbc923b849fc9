"""GitHub REST client wrapper.

Provides:
- no-redirect requests against a single configured API host
- bounded retries with backoff for 429/5xx and transport errors
- finite timeouts
- translation of failures into AppError
"""

from __future__ import annotations

import asyncio
import json
import logging

import httpx

from .config import LimitsConfig
from .errors import GITHUB, NETWORK, AppError, configuration_error

logger = logging.getLogger(__name__)


class GitHubClient:
    """Minimal GitHub REST client authenticated with an access token."""

    def __init__(
        self,
        *,
        token: str | None,
        limits: LimitsConfig,
        api_base_url: str = "https://api.github.com",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a GitHub REST client.

        Args:
            token: Access token; requests fail with a configuration error when absent.
            limits: Timeouts/retry limits.
            api_base_url: https base URL of the REST API.
            transport: Optional httpx transport for tests.
        """
        self._token = token
        self._limits = limits
        self._api_base_url = api_base_url.rstrip("/")
        self._transport = transport

        if not self._api_base_url.startswith("https://"):
            raise configuration_error("GitHub API base URL must use https")

    @property
    def is_available(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _compute_backoff_s(self, attempt_index: int) -> float:
        # attempt_index: 1 for first retry, 2 for second retry...
        base = min(self._limits.max_backoff_s, 0.5 * (2 ** (attempt_index - 1)))
        jitter = min(0.05, 0.01 * attempt_index)
        return min(self._limits.max_backoff_s, base + jitter)

    def _is_retryable(self, status_code: int | None, exc: Exception | None) -> bool:
        if exc is not None:
            return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))
        if status_code is None:
            return False
        if status_code == 429:
            return True
        return 500 <= status_code <= 599

    @staticmethod
    def _error_hint(resp: httpx.Response) -> str | None:
        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return payload["message"]
        return None

    def _status_error(self, method: str, path: str, resp: httpx.Response) -> AppError:
        hint = self._error_hint(resp)
        if resp.status_code == 401:
            message = "GitHub rejected the access token (check GITHUB_TOKEN)"
        elif resp.status_code == 403:
            message = f"GitHub denied {method} {path}: the token lacks permission or the rate limit is exhausted"
        elif resp.status_code == 404:
            message = f"GitHub resource not found: {path}"
        else:
            message = f"GitHub request {method} {path} failed with status {resp.status_code}"
        if hint:
            message = f"{message} ({hint})"
        return AppError(category=GITHUB, message=message, hint=hint, status_code=resp.status_code)

    async def request_json(
        self,
        *,
        method: str,
        path: str,
        json_body: dict | None = None,
        params: dict[str, str] | None = None,
    ) -> object:
        """Make a request and return decoded JSON.

        GitHub APIs may return an object, an array, or no content at all
        (``None`` for 204 responses such as repository deletion).
        """
        if not self._token:
            raise configuration_error("GITHUB_TOKEN environment variable must be set for GitHub operations")

        url = f"{self._api_base_url}{path}"
        timeout = httpx.Timeout(
            timeout=self._limits.request_timeout_s,
            connect=self._limits.connect_timeout_s,
        )

        last_exc: Exception | None = None
        last_status: int | None = None

        async with httpx.AsyncClient(
            follow_redirects=False,
            timeout=timeout,
            transport=self._transport,
        ) as client:
            for attempt in range(1, self._limits.max_attempts + 1):
                try:
                    resp = await client.request(
                        method,
                        url,
                        headers=self._headers(),
                        json=json_body,
                        params=params,
                    )
                    last_status = resp.status_code

                    if resp.status_code >= 400:
                        if attempt < self._limits.max_attempts and self._is_retryable(resp.status_code, None):
                            logger.warning(
                                "GitHub %s %s returned %s, retrying (attempt %s)",
                                method,
                                path,
                                resp.status_code,
                                attempt,
                            )
                            await asyncio.sleep(self._compute_backoff_s(attempt))
                            continue
                        raise self._status_error(method, path, resp)

                    if resp.status_code == 204 or not resp.content:
                        return None

                    try:
                        return resp.json()
                    except json.JSONDecodeError as exc:
                        raise AppError(category=GITHUB, message="GitHub returned invalid JSON") from exc

                except AppError:
                    raise
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    last_exc = exc
                    if attempt < self._limits.max_attempts and self._is_retryable(None, exc):
                        logger.warning("GitHub %s %s transport error, retrying: %s", method, path, type(exc).__name__)
                        await asyncio.sleep(self._compute_backoff_s(attempt))
                        continue
                    raise AppError(category=NETWORK, message=f"Network request to GitHub failed: {type(exc).__name__}") from exc

        raise AppError(category=NETWORK, message=f"GitHub request failed (status={last_status})") from last_exc
