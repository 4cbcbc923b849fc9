"""Typed client for the tool endpoint.

``call`` raises ``ToolError``; ``safe_call`` and ``batch_call`` never raise
and report every failure (HTTP status, network error, timeout, malformed
body, protocol error) as a ``Failure`` holding a ``ToolError``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .protocol import (
    INTERNAL_ERROR,
    REQUEST_CANCELLED,
    TIMEOUT,
    ToolError,
    ToolRequest,
    ToolResponse,
    new_request_id,
)
from .registry import ToolName, is_valid_tool
from .result import Failure, Result, Success
from .safety import redact_text

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True, slots=True)
class ToolCall:
    method: str
    params: dict[str, Any] = field(default_factory=dict)


def _as_tool_call(spec: Any) -> ToolCall:
    if isinstance(spec, ToolCall):
        return spec
    if isinstance(spec, Mapping) and isinstance(spec.get("method"), str):
        return ToolCall(method=spec["method"], params=dict(spec.get("params") or {}))
    raise ToolError(code=INTERNAL_ERROR, message="Batch entry must provide a method name")


class TypedToolClient:
    """Client for ``POST``/``GET`` on the tool endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/api/mcp",
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a client.

        Args:
            base_url: Scheme and host of the tool server.
            path: Endpoint path on that server.
            timeout_s: Ceiling applied to each individual call.
            transport: Optional httpx transport (tests use ``httpx.ASGITransport``).
        """
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._timeout_s = timeout_s
        self._transport = transport

    def is_valid_method(self, name: object) -> bool:
        return is_valid_tool(name)

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout_s),
            transport=self._transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def _post(self, request: ToolRequest) -> Any:
        async with self._http() as http:
            resp = await http.post(self._path, content=json.dumps(request.to_dict()))

        if not resp.is_success:
            raise ToolError(
                code=resp.status_code,
                message=f"HTTP {resp.status_code}: {resp.reason_phrase}",
                data=_error_body(resp),
            )

        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ToolError(code=INTERNAL_ERROR, message="Malformed response body from tool endpoint") from exc
        if not isinstance(payload, dict):
            raise ToolError(code=INTERNAL_ERROR, message="Malformed response body from tool endpoint")

        response = ToolResponse.from_dict(payload)
        if response.error is not None:
            raise response.error
        if not response.has_result or response.result is None:
            raise ToolError(code=INTERNAL_ERROR, message="No result returned from tool call")
        return response.result

    async def call(self, method: str | ToolName, params: Mapping[str, Any] | None = None) -> Any:
        """Call a tool and return its result.

        Raises:
            ToolError: For every failure, including transport and timeout.
        """
        name = method.value if isinstance(method, ToolName) else method
        request = ToolRequest(method=name, params=dict(params or {}), id=new_request_id())
        try:
            return await asyncio.wait_for(self._post(request), timeout=self._timeout_s)
        except ToolError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ToolError(code=TIMEOUT, message=f"Tool call '{name}' timed out after {self._timeout_s}s") from exc
        except httpx.HTTPError as exc:
            logger.warning("Tool call %s failed in transport: %s", name, exc)
            raise ToolError(code=INTERNAL_ERROR, message=f"Transport error: {exc}" if str(exc) else "Transport error") from exc
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Tool call %s failed: %s", name, redact_text(str(exc)))
            raise ToolError(code=INTERNAL_ERROR, message=str(exc) or "Unknown error") from exc

    async def safe_call(self, method: str | ToolName, params: Mapping[str, Any] | None = None) -> Result[Any, ToolError]:
        """Like ``call`` but returns a Result instead of raising."""
        try:
            return Success(await self.call(method, params))
        except ToolError as err:
            return Failure(err)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return Failure(ToolError(code=INTERNAL_ERROR, message=str(exc) or "Unknown error"))

    async def batch_call(self, calls: Mapping[str, ToolCall | Mapping[str, Any]]) -> dict[str, Result[Any, ToolError]]:
        """Run every call concurrently; each key gets its own independent Result."""
        keys = list(calls)

        async def run(key: str) -> Result[Any, ToolError]:
            spec = _as_tool_call(calls[key])
            return await self.safe_call(spec.method, spec.params)

        settled = await asyncio.gather(*(run(k) for k in keys), return_exceptions=True)

        results: dict[str, Result[Any, ToolError]] = {}
        for key, outcome in zip(keys, settled):
            if isinstance(outcome, ToolError):
                results[key] = Failure(outcome)
            elif isinstance(outcome, BaseException):
                results[key] = Failure(ToolError(code=INTERNAL_ERROR, message=str(outcome) or "Batch call failed"))
            else:
                results[key] = outcome
        return results

    async def get_available_tools(self) -> list[dict[str, str]]:
        """Fetch the discovery listing.

        Raises:
            ToolError: On HTTP or transport failure.
        """
        try:
            async with self._http() as http:
                resp = await asyncio.wait_for(http.get(self._path), timeout=self._timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ToolError(code=TIMEOUT, message="Tool listing timed out") from exc
        except httpx.HTTPError as exc:
            raise ToolError(code=INTERNAL_ERROR, message=f"Failed to get tools: {exc}") from exc
        if not resp.is_success:
            raise ToolError(code=resp.status_code, message=f"HTTP {resp.status_code}: {resp.reason_phrase}")
        try:
            tools = resp.json().get("tools")
        except (json.JSONDecodeError, AttributeError) as exc:
            raise ToolError(code=INTERNAL_ERROR, message="Malformed tool listing") from exc
        if not isinstance(tools, list):
            raise ToolError(code=INTERNAL_ERROR, message="Malformed tool listing")
        return tools


def _error_body(resp: httpx.Response) -> Any:
    try:
        payload = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    return None


class SupersedingCaller:
    """Keeps at most one live call per logical key.

    Starting a call for a key cancels the in-flight call for the same key.
    The superseded caller receives ``Failure(ToolError(REQUEST_CANCELLED))``,
    also when its result arrives after the newer call started, so only the
    newest call's result is ever delivered.
    """

    def __init__(self, client: TypedToolClient) -> None:
        self._client = client
        self._inflight: dict[str, asyncio.Task] = {}

    def _superseded(self, key: str) -> Failure[ToolError]:
        return Failure(ToolError(code=REQUEST_CANCELLED, message=f"Request for '{key}' was superseded by a newer one"))

    async def call(self, key: str, method: str | ToolName, params: Mapping[str, Any] | None = None) -> Result[Any, ToolError]:
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(self._client.safe_call(method, params))
        self._inflight[key] = task
        try:
            result = await task
            if self._inflight.get(key) is not task:
                return self._superseded(key)
            return result
        except asyncio.CancelledError:
            if self._inflight.get(key) is not task:
                return self._superseded(key)
            raise
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    def cancel(self, key: str) -> bool:
        """Cancel the in-flight call for ``key``; return whether one was running."""
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True
