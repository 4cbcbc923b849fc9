"""GitHub REST client: auth headers, retries and error translation."""

from __future__ import annotations

import httpx
import pytest
from scaffold_mcp.config import LimitsConfig
from scaffold_mcp.errors import CONFIG, GITHUB, NETWORK, AppError
from scaffold_mcp.github_client import GitHubClient


def _client(handler, *, token: str | None = "tok", max_attempts: int = 3) -> GitHubClient:
    return GitHubClient(
        token=token,
        limits=LimitsConfig(max_attempts=max_attempts, max_backoff_s=0.0),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_sends_bearer_token_and_api_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "alice"})

    out = await _client(handler).request_json(method="GET", path="/user")

    assert out == {"login": "alice"}
    assert seen[0].url == "https://api.github.com/user"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].headers["X-GitHub-Api-Version"] == "2022-11-28"


@pytest.mark.asyncio
async def test_retries_on_429_then_succeeds() -> None:
    calls = {"n": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(429, json={"message": "rate limited"})
        return httpx.Response(200, json=[{"name": "a"}])

    out = await _client(handler).request_json(method="GET", path="/user/repos")

    assert out == [{"name": "a"}]
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_does_not_retry_client_errors() -> None:
    calls = {"n": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(AppError) as ei:
        await _client(handler).request_json(method="GET", path="/repos/o/r")

    assert calls["n"] == 1
    assert ei.value.category == GITHUB
    assert ei.value.status_code == 404
    assert ei.value.message == "GitHub resource not found: /repos/o/r (Not Found)"


@pytest.mark.asyncio
async def test_unauthorized_names_the_token_variable() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with pytest.raises(AppError, match="GITHUB_TOKEN"):
        await _client(handler).request_json(method="GET", path="/user")


@pytest.mark.asyncio
async def test_no_content_returns_none() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    assert await _client(handler).request_json(method="DELETE", path="/repos/o/r") is None


@pytest.mark.asyncio
async def test_transport_errors_exhaust_attempts() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AppError) as ei:
        await _client(handler, max_attempts=2).request_json(method="GET", path="/user")

    assert calls["n"] == 2
    assert ei.value.category == NETWORK


@pytest.mark.asyncio
async def test_invalid_json_is_a_github_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not-json")

    with pytest.raises(AppError, match="invalid JSON"):
        await _client(handler).request_json(method="GET", path="/user")


@pytest.mark.asyncio
async def test_missing_token_fails_without_request() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    client = _client(handler, token=None)
    assert client.is_available is False
    with pytest.raises(AppError) as ei:
        await client.request_json(method="GET", path="/user")
    assert ei.value.category == CONFIG


def test_rejects_non_https_base_url() -> None:
    with pytest.raises(AppError):
        GitHubClient(token="tok", limits=LimitsConfig(), api_base_url="http://api.github.com")
