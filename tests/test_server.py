"""MCP server wiring."""

from __future__ import annotations

import json

import pytest
import scaffold_mcp.server as server
from scaffold_mcp.errors import configuration_error
from scaffold_mcp.registry import ToolName


def test_tools_mirror_the_registry() -> None:
    tools = server.build_tools()
    assert [t.name for t in tools] == [t.value for t in ToolName]
    assert all(t.inputSchema["type"] == "object" for t in tools)


@pytest.mark.asyncio
async def test_capabilities_resource_describes_deletion_guard() -> None:
    caps = json.loads(await server.read_resource(server.CAPABILITIES_URI))
    assert caps["deletion_guard"]["requested_owner_must_equal_managed_owner"] is True
    assert "delete_repository" in caps["tools"]


@pytest.mark.asyncio
async def test_status_resource_is_secret_free(monkeypatch: pytest.MonkeyPatch, make_runtime) -> None:
    monkeypatch.setattr(server, "initialize_runtime_from_env", lambda: make_runtime(token="very-secret-token"))

    text = await server.read_resource(server.STATUS_URI)

    status = json.loads(text)
    assert status["configured"] is True
    assert status["managed_owner_configured"] is True
    assert "very-secret-token" not in text


@pytest.mark.asyncio
async def test_status_resource_reports_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken() -> None:
        raise configuration_error("GITHUB_API_URL must be an https:// URL")

    monkeypatch.setattr(server, "initialize_runtime_from_env", broken)

    status = json.loads(await server.read_resource(server.STATUS_URI))
    assert status["configured"] is False
    assert status["config_error"] == "GITHUB_API_URL must be an https:// URL"


@pytest.mark.asyncio
async def test_unknown_resource() -> None:
    out = json.loads(await server.read_resource("scaffold-mcp://nope"))
    assert out["success"] is False


@pytest.mark.asyncio
async def test_self_test_passes() -> None:
    await server.test_server()


def test_cli_arguments() -> None:
    from scaffold_mcp.__main__ import parse_args

    assert parse_args([]).http is False
    args = parse_args(["--http", "--port", "9100"])
    assert args.http is True and args.port == 9100 and args.host is None
    with pytest.raises(SystemExit):
        parse_args(["--port", "9100"])
    with pytest.raises(SystemExit):
        parse_args(["--http", "--test"])
