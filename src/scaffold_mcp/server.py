"""Server wiring for scaffold-mcp.

The same dispatcher is exposed two ways: as an MCP server over stdio, and as
a JSON-over-HTTP endpoint served by uvicorn.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

try:
    from mcp.server import Server
    from mcp.types import Resource, TextContent, Tool
except ImportError as exc:  # pragma: no cover
    raise ImportError("MCP library not installed. Install with: pip install mcp") from exc

from . import __version__
from .config import load_config_from_env
from .dispatcher import dispatch_tool
from .errors import AppError
from .registry import TOOL_METADATA, ToolName
from .runtime import initialize_runtime_from_env

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)

server = Server("scaffold-mcp")

STATUS_URI = "scaffold-mcp://server-status"
CAPABILITIES_URI = "scaffold-mcp://capabilities"


def build_tools() -> list[Tool]:
    return [
        Tool(
            name=t.value,
            description=TOOL_METADATA[t.value]["description"],
            inputSchema=TOOL_METADATA[t.value]["inputSchema"],
        )
        for t in ToolName
    ]


def build_resources() -> list[Resource]:
    return [
        Resource(uri=STATUS_URI, name="Server Status", description="Non-secret configuration summary"),
        Resource(uri=CAPABILITIES_URI, name="Capabilities", description="Available tools and deletion guard rules"),
    ]


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    tools = build_tools()
    logger.info("Listed %s tools", len(tools))
    return tools


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Execute a tool and return its response envelope as JSON text."""
    logger.info("Tool called: %s", name)
    response = await dispatch_tool(name, arguments if isinstance(arguments, dict) else {})
    return [TextContent(type="text", text=json.dumps(response.to_dict(), indent=2, default=str))]


@server.list_resources()
async def list_resources() -> list[Resource]:
    return build_resources()


def status_document() -> dict[str, Any]:
    status: dict[str, Any] = {
        "server": "scaffold-mcp",
        "version": __version__,
        "tools_available": len(TOOL_METADATA),
        "configured": False,
    }
    try:
        runtime = initialize_runtime_from_env()
    except AppError as err:
        status["config_error"] = err.message
        return status
    status["configured"] = runtime.config.github.has_token
    status["github_token_present"] = runtime.config.github.has_token
    status["managed_owner_configured"] = bool(runtime.managed_owner())
    status["request_timeout_s"] = runtime.config.limits.request_timeout_s
    status["audit_file_sink_enabled"] = runtime.config.audit_log_path is not None
    return status


@server.read_resource()
async def read_resource(uri: Any) -> str:
    uri_s = uri if isinstance(uri, str) else str(uri)

    if uri_s == CAPABILITIES_URI:
        caps = {
            "server": "scaffold-mcp",
            "version": __version__,
            "tools": sorted(TOOL_METADATA),
            "deletion_guard": {
                "requires_managed_owner": True,
                "managed_owner_may_not_be_authenticated_user": True,
                "requested_owner_must_equal_managed_owner": True,
            },
        }
        return json.dumps(caps, indent=2)

    if uri_s == STATUS_URI:
        return json.dumps(status_document(), indent=2)

    return json.dumps({"success": False, "message": f"Unknown resource: {uri_s}"}, indent=2)


async def run_server() -> None:
    """Run the MCP server over stdio."""
    try:
        _ = initialize_runtime_from_env()
    except AppError as exc:
        logger.error("Startup configuration error: %s", exc.message)
        raise

    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run_http_server(*, host: str | None = None, port: int | None = None) -> None:
    """Serve the JSON-over-HTTP endpoint with uvicorn."""
    import uvicorn

    from .http_app import create_app

    config = load_config_from_env()
    bind_host = host or config.http_host
    bind_port = port or config.http_port
    app = create_app(max_request_bytes=config.limits.max_request_bytes)
    logger.info("Serving tool endpoint on http://%s:%s", bind_host, bind_port)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


async def test_server() -> None:
    """Lightweight self-test: tool/resource descriptors build and unknown tools are refused."""
    tools = build_tools()
    _ = build_resources()
    response = await dispatch_tool("not_a_tool", {})
    if response.error is None:
        raise RuntimeError("Self-test failed: unknown tool was not rejected")
    print(f"Self-test passed: {len(tools)} tools registered", file=sys.stderr)
