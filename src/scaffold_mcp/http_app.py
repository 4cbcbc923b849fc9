"""JSON-over-HTTP tool endpoint.

``POST {path}`` takes a tool request envelope and answers with a tool
response envelope. Tool-level errors (unknown method, bad parameters,
handler failures) are reported inside a 200 response; only requests that
cannot be read as an envelope get a 4xx status.

``GET {path}`` lists the available tools.
"""

from __future__ import annotations

import json
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from .dispatcher import ToolDispatcher
from .protocol import INVALID_REQUEST, PARSE_ERROR, PAYLOAD_TOO_LARGE, error_response
from .registry import tool_descriptions

DEFAULT_PATH = "/api/mcp"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
}


def _json_response(payload: Any, status_code: int = 200) -> Response:
    body = json.dumps(payload, default=str)
    return Response(body, status_code=status_code, media_type="application/json", headers=SECURITY_HEADERS)


def _protocol_failure(status_code: int, code: int, message: str, request_id: Any = None) -> Response:
    return _json_response(error_response(request_id, code, message).to_dict(), status_code)


def create_app(
    *,
    dispatcher: ToolDispatcher | None = None,
    max_request_bytes: int = 1024 * 1024,
    path: str = DEFAULT_PATH,
) -> Starlette:
    """Build the ASGI application around a dispatcher."""
    tool_dispatcher = dispatcher or ToolDispatcher()

    async def call_tool(request: Request) -> Response:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_request_bytes:
            return _protocol_failure(413, PAYLOAD_TOO_LARGE, f"Request payload exceeds {max_request_bytes} bytes")

        chunks: list[bytes] = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > max_request_bytes:
                return _protocol_failure(413, PAYLOAD_TOO_LARGE, f"Request payload exceeds {max_request_bytes} bytes")
            chunks.append(chunk)
        raw = b"".join(chunks)

        try:
            envelope = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _protocol_failure(400, PARSE_ERROR, "Request body is not valid JSON")

        if not isinstance(envelope, dict):
            return _protocol_failure(400, INVALID_REQUEST, "Request must be a JSON object")

        request_id = envelope.get("id")
        if request_id is not None and (isinstance(request_id, bool) or not isinstance(request_id, (int, str))):
            return _protocol_failure(400, INVALID_REQUEST, "Request id must be a number or a string")

        method = envelope.get("method")
        if not isinstance(method, str) or not method:
            return _protocol_failure(400, INVALID_REQUEST, "Invalid method parameter", request_id)

        response = await tool_dispatcher.dispatch(method, envelope.get("params"), request_id)
        return _json_response(response.to_dict())

    async def list_tools(_request: Request) -> Response:
        return _json_response({"tools": tool_descriptions()})

    return Starlette(
        routes=[
            Route(path, call_tool, methods=["POST"]),
            Route(path, list_tools, methods=["GET"]),
        ]
    )
