"""Wire envelopes for tool calls.

Request:  {"method": str, "params": object, "id": int | str}
Response: {"result"?: any, "error"?: {"code", "message", "data"?}, "id": int | str}

Codes follow JSON-RPC conventions. Client-side transport failures reuse the
same ToolError shape, with the HTTP status as the code.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
PAYLOAD_TOO_LARGE = -32000
TIMEOUT = -32001
REQUEST_CANCELLED = -32800

RequestId = int | str


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<missing>"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def new_request_id() -> str:
    """Return a fresh correlation id for a request."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class ToolError(Exception):
    """Protocol-level error, also raised by the typed client's ``call``."""

    code: int
    message: str
    data: Any = None

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, payload: object) -> ToolError:
        """Build from a decoded ``error`` member; tolerate malformed members."""
        if not isinstance(payload, dict):
            return cls(code=INTERNAL_ERROR, message="Malformed error in response")
        code = payload.get("code")
        message = payload.get("message")
        return cls(
            code=code if isinstance(code, int) and not isinstance(code, bool) else INTERNAL_ERROR,
            message=message if isinstance(message, str) else "Unknown error",
            data=payload.get("data"),
        )


@dataclass(frozen=True, slots=True)
class ToolRequest:
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: RequestId = field(default_factory=new_request_id)

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "params": dict(self.params), "id": self.id}


@dataclass(frozen=True, slots=True)
class ToolResponse:
    id: RequestId | None
    result: Any = MISSING
    error: ToolError | None = None

    @property
    def has_result(self) -> bool:
        return self.result is not MISSING

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id}
        if self.error is not None:
            out["error"] = self.error.to_dict()
        elif self.has_result:
            out["result"] = self.result
        return out

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ToolResponse:
        error = payload.get("error")
        return cls(
            id=payload.get("id"),
            result=payload["result"] if "result" in payload else MISSING,
            error=ToolError.from_dict(error) if error is not None else None,
        )


def error_response(request_id: RequestId | None, code: int, message: str, data: Any = None) -> ToolResponse:
    return ToolResponse(id=request_id, error=ToolError(code=code, message=message, data=data))
