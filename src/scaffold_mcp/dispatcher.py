"""Tool dispatch layer.

This module:
- binds every registered tool name to exactly one handler (checked at import)
- validates the method name and parameters before any handler runs
- converts handler failures into protocol errors; nothing a handler raises
  reaches the transport, and no traceback is ever put on the wire
- writes one audit event per call
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from . import github_tools, repositories
from .audit import DENIED, FAILED, SUCCEEDED, AuditLogger, target_from_params
from .errors import DENIAL_CATEGORIES, AppError
from .protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    RequestId,
    ToolResponse,
    error_response,
    new_request_id,
)
from .registry import ToolName, is_valid_tool, validate_tool_arguments
from .runtime import Runtime, initialize_runtime_from_env
from .safety import redact_text, reject_credentials

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Runtime, dict[str, Any]], Awaitable[Any]]

TOOL_HANDLERS: dict[str, ToolHandler] = {
    ToolName.LIST_REPOSITORIES.value: repositories.list_repositories,
    ToolName.GET_REPOSITORY.value: repositories.get_repository,
    ToolName.DELETE_REPOSITORY.value: repositories.delete_repository,
    ToolName.VALIDATE_REPOSITORY_PERMISSIONS.value: repositories.validate_repository_permissions,
    ToolName.GET_REPOSITORY_DETAILS.value: repositories.get_repository_details,
    ToolName.GET_GITHUB_USER.value: github_tools.get_github_user,
    ToolName.CHECK_GITHUB_OWNER_TYPE.value: github_tools.check_github_owner_type,
    ToolName.CREATE_GITHUB_REPOSITORY.value: github_tools.create_github_repository,
}

_unbound = {t.value for t in ToolName} - set(TOOL_HANDLERS)
if _unbound:  # pragma: no cover
    raise RuntimeError(f"Tools registered without a handler: {', '.join(sorted(_unbound))}")


class ToolDispatcher:
    """Resolves a tool name to its handler and shapes the response."""

    def __init__(
        self,
        *,
        runtime_provider: Callable[[], Runtime] = initialize_runtime_from_env,
        handlers: Mapping[str, ToolHandler] | None = None,
    ) -> None:
        self._runtime_provider = runtime_provider
        self._handlers = dict(TOOL_HANDLERS if handlers is None else handlers)

    async def dispatch(self, method: Any, params: Any = None, request_id: RequestId | None = None) -> ToolResponse:
        """Run one tool call. Never raises for tool-level problems."""
        correlation_id = str(request_id) if request_id is not None else new_request_id()
        target = target_from_params(params)
        operation = method if isinstance(method, str) else "<invalid>"
        started = AuditLogger.start_timer()

        runtime: Runtime | None = None
        setup_failure = error_response(request_id, INTERNAL_ERROR, "Internal error")
        try:
            runtime = self._runtime_provider()
        except AppError as err:
            code = INVALID_PARAMS if err.is_validation_error else INTERNAL_ERROR
            setup_failure = error_response(request_id, code, err.message)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.exception("Runtime initialization failed for tool %s", method)
            setup_failure = error_response(request_id, INTERNAL_ERROR, str(exc) or "Internal error")

        # Without a runtime only stderr is available.
        audit = runtime.audit if runtime is not None else AuditLogger(sink_path=None)

        def finish(response: ToolResponse, outcome: str, reason: str | None = None) -> ToolResponse:
            audit.record(
                correlation_id=correlation_id,
                operation=operation,
                target=target,
                outcome=outcome,
                reason=reason,
                started_at=started,
            )
            return response

        handler = self._handlers.get(method) if is_valid_tool(method) else None
        if handler is None:
            return finish(
                error_response(
                    request_id,
                    METHOD_NOT_FOUND,
                    f"Method not found: {method}",
                    {"available": sorted(self._handlers)},
                ),
                DENIED,
                "Method not found",
            )

        if runtime is None:
            return finish(setup_failure, FAILED, "Runtime unavailable")

        arguments: dict[str, Any] = {} if params is None else params
        try:
            reject_credentials(arguments)
            validate_tool_arguments(method, arguments)
        except AppError as err:
            code = INVALID_PARAMS if err.is_validation_error else INTERNAL_ERROR
            data = {"field": err.field} if err.field else None
            return finish(error_response(request_id, code, err.message, data), DENIED, err.message)

        try:
            result = await handler(runtime, arguments)
        except AppError as err:
            code = INVALID_PARAMS if err.is_validation_error else INTERNAL_ERROR
            outcome = DENIED if err.category in DENIAL_CATEGORIES else FAILED
            logger.warning("Tool %s failed: %s", method, redact_text(err.message))
            return finish(error_response(request_id, code, err.message), outcome, err.message)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.exception("Tool %s raised an unexpected error", method)
            message = str(exc) or type(exc).__name__
            return finish(error_response(request_id, INTERNAL_ERROR, message), FAILED, "Internal error")

        if result is None:
            logger.error("Tool %s returned no result", method)
            return finish(
                error_response(request_id, INTERNAL_ERROR, f"No result returned from tool: {method}"),
                FAILED,
                "No result returned",
            )

        if isinstance(result, dict) and result.get("success") is False:
            return finish(ToolResponse(id=request_id, result=result), FAILED, str(result.get("message")))
        return finish(ToolResponse(id=request_id, result=result), SUCCEEDED)


_DEFAULT_DISPATCHER: ToolDispatcher | None = None


async def dispatch_tool(method: Any, params: Any = None, request_id: RequestId | None = None) -> ToolResponse:
    """Dispatch through the process-wide dispatcher."""
    global _DEFAULT_DISPATCHER  # pylint: disable=global-statement
    if _DEFAULT_DISPATCHER is None:
        _DEFAULT_DISPATCHER = ToolDispatcher()
    return await _DEFAULT_DISPATCHER.dispatch(method, params, request_id)
