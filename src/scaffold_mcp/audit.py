"""Structured audit trail of tool calls.

Exactly one event is written per dispatched call, keyed by the request's
correlation id. Events never include parameter values beyond the target
owner/repository, and never credentials.
"""

from __future__ import annotations

import json
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SUCCEEDED = "succeeded"
DENIED = "denied"
FAILED = "failed"


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def target_from_params(params: Any) -> str:
    """Describe what a call operates on: ``owner/repo``, ``owner``, or ``<none>``."""
    if not isinstance(params, dict):
        return "<none>"
    owner = params.get("owner")
    repo = params.get("repo")
    if isinstance(owner, str) and owner and isinstance(repo, str) and repo:
        return f"{owner}/{repo}"
    if isinstance(owner, str) and owner:
        return owner
    name = params.get("name")
    if isinstance(name, str) and name:
        return name
    return "<none>"


@dataclass(frozen=True, slots=True)
class AuditEvent:
    timestamp: str
    correlation_id: str
    operation: str
    target: str
    outcome: str
    reason: str | None = None
    duration_ms: int | None = None

    def to_json(self) -> str:
        payload = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class AuditLogger:
    """Writes audit events as JSON lines to stderr and, optionally, a file.

    The file sink is rotated by size (``log`` -> ``log.1`` -> ``log.2``).
    Sink failures are swallowed: auditing must never fail a tool call.
    """

    def __init__(self, *, sink_path: Path | None, max_bytes: int = 5 * 1024 * 1024, max_backups: int = 2) -> None:
        self._sink_path = sink_path
        self._max_bytes = max_bytes
        self._max_backups = max_backups

    @staticmethod
    def start_timer() -> float:
        return time.monotonic()

    @staticmethod
    def elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def record(
        self,
        *,
        correlation_id: str,
        operation: str,
        target: str,
        outcome: str,
        reason: str | None = None,
        started_at: float | None = None,
    ) -> AuditEvent:
        """Build, write and return an event."""
        event = AuditEvent(
            timestamp=_now_rfc3339(),
            correlation_id=correlation_id,
            operation=operation,
            target=target,
            outcome=outcome,
            reason=reason,
            duration_ms=self.elapsed_ms(started_at) if started_at is not None else None,
        )
        self.write_event(event)
        return event

    def write_event(self, event: AuditEvent) -> None:
        line = event.to_json()
        print(line, file=sys.stderr)
        if self._sink_path is None:
            return
        try:
            self._sink_path.parent.mkdir(parents=True, exist_ok=True)
            self._rotate_if_needed()
            with self._sink_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:  # pragma: no cover
            return

    def _rotate_if_needed(self) -> None:
        assert self._sink_path is not None
        if not self._sink_path.exists() or self._sink_path.stat().st_size < self._max_bytes:
            return
        if self._max_backups <= 0:
            self._sink_path.write_text("", encoding="utf-8")
            return
        Path(f"{self._sink_path}.{self._max_backups}").unlink(missing_ok=True)
        for i in range(self._max_backups - 1, 0, -1):
            src = Path(f"{self._sink_path}.{i}")
            if src.exists():
                src.replace(Path(f"{self._sink_path}.{i + 1}"))
        self._sink_path.replace(Path(f"{self._sink_path}.1"))
