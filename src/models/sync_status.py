# src/models/sync_status.py

"""Process-lifetime sync bookkeeping and per-run outcome models."""

from dataclasses import dataclass


@dataclass
class SyncStatus:
    """Orchestrator state; timestamps are epoch milliseconds."""

    in_progress: bool = False
    last_run_at: int | None = None
    last_success_at: int | None = None
    last_error: str | None = None
    last_count: int | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialise for the status endpoint."""
        return {
            "inProgress": self.in_progress,
            "lastRunAt": self.last_run_at,
            "lastSuccessAt": self.last_success_at,
            "lastError": self.last_error,
            "lastCount": self.last_count,
        }


@dataclass
class SyncOutcome:
    """Result of one orchestrated sync run."""

    ok: bool
    count: int = 0
    reason: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialise in the shape ``POST /sync`` returns."""
        data: dict[str, object] = {"ok": self.ok, "count": self.count}
        if self.reason:
            data["reason"] = self.reason
        if self.error:
            data["error"] = self.error
        return data
