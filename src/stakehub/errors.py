"""Error taxonomy. Every error carries a machine-checkable `kind`."""

from __future__ import annotations

from typing import Any

__all__ = [
    "StakehubError",
    "ConfigError",
    "MalformedSnapshot",
    "TransportError",
    "DecodeError",
    "ConsensusMismatch",
    "ExecutionRejected",
    "LedgerWriteError",
]


class StakehubError(Exception):
    """Base for all errors surfaced to an invocation's caller."""

    kind: str = "stakehub_error"

    def __init__(self, message: str, *, detail: str | None = None):
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "error": str(self)}
        if self.detail:
            out["detail"] = self.detail
        return out


class ConfigError(StakehubError):
    """Invalid or missing configuration. Fatal at startup."""

    kind = "config_error"


class MalformedSnapshot(StakehubError):
    """One or more required ledger reads failed or had an unparsable shape."""

    kind = "malformed_snapshot"

    def __init__(self, message: str, *, fields: list[str] | None = None, detail: str | None = None):
        self.fields = list(fields or [])
        super().__init__(message, detail=detail)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["fields"] = self.fields
        return out


class TransportError(StakehubError):
    """The request could not be completed (timeout, DNS, connection reset)."""

    kind = "transport_error"


class DecodeError(StakehubError):
    """Response body is not UTF-8 JSON of the expected shape."""

    kind = "decode_error"


class ConsensusMismatch(StakehubError):
    """Independent executors produced differing responses."""

    kind = "consensus_mismatch"


class ExecutionRejected(StakehubError):
    """Execution endpoint answered non-2xx or with success=false."""

    kind = "execution_rejected"

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None):
        self.status_code = status_code
        super().__init__(message, detail=detail)


class LedgerWriteError(StakehubError):
    """A ledger write was rejected, reverted or not confirmed in time."""

    kind = "ledger_write_error"
