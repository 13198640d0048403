"""Error taxonomy for scans."""

from __future__ import annotations

from typing import Any, Literal

from models import AttemptRecord

ScanErrorKind = Literal["AcquisitionFailed", "EngineUnavailable", "InvalidInput"]

ACQUISITION_FAILED: ScanErrorKind = "AcquisitionFailed"
ENGINE_UNAVAILABLE: ScanErrorKind = "EngineUnavailable"
INVALID_INPUT: ScanErrorKind = "InvalidInput"


class AcquisitionError(Exception):
    """One acquisition strategy could not produce a document."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class EngineError(Exception):
    """One analyzer failed internally."""


class ScanError(Exception):
    """A scan could not produce a result."""

    def __init__(
        self,
        kind: ScanErrorKind,
        message: str,
        attempted_strategies: tuple[AttemptRecord, ...] = (),
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.attempted_strategies = tuple(attempted_strategies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "attemptedStrategies": [attempt.to_dict() for attempt in self.attempted_strategies],
        }
