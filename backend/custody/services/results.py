# Overview: Typed outcomes for lifecycle operations.

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class Failure(str, enum.Enum):
    """
    Recoverable, expected negative outcomes.

    Constraint violations are not in here: they raise ConflictError.
    """
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    CAPACITY_EXCEEDED = "capacity_exceeded"


@dataclass(frozen=True)
class LifecycleResult:
    ok: bool
    record: Any = None
    failure: Failure | None = None
    message: str | None = None

    @classmethod
    def success(cls, record: Any) -> "LifecycleResult":
        return cls(ok=True, record=record)

    @classmethod
    def rejected(cls, failure: Failure, message: str) -> "LifecycleResult":
        return cls(ok=False, failure=failure, message=message)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict:
        record = self.record.to_dict() if hasattr(self.record, "to_dict") else self.record
        return {
            "ok": self.ok,
            "record": record,
            "failure": self.failure.value if self.failure else None,
            "message": self.message,
        }


def not_found(kind: str, record_id: int) -> LifecycleResult:
    return LifecycleResult.rejected(Failure.NOT_FOUND, f"{kind} {record_id} not found")
