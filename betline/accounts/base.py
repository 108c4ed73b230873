"""Result type shared by account and admin operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from betline.errors import BetlineError


@dataclass
class OperationResult:
    ok: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str, **data: Any) -> OperationResult:
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, message: str) -> OperationResult:
        return cls(ok=False, message=message)


class OperationRejected(BetlineError):
    """Raised inside a transaction to abandon it with a user-facing message."""
