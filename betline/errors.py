"""Exception taxonomy used inside Betline.

Public operations catch these and hand back typed results; they are raised
only between internal layers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from betline.wagers.models import RejectReason


class BetlineError(Exception):
    """Base class for all Betline errors."""


class ConfigurationError(BetlineError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required settings: {', '.join(missing)}")


class ProviderError(BetlineError):
    """The odds provider answered with a non-success status."""

    def __init__(self, sport_key: str, status_code: int, text: str) -> None:
        self.sport_key = sport_key
        self.status_code = status_code
        self.text = text
        super().__init__(f"Odds API error for {sport_key}: {status_code} - {text}")


class StoreError(BetlineError):
    """A store read or write failed."""


class LedgerError(StoreError):
    """An atomic ledger write failed and was rolled back."""


class InsufficientFundsError(BetlineError):
    def __init__(self, user_id: int, amount: object) -> None:
        self.user_id = user_id
        self.amount = amount
        super().__init__(f"Insufficient balance for user {user_id} to cover {amount}")


class DuplicateSubmissionError(BetlineError):
    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Submission {submission_id} was already processed")


class ValidationError(BetlineError):
    """A wager was rejected before any write."""

    def __init__(self, reason: RejectReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)
