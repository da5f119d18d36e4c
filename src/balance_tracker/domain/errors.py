"""Application error hierarchy.

Every error carries a machine-readable ``code`` so callers can branch on it
without parsing messages.
"""

from uuid import UUID


class BalanceTrackerError(Exception):
    """Base class for all application-level errors."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, object] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(BalanceTrackerError):
    code = "NOT_FOUND"


class LogNotFoundError(NotFoundError):
    def __init__(self, log_id: UUID):
        super().__init__(
            message=f"Log {log_id} was not found.",
            details={"log_id": str(log_id)},
        )


class CheckNotFoundError(NotFoundError):
    def __init__(self, check_id: UUID):
        super().__init__(
            message=f"Check {check_id} was not found.",
            details={"check_id": str(check_id)},
        )


class LedgerCommitError(BalanceTrackerError):
    """Raised when the storage layer rejects a staged change set."""

    code = "LEDGER_COMMIT_FAILED"
