"""Domain errors raised by the review engine and their boundary-facing codes.

Every error carries a stable machine-readable ``code``, the HTTP status it maps
to, and a message safe to show to the caller. Internal details such as raw
database error text are never placed on these objects; they are logged where
the error is raised.
"""

from typing import Any


class ErrorCode:
    INVALID_QUERY = "invalid_query"
    INVALID_BODY = "invalid_body"
    INVALID_OUTCOME = "invalid_outcome"
    UNAUTHORIZED = "unauthorized"
    CARD_NOT_FOUND = "card_not_found"
    DB_ERROR = "db_error"
    UNEXPECTED_ERROR = "unexpected_error"


class ReviewEngineError(Exception):
    """Base class for failures surfaced to callers."""

    code: str = ErrorCode.UNEXPECTED_ERROR
    status_code: int = 500
    default_message: str = "Unexpected error."

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Render the ``{"error": {...}}`` response body."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class Unauthenticated(ReviewEngineError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "User not authenticated."


class InvalidInput(ReviewEngineError):
    """Malformed batch, bad filter, out-of-range limit, or missing fields."""

    code = ErrorCode.INVALID_BODY
    status_code = 400
    default_message = "Request is invalid."

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, details)
        if code is not None:
            self.code = code


class CardNotFound(ReviewEngineError):
    """One or more referenced cards do not exist or are not owned by the caller."""

    code = ErrorCode.CARD_NOT_FOUND
    status_code = 404

    def __init__(self, missing_card_ids: list[str]) -> None:
        self.missing_card_ids = list(missing_card_ids)
        super().__init__(
            f"Cards not found or not owned by user: {', '.join(self.missing_card_ids)}",
            details={"missing_card_ids": self.missing_card_ids},
        )


class StorageFailure(ReviewEngineError):
    code = ErrorCode.DB_ERROR
    status_code = 500
    default_message = "A database error occurred while processing the review request."


class UnexpectedFailure(ReviewEngineError):
    code = ErrorCode.UNEXPECTED_ERROR
    status_code = 500
    default_message = "Unexpected error while processing the review request."
