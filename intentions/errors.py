"""API error taxonomy and the uniform error envelope.

Every failure that reaches the HTTP boundary is rendered as
``{"error": {"code", "message", "statusCode"}}`` with a matching status.
"""
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from intentions.rate_limiter import RateDecision


class ErrorCodes:
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    OPENAI_ERROR = "OPENAI_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class APIError(Exception):
    """Base class for errors mapped to an HTTP status and error code."""
    status_code: int = 500
    code: str = ErrorCodes.INTERNAL_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller."""
        return self.message

    @property
    def headers(self) -> dict[str, str]:
        return {}


class ValidationError(APIError):
    status_code = 400
    code = ErrorCodes.VALIDATION_ERROR
    default_message = "Invalid request"


class Unauthorized(APIError):
    status_code = 401
    code = ErrorCodes.UNAUTHORIZED
    default_message = "Invalid API key"


class Forbidden(APIError):
    status_code = 403
    code = ErrorCodes.UNAUTHORIZED
    default_message = "Access denied"


class NotFound(APIError):
    status_code = 404
    code = ErrorCodes.NOT_FOUND
    default_message = "Not found"


class RateLimited(APIError):
    """Quota exhausted. Carries the denial so the 429 keeps its rate-limit headers."""
    status_code = 429
    code = ErrorCodes.RATE_LIMIT_EXCEEDED

    def __init__(self, decision: "RateDecision", now: float):
        self.decision = decision
        super().__init__(wait_message(decision.reset_at, now))

    @property
    def headers(self) -> dict[str, str]:
        return rate_limit_headers(self.decision)


class UpstreamFailure(APIError):
    """The generation collaborator errored, timed out, or returned a bad payload.

    ``message`` holds the internal detail for logs; callers only ever see
    ``public_message``.
    """
    status_code = 500
    code = ErrorCodes.OPENAI_ERROR
    default_message = "Upstream generation failed"

    @property
    def public_message(self) -> str:
        return "Failed to process AI request. Please try again."


class InternalError(APIError):
    @property
    def public_message(self) -> str:
        return self.default_message


def error_envelope(code: str, message: str, status_code: int) -> dict:
    return {"error": {"code": code, "message": message, "statusCode": status_code}}


def rate_limit_headers(decision: "RateDecision") -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at_ms),
    }


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'s' if n != 1 else ''}"


def wait_message(reset_at: float, now: float) -> str:
    """Human-readable retry hint, in hours and minutes once the wait reaches an hour."""
    minutes = max(1, math.ceil((reset_at - now) / 60))
    hours, rest = divmod(minutes, 60)
    if hours:
        wait = _plural(hours, "hour")
        if rest:
            wait += f" and {_plural(rest, 'minute')}"
    else:
        wait = _plural(minutes, "minute")
    return f"Too many requests. Try again in {wait}."
