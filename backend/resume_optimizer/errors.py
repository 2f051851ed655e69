"""Error taxonomy shared by the optimizer, the store and the HTTP layer."""
from typing import Any, Optional


class OptimizerError(Exception):
    code = "OPTIMIZE_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        body = {"message": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


class ValidationError(OptimizerError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(OptimizerError):
    code = "NOT_FOUND"
    status_code = 404


class EmptyContentError(OptimizerError):
    code = "EMPTY_RESUME_ERROR"
    status_code = 400


class AIServiceError(OptimizerError):
    """Remote model unreachable, overloaded, or returned an unusable envelope.

    ``transient`` is True when the failure came from the service being
    unavailable (rate limiting, timeouts, 5xx) rather than a malformed reply or
    missing credentials. Either way the caller sees a temporarily-unavailable
    condition.
    """

    code = "AI_SERVICE_ERROR"
    status_code = 503

    def __init__(self, message: str, *, transient: bool = True, attempts: int = 0, details: Any = None):
        super().__init__(message, details=details)
        self.transient = transient
        self.attempts = attempts


class PersistenceError(OptimizerError):
    code = "PERSISTENCE_ERROR"
    status_code = 500


class RateLimitError(OptimizerError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
