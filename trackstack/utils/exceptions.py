"""
Track Your Stack - Custom Exceptions
Application-specific exceptions tagged by error kind
"""
import enum
from typing import Optional, Any, Dict


class ErrorKind(str, enum.Enum):
    """Classification of failures handed back to callers."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    EXTERNAL_DATA = "external_data"
    CONCURRENCY_TIMEOUT = "concurrency_timeout"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


class TrackStackException(Exception):
    """Base exception for Track Your Stack."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False
    http_status: int = 500

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Validation Exceptions
# =========================

class ValidationError(TrackStackException):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION
    http_status = 400

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)


# =========================
# Not Found / Ownership Exceptions
# =========================

class NotFoundError(TrackStackException):
    """Referenced resource does not exist."""

    kind = ErrorKind.NOT_FOUND
    http_status = 404


class PortfolioNotFoundError(NotFoundError):
    """Portfolio not found."""

    def __init__(self, message: str = "Portfolio not found"):
        super().__init__(message=message, code="PORTFOLIO_NOT_FOUND")


class InvestmentNotFoundError(NotFoundError):
    """Investment not found."""

    def __init__(self, message: str = "Investment not found"):
        super().__init__(message=message, code="INVESTMENT_NOT_FOUND")


class OwnershipError(TrackStackException):
    """Resource belongs to another owner."""

    kind = ErrorKind.FORBIDDEN
    http_status = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, code="FORBIDDEN")


# =========================
# Market Data Exceptions
# =========================

class ExternalDataError(TrackStackException):
    """Market data provider unreachable, slow or refusing requests."""

    kind = ErrorKind.EXTERNAL_DATA
    retryable = True
    http_status = 503


class DataProviderError(ExternalDataError):
    """Data provider error."""

    def __init__(self, provider: str = "", message: str = "Provider error"):
        super().__init__(
            message=f"{provider}: {message}" if provider else message,
            code="PROVIDER_ERROR",
            details={"provider": provider} if provider else None,
        )


class ProviderTimeoutError(ExternalDataError):
    """Data provider did not answer in time."""

    def __init__(self, provider: str = "", message: str = "Provider timed out"):
        super().__init__(
            message=f"{provider}: {message}" if provider else message,
            code="PROVIDER_TIMEOUT",
            details={"provider": provider} if provider else None,
        )


class RateLimitExceededError(ExternalDataError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[float] = None):
        super().__init__(
            message=message,
            code="RATE_LIMIT_EXCEEDED",
            details={"retry_after": retry_after} if retry_after is not None else None,
        )
        self.retry_after = retry_after


# =========================
# Concurrency Exceptions
# =========================

class LockTimeoutError(TrackStackException):
    """Lock not acquired within the allowed wait."""

    kind = ErrorKind.CONCURRENCY_TIMEOUT
    retryable = True
    http_status = 503

    def __init__(self, key: str = "", waited: Optional[float] = None):
        message = "Resource is busy, please retry"
        super().__init__(
            message=message,
            code="LOCK_TIMEOUT",
            details={"key": key, "waited": waited},
        )
        self.key = key


# =========================
# Persistence Exceptions
# =========================

class PersistenceError(TrackStackException):
    """Atomic write failed; nothing was applied."""

    kind = ErrorKind.PERSISTENCE
    http_status = 500

    def __init__(self, message: str = "Failed to save changes", code: str = "PERSISTENCE_ERROR"):
        super().__init__(message=message, code=code)


class DuplicatePositionError(PersistenceError):
    """A position for this ticker was created concurrently."""

    retryable = True

    def __init__(self, ticker: str = ""):
        message = f"Position {ticker} already exists" if ticker else "Position already exists"
        super().__init__(message=message, code="DUPLICATE_POSITION")
        self.ticker = ticker
