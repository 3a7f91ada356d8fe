"""Error taxonomy for showsync.

Every error raised by this package derives from ShowsyncError so callers can
separate package failures from programming errors. Upstream failures,
local admission control, and store failures are kept in distinct branches
so a caller can choose between backing off and surfacing a hard error.
"""

from enum import Enum


class ErrorClass(str, Enum):
    """Classification of showsync errors for logging and summaries."""

    CONFIGURATION = "CONFIGURATION"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UPSTREAM_AUTH = "UPSTREAM_AUTH"
    UPSTREAM_RATE_LIMITED = "UPSTREAM_RATE_LIMITED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    STORE = "STORE"
    STORE_WRITE_FAILURE = "STORE_WRITE_FAILURE"
    CONDITIONAL_CHECK_FAILED = "CONDITIONAL_CHECK_FAILED"
    UNKNOWN = "UNKNOWN"


ErrorDetails = dict[str, str | int | float | bool | None]


class ShowsyncError(Exception):
    """Base exception for all showsync errors."""

    error_class: ErrorClass = ErrorClass.UNKNOWN

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, str | ErrorDetails]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ShowsyncError):
    """A required secret or setting is missing or invalid."""

    error_class = ErrorClass.CONFIGURATION


class InvalidArgumentError(ShowsyncError):
    """A caller supplied an unusable argument."""

    error_class = ErrorClass.INVALID_ARGUMENT


class UpstreamError(ShowsyncError):
    """Base class for failures talking to the upstream catalog API."""

    error_class = ErrorClass.UPSTREAM_UNAVAILABLE


class UpstreamAuthError(UpstreamError):
    """Authentication against the upstream API could not be established."""

    error_class = ErrorClass.UPSTREAM_AUTH


class UpstreamRateLimitError(UpstreamError):
    """The upstream API kept answering 429 until the attempt budget ran out."""

    error_class = ErrorClass.UPSTREAM_RATE_LIMITED

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            retry_after: Last delay requested by the upstream, in seconds.
        """
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after


class UpstreamUnavailable(UpstreamError):
    """The upstream answered with an unexpected status or could not be reached."""

    error_class = ErrorClass.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, status_code: int = 0, body: str = "") -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code, 0 for network failures.
            body: Response body text (truncated by the caller).
        """
        super().__init__(message, details={"status_code": status_code, "body": body})
        self.status_code = status_code
        self.body = body


class NotFound(UpstreamUnavailable):
    """The requested collection or item does not exist upstream."""

    error_class = ErrorClass.NOT_FOUND


class RateLimitExceeded(ShowsyncError):
    """The local rate limiter rejected the call.

    Not retried by showsync; the caller decides whether to back off.
    """

    error_class = ErrorClass.RATE_LIMIT_EXCEEDED

    def __init__(
        self,
        identity_key: str,
        operation: str,
        limit: int,
        retry_after_seconds: int,
    ) -> None:
        """Initialize the error.

        Args:
            identity_key: Identity the counter belongs to.
            operation: Operation that was rate limited.
            limit: Maximum requests allowed in the window.
            retry_after_seconds: Seconds until the next window opens.
        """
        super().__init__(
            f"Rate limit exceeded for {operation}",
            details={
                "identity_key": identity_key,
                "operation": operation,
                "limit": limit,
                "retry_after_seconds": retry_after_seconds,
            },
        )
        self.identity_key = identity_key
        self.operation = operation
        self.limit = limit
        self.retry_after_seconds = retry_after_seconds


class StoreError(ShowsyncError):
    """Base class for persistent store failures."""

    error_class = ErrorClass.STORE


class StoreConnectionError(StoreError):
    """Raised when the store is used before it is connected."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class StoreWriteFailure(StoreError):
    """A batch write could not complete within the retry budget."""

    error_class = ErrorClass.STORE_WRITE_FAILURE

    def __init__(self, message: str, unprocessed: int, attempts: int) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            unprocessed: Number of items still unwritten.
            attempts: Number of batch calls made for the chunk.
        """
        super().__init__(
            message, details={"unprocessed": unprocessed, "attempts": attempts}
        )
        self.unprocessed = unprocessed
        self.attempts = attempts


class ConditionalCheckFailed(StoreError):
    """An existence-conditional update targeted a key that does not exist."""

    error_class = ErrorClass.CONDITIONAL_CHECK_FAILED

    def __init__(self, pk: str, sk: str) -> None:
        """Initialize the error with the missing key.

        Args:
            pk: Partition key.
            sk: Sort key.
        """
        super().__init__(f"Item not found: {pk}/{sk}", details={"pk": pk, "sk": sk})
        self.pk = pk
        self.sk = sk
