from __future__ import annotations


class StreamError(Exception):
    """Base error carrying the HTTP status and the message shown to clients."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(StreamError):
    status_code = 400
    message = "Missing file parameter"


class InvalidToken(StreamError):
    status_code = 403
    message = "Invalid or expired token"


class ObjectNotFound(StreamError):
    status_code = 404
    message = "Audio file not found"


class UnsatisfiableRange(StreamError):
    status_code = 416
    message = "Invalid range"


class RateExceeded(StreamError):
    status_code = 429
    message = "Too many requests"

    def __init__(self, retry_after: float, message: str | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class MetadataUnavailable(StreamError):
    status_code = 500
    message = "Unable to determine file size"
