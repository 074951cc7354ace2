"""Error types shared across the iotview engine."""

from typing import Optional


class IotViewError(Exception):
    """Base class for iotview errors."""


class ApiError(IotViewError):
    """The IoT API answered but reported failure (``success: false``)."""

    def __init__(self, endpoint: str, message: Optional[str] = None):
        self.endpoint = endpoint
        self.message = message or "request failed"
        super().__init__(f"{endpoint}: {self.message}")


class StorageError(IotViewError):
    """Session storage could not be read or written."""


# Failures a background refresh or chart load tolerates and retries later.
# OSError covers urllib's URLError/HTTPError and socket timeouts, ValueError
# covers JSON decoding and pydantic validation errors.
TRANSIENT_ERRORS = (ApiError, OSError, ValueError)
