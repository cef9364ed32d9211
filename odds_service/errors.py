"""Error taxonomy for the odds client."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Consumer-visible error kinds."""

    API_KEY_REQUIRED = "API_KEY_REQUIRED"
    API_KEY_INVALID = "API_KEY_INVALID"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_CONNECTION_ERROR = "API_CONNECTION_ERROR"
    SPORT_DISABLED = "SPORT_DISABLED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"


ERROR_MESSAGES = {
    ErrorCode.API_KEY_REQUIRED: (
        "An API key is required to access sports odds. "
        "Please configure one in the settings."
    ),
    ErrorCode.API_KEY_INVALID: (
        "The provided API key is not valid. Please check your configuration."
    ),
    ErrorCode.API_RATE_LIMIT: (
        "The maximum number of requests has been reached. "
        "Please wait a few minutes before trying again."
    ),
    ErrorCode.API_CONNECTION_ERROR: (
        "Unable to reach the odds service. Please check your connection."
    ),
    ErrorCode.SPORT_DISABLED: (
        "This competition is temporarily unavailable. Please try again later."
    ),
    ErrorCode.RESOURCE_NOT_FOUND: (
        "The requested data is not available at the moment."
    ),
    ErrorCode.INITIALIZATION_ERROR: (
        "An error occurred while initializing the odds service. Please try again."
    ),
}

# Upstream status codes with a dedicated error kind
STATUS_CODE_ERRORS = {
    401: ErrorCode.API_KEY_INVALID,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    429: ErrorCode.API_RATE_LIMIT,
}


class OddsAPIError(Exception):
    """Odds client failure carrying an error kind and its canned message."""

    def __init__(self, code: ErrorCode, status_code: Optional[int] = None):
        self.code = ErrorCode(code)
        self.message = ERROR_MESSAGES[self.code]
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Disabled sports stay disabled until reconfigured."""
        return self.code is not ErrorCode.SPORT_DISABLED

    @classmethod
    def from_status(cls, status_code: int) -> "OddsAPIError":
        """Classify an upstream HTTP status code."""
        code = STATUS_CODE_ERRORS.get(status_code, ErrorCode.API_CONNECTION_ERROR)
        return cls(code, status_code)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
