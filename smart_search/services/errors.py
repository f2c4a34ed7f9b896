"""Exception types shared by the smart search services."""

import enum
from typing import Any, Optional


class SmartSearchError(Exception):
    """Base class for all smart search errors."""


class EmbeddingError(SmartSearchError):
    """The embedding provider could not produce a usable vector."""


class DimensionMismatchError(SmartSearchError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimension mismatch: {left} != {right}")
        self.left = left
        self.right = right


class RecordValidationError(SmartSearchError):
    """A record failed validation before being written."""


class ProviderNotFoundError(SmartSearchError, KeyError):
    """No AI provider is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Provider {name} not found")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class ProviderErrorType(str, enum.Enum):
    """Failure classes of an AI provider call."""

    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    MODEL_ERROR = "model_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ProviderError(SmartSearchError):
    """
    Typed failure of an AI provider.

    The ``retryable`` flag is what the orchestrator's retry loop looks at.
    """

    def __init__(
        self,
        message: str,
        type: ProviderErrorType = ProviderErrorType.UNKNOWN,
        retryable: bool = False,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.type = ProviderErrorType(type)
        self.retryable = retryable
        self.details = details

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "message": self.message,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return (
            f"ProviderError(type={self.type.value!r}, message={self.message!r}, "
            f"retryable={self.retryable})"
        )
