from __future__ import annotations

from typing import Any


class RequestError(Exception):
    """Base class for everything raised by promised_request."""


class RequestConstructionError(RequestError, ValueError):
    """Missing url or malformed options passed to Request()."""


class ConfigurationError(RequestError, TypeError):
    """Invalid argument given to a fluent setter, or setter used after send."""


class InvalidArgumentError(ConfigurationError):
    pass


class NotFoundError(RequestError, LookupError):
    """Unknown serializer or header preset."""


class SerializerParseError(RequestError, ValueError):
    pass


class SerializerEncodeError(RequestError, TypeError):
    """Value the selected serializer cannot encode."""


class RequestFailure(RequestError):
    """Value carried by a failed CompletionSignal.

    reason is one of "decode", "status" or "transport". data is the decoded
    body when decoding got that far, text the raw response body, error the
    underlying exception for decode and transport failures.
    """

    def __init__(
        self,
        message: str,
        *,
        data: Any = None,
        text: str | None = None,
        error: BaseException | None = None,
        reason: str = "status",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.data = data
        self.text = text
        self.error = error
        self.reason = reason

    def __repr__(self) -> str:
        return f"RequestFailure({self.message!r}, reason={self.reason!r})"
