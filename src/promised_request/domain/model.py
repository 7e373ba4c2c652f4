from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from typing import Any, Union

from promised_request.domain.errors import RequestConstructionError

# =========================
# Sentinels
# =========================
class _Unset:
    """Marks a request created without data (no body, no query string)."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

# =========================
# Value Objects
# =========================
@dataclass(frozen=True)
class Blob:
    """Binary payload sent as a multipart file part."""
    content: bytes
    filename: str = "blob"
    content_type: str = "application/octet-stream"


class FileList(tuple):
    """Ordered group of blobs, flattened like a list of files."""

    def __new__(cls, blobs: Sequence[Blob] = ()) -> "FileList":
        return super().__new__(cls, blobs)


def is_blob(value: Any) -> bool:
    return isinstance(value, (Blob, bytes, bytearray))


def is_composite(value: Any) -> bool:
    """Mappings and non-string sequences; blobs are never composite."""
    if value is None or is_blob(value) or isinstance(value, str):
        return False
    return isinstance(value, (Mapping, list, tuple))


def iter_items(value: Any):
    """Own keys of a composite: mapping keys, or list indexes as strings."""
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield str(key), item
    else:
        for index, item in enumerate(value):
            yield str(index), item


HeaderValue = Union[str, Callable[[], Any], Mapping[str, Any], Sequence[Any], None]
Unserializer = Union[str, Callable[[str, Any], Any]]

# =========================
# Results
# =========================
@dataclass(frozen=True)
class RequestSuccess:
    data: Any
    text: str

# =========================
# Options
# =========================
OPTION_ALIASES = {
    "headersPreset": "headers_preset",
    "async": "asynchronous",
    "sendForm": "send_form",
    "responseUnserializer": "response_unserializer",
    "checkResponseDataStatus": "check_response_data_status",
}


@dataclass(frozen=True)
class RequestOptions:
    headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    headers_preset: str | None = None
    asynchronous: bool = True
    send_form: bool = False
    response_unserializer: Unserializer = "json"
    check_response_data_status: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "RequestOptions":
        return cls(
            asynchronous=settings.request_async,
            response_unserializer=settings.response_unserializer,
            check_response_data_status=settings.check_response_status,
        )

    def merged(self, options: Mapping[str, Any] | Sequence[Any] | None) -> "RequestOptions":
        """Caller options over these defaults. Accepts camelCase aliases."""
        if options is None:
            return replace(self, headers=dict(self.headers))
        if isinstance(options, Mapping):
            items = dict(options)
        elif isinstance(options, (list, tuple)):
            try:
                items = dict(options)
            except (TypeError, ValueError) as e:
                raise RequestConstructionError("Options must be a mapping") from e
        else:
            raise RequestConstructionError("Options must be a mapping")

        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in items.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise RequestConstructionError(f"Unknown option: {key}")
            changes[name] = value

        headers = changes.get("headers", self.headers)
        if not isinstance(headers, Mapping):
            raise RequestConstructionError("headers must be a mapping name:value")
        changes["headers"] = dict(headers)
        return replace(self, **changes)
