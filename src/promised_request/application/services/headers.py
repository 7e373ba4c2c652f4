from __future__ import annotations

from collections.abc import Mapping
from typing import Any
import logging

from promised_request.application.services.flatten import serialize_query, to_string
from promised_request.domain.errors import ConfigurationError, NotFoundError
from promised_request.domain.model import RequestOptions, is_composite

logger = logging.getLogger(__name__)

CONTENT_TYPE = "content-type"
JSON_CONTENT_TYPE = "application/json"
URLENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded"


class PresetRegistry:
    """Named header sets merged into a request at send time."""

    def __init__(self) -> None:
        self._presets: dict[str, dict[str, Any]] = {}

    def set(self, name: str, headers: Mapping[str, Any]) -> None:
        if not isinstance(name, str):
            raise ConfigurationError("Preset name must be a string")
        if not isinstance(headers, Mapping):
            raise ConfigurationError("Preset headers must be a mapping name:value")
        self._presets[name] = dict(headers)

    def clear(self, name: str) -> None:
        self._presets.pop(name, None)

    def get(self, name: str) -> dict[str, Any]:
        try:
            return dict(self._presets[name])
        except KeyError:
            raise NotFoundError(f"Header preset ( {name} ) is not defined") from None

    def __contains__(self, name: object) -> bool:
        return name in self._presets


default_presets = PresetRegistry()


def stringify_header(value: Any) -> str:
    if isinstance(value, str):
        return value
    if callable(value):
        return stringify_header(value())
    if is_composite(value):
        return serialize_query(value)
    return to_string(value)


def content_type(headers: Mapping[str, str]) -> str | None:
    """Media type of the Content-Type header, lower-cased, parameters dropped."""
    for name, value in headers.items():
        if name.lower() == CONTENT_TYPE:
            return value.split(";", 1)[0].strip().lower()
    return None


class HeaderResolver:
    def __init__(self, presets: PresetRegistry | None = None) -> None:
        self.presets = presets if presets is not None else default_presets

    def merged(self, options: RequestOptions) -> dict[str, Any]:
        headers = dict(options.headers)
        if options.headers_preset is not None:
            # preset values win over explicit ones
            headers.update(self.presets.get(options.headers_preset))
        return headers

    def resolve(self, options: RequestOptions) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for name, value in self.merged(options).items():
            if not value:
                continue
            resolved[name] = stringify_header(value)
        logger.debug("Resolved headers: %s", list(resolved))
        return resolved
