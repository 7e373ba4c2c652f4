from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any
import json
import logging

from promised_request.domain.errors import (
    InvalidArgumentError,
    NotFoundError,
    SerializerEncodeError,
    SerializerParseError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerializerEntry:
    name: str
    encode: Callable[[Any], str]
    decode: Callable[[str], Any]


def json_encode(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise SerializerEncodeError(f"Cannot encode as JSON: {e}") from e


def json_decode(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise SerializerParseError(f"Malformed JSON: {e}") from e


class SerializerRegistry:
    """Named encode/decode pairs shared by the requests it is injected into.

    Registration overwrites silently; register during start-up rather than
    per request, there is no locking.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SerializerEntry] = {}

    @classmethod
    def default(cls) -> "SerializerRegistry":
        registry = cls()
        registry.register("json", json_encode, json_decode)
        return registry

    def register(self, name: str, encode: Callable[[Any], str], decode: Callable[[str], Any]) -> SerializerEntry:
        if not isinstance(name, str) or not callable(encode) or not callable(decode):
            raise InvalidArgumentError("Serializer needs a string name and callable encode/decode")
        if name in self._entries:
            logger.debug("Overwriting serializer %s", name)
        entry = SerializerEntry(name, encode, decode)
        self._entries[name] = entry
        return entry

    def unregister(self, name: str) -> None:
        self._entries.pop(name, None)

    def lookup(self, name: str) -> SerializerEntry:
        if isinstance(name, str) and name in self._entries:
            return self._entries[name]
        raise NotFoundError(f"Serializer {name} not found")

    def encode(self, value: Any, name: str = "json") -> str:
        return self.lookup(name).encode(value)

    def decode(self, text: str, name: str = "json") -> Any:
        return self.lookup(name).decode(text)

    def names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


default_serializers = SerializerRegistry.default()
