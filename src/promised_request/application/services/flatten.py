"""Flattening of nested data into query strings and multipart form fields.

Both walkers accept arbitrarily nested mappings and lists. Nested keys are
written in bracket notation, so ``{"a": {"b": [1, 2]}}`` becomes
``a[b][0]=1&a[b][1]=2``.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote
import json

from promised_request.domain.model import Blob, FileList, is_blob, is_composite, iter_items

# Characters encodeURIComponent leaves alone besides alphanumerics.
URI_COMPONENT_SAFE = "-_.!~*'()"


def to_string(value: Any) -> str:
    """Render a scalar the way it travels on the wire."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if value is None or isinstance(value, (bool, int, float)):
        return json.dumps(value)
    return str(value)


def encode_component(value: Any) -> str:
    return quote(to_string(value), safe=URI_COMPONENT_SAFE)


def _nested_key(prefix: str | None, key: str) -> str:
    return f"{prefix}[{key}]" if prefix else key


def serialize_query(value: Any, prefix: str | None = None) -> str:
    parts: list[str] = []
    for key, item in iter_items(value):
        name = _nested_key(prefix, key)
        if is_composite(item):
            nested = serialize_query(item, name)
            if nested:
                parts.append(nested)
        else:
            parts.append(f"{encode_component(name)}={encode_component(item)}")
    return "&".join(parts)


def _is_index(key: str) -> bool:
    return key.isdecimal()


def flatten_form(value: Any, prefix: str | None = None) -> list[tuple[str, Any]]:
    """Flatten ``value`` to ordered (field name, leaf) pairs.

    A blob stored under a positional key (list index) is named ``file``, so
    ``{"docs": [b1, b2]}`` yields two ``docs[file]`` parts. None leaves are
    dropped.
    """
    pairs: list[tuple[str, Any]] = []
    for key, item in iter_items(value):
        if is_blob(item) and _is_index(key):
            key = "file"
        name = _nested_key(prefix, key)
        if isinstance(item, FileList) or is_composite(item):
            pairs.extend(flatten_form(item, name))
        elif item is not None:
            pairs.append((name, item))
    return pairs


@dataclass
class FormData:
    """Multipart body assembled from flattened pairs, in insertion order."""

    fields: list[tuple[str, str]] = field(default_factory=list)
    files: list[tuple[str, Blob]] = field(default_factory=list)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> "FormData":
        form = cls()
        for name, value in pairs:
            form.append(name, value)
        return form

    @classmethod
    def from_data(cls, data: Any) -> "FormData":
        return cls.from_pairs(flatten_form(data))

    def append(self, name: str, value: Any) -> None:
        if isinstance(value, Blob):
            self.files.append((name, value))
        elif is_blob(value):
            self.files.append((name, Blob(bytes(value))))
        else:
            self.fields.append((name, to_string(value)))

    def get_all(self, name: str) -> list[Any]:
        values: list[Any] = [v for n, v in self.fields if n == name]
        values.extend(b for n, b in self.files if n == name)
        return values

    def __len__(self) -> int:
        return len(self.fields) + len(self.files)
