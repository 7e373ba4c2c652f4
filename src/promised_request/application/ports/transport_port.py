from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol
import json


class TransportResponse:
    def __init__(
        self,
        status_code: int,
        text: str,
        url: str,
        headers: Mapping[str, str],
        *,
        raw: Any | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.url = url
        self.headers = dict(headers)
        self._raw = raw

    @property
    def raw(self) -> Any:
        if self._raw is None:
            raise AttributeError("raw response not available")
        return self._raw

    def json(self) -> Any:
        return json.loads(self.text)

    def __repr__(self) -> str:
        return f"<TransportResponse [{self.status_code}] {self.url}>"


CompleteCallback = Callable[[TransportResponse], None]
ErrorCallback = Callable[[BaseException], None]
ProgressCallback = Callable[[int, "int | None"], None]


class TransportPort(Protocol):
    """One network exchange, XHR style.

    Callbacks are registered before open(). send() either blocks until one of
    on_complete/on_error has fired (synchronous open) or returns immediately
    and fires it later from another thread. Exactly one of the two fires.
    """

    def open(self, method: str, url: str, asynchronous: bool = True) -> None: ...
    def set_header(self, name: str, value: str) -> None: ...
    def send(self, body: Any = None) -> None: ...
    def on_complete(self, callback: CompleteCallback) -> None: ...
    def on_error(self, callback: ErrorCallback) -> None: ...
    def on_upload_progress(self, callback: ProgressCallback) -> None: ...
