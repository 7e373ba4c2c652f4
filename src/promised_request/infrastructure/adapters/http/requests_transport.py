from __future__ import annotations

from typing import Any, Mapping
import logging
import threading

import requests

from promised_request.application.ports.transport_port import (
    CompleteCallback,
    ErrorCallback,
    ProgressCallback,
    TransportPort,
    TransportResponse,
)
from promised_request.application.services.flatten import FormData, to_string
from promised_request.infrastructure.adapters.http.httpx_transport import form_parts

logger = logging.getLogger(__name__)


class RequestsTransport(TransportPort):
    """Transport adapter backed by a persistent requests.Session.

    - Asynchronous opens run on a daemon thread, like HttpxTransport
    - Upload progress is a single event once the body has been sent
    - requests.RequestException is reported through on_error
    """

    def __init__(
        self,
        default_headers: Mapping[str, str] | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.session = session or requests.Session()
        if default_headers:
            self.session.headers.update(dict(default_headers))
        self.timeout = timeout
        self._method: str | None = None
        self._url = ""
        self._async = True
        self._headers: dict[str, str] = {}
        self._on_complete: CompleteCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._on_progress: ProgressCallback | None = None

    def _log(self, msg: str) -> None:
        logger.debug("[RequestsTransport] %s", msg)

    def on_complete(self, callback: CompleteCallback) -> None:
        self._on_complete = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._on_error = callback

    def on_upload_progress(self, callback: ProgressCallback) -> None:
        self._on_progress = callback

    def open(self, method: str, url: str, asynchronous: bool = True) -> None:
        if self._method is not None:
            raise RuntimeError("Transport already opened")
        self._method = method.upper()
        self._url = url
        self._async = asynchronous

    def set_header(self, name: str, value: str) -> None:
        if self._method is None:
            raise RuntimeError("open() must be called before set_header()")
        self._headers[name] = value

    def send(self, body: Any = None) -> None:
        if self._method is None:
            raise RuntimeError("open() must be called before send()")
        if self._async:
            threading.Thread(target=self._perform, args=(body,), daemon=True).start()
        else:
            self._perform(body)

    def close(self) -> None:
        self.session.close()

    def _prepare(self, body: Any) -> requests.PreparedRequest:
        req = requests.Request(self._method, self._url, headers=self._headers)
        if isinstance(body, FormData):
            req.files = form_parts(body)
        elif isinstance(body, (Mapping, bytes, bytearray)):
            req.data = body
        elif body is not None:
            req.data = to_string(body).encode("utf-8")
        return self.session.prepare_request(req)

    def _perform(self, body: Any) -> None:
        self._log(f"{self._method} {self._url} | headers: {list(self._headers)}")
        try:
            prepared = self._prepare(body)
            resp = self.session.send(prepared, timeout=self.timeout)
            size = len(prepared.body or b"")
            if self._on_progress is not None and size:
                self._on_progress(size, size)
        except Exception as e:
            self._log(f"{self._method} {self._url} | error: {e!r}")
            if self._on_error is not None:
                self._on_error(e)
            return
        self._log(f"{self._method} {self._url} -> {resp.status_code}")
        if self._on_complete is not None:
            self._on_complete(TransportResponse(resp.status_code, resp.text, str(resp.url), resp.headers, raw=resp))
