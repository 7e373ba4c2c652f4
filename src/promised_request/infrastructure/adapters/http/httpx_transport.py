from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any
import logging
import threading

import httpx

from promised_request.application.ports.transport_port import (
    CompleteCallback,
    ErrorCallback,
    ProgressCallback,
    TransportPort,
    TransportResponse,
)
from promised_request.application.services.flatten import FormData, to_string

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def form_parts(form: FormData) -> list[tuple[str, tuple[Any, ...]]]:
    """Multipart parts in field order; plain fields are parts without filename."""
    parts: list[tuple[str, tuple[Any, ...]]] = [(name, (None, value)) for name, value in form.fields]
    parts.extend((name, (blob.filename, blob.content, blob.content_type)) for name, blob in form.files)
    return parts


class HttpxTransport(TransportPort):
    def __init__(
        self,
        timeout: float = 45.0,
        *,
        client: httpx.Client | None = None,
        user_agent: str = "promised-request/0.1",
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        """Transport adapter backed by a persistent httpx.Client.

        - Asynchronous opens run the exchange on a daemon thread
        - Upload progress is reported per chunk when a listener is registered
        - HTTP error statuses are completions, only httpx errors are failures

        Args:
            timeout (float, optional): Timeout for requests. Defaults to 45.0.
            client (httpx.Client | None, optional): Client to reuse. Defaults to a new one.
            user_agent (str, optional): Default User-Agent header.
            chunk_size (int, optional): Upload chunk size for progress reporting.
        """
        self._client = client or httpx.Client(timeout=timeout, headers={
            "User-Agent": user_agent,
        }, follow_redirects=True)
        self._chunk_size = chunk_size
        self._method: str | None = None
        self._url = ""
        self._async = True
        self._headers: dict[str, str] = {}
        self._on_complete: CompleteCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._on_progress: ProgressCallback | None = None

    def _log(self, msg: str) -> None:
        logger.debug("[HttpxTransport] %s", msg)

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
        """Sends the body; returns at once when opened asynchronously.

        Args:
            body (Any, optional): FormData, str, bytes, a mapping (sent form
                encoded) or None. Other values are sent as their string form.
        """
        if self._method is None:
            raise RuntimeError("open() must be called before send()")
        if not self._async:
            self._perform(body)
            return
        threading.Thread(
            target=self._perform, args=(body,), name=f"httpx-{self._method}", daemon=True
        ).start()

    def close(self) -> None:
        self._client.close()

    def _build(self, body: Any) -> httpx.Request:
        kwargs: dict[str, Any] = {"headers": self._headers}
        if isinstance(body, FormData):
            kwargs["files"] = form_parts(body)
        elif isinstance(body, Mapping):
            kwargs["data"] = dict(body)
        elif isinstance(body, (bytes, bytearray)):
            kwargs["content"] = bytes(body)
        elif body is not None:
            kwargs["content"] = to_string(body)
        request = self._client.build_request(self._method or "GET", self._url, **kwargs)
        if self._on_progress is None or body is None:
            return request
        payload = request.read()
        return httpx.Request(
            request.method, request.url, headers=request.headers, content=self._chunks(payload)
        )

    def _chunks(self, payload: bytes) -> Iterator[bytes]:
        total = len(payload)
        for start in range(0, total, self._chunk_size):
            chunk = payload[start:start + self._chunk_size]
            yield chunk
            if self._on_progress is not None:
                self._on_progress(start + len(chunk), total)

    def _perform(self, body: Any) -> None:
        self._log(f"{self._method} {self._url} | headers: {list(self._headers)}")
        try:
            resp = self._client.send(self._build(body))
        except Exception as e:
            # header encoding, body iteration and progress listener errors included
            self._log(f"{self._method} {self._url} | error: {e!r}")
            if self._on_error is not None:
                self._on_error(e)
            return
        self._log(f"{self._method} {self._url} -> {resp.status_code} len={len(resp.content)}")
        if self._on_complete is not None:
            self._on_complete(TransportResponse(resp.status_code, resp.text, str(resp.url), resp.headers, raw=resp))
