from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any
import logging

from promised_request.application.ports.transport_port import TransportPort, TransportResponse
from promised_request.application.services.classifier import ResponseClassifier
from promised_request.application.services.completion import CompletionSignal
from promised_request.application.services.flatten import serialize_query, to_string
from promised_request.application.services.headers import (
    JSON_CONTENT_TYPE,
    URLENCODED_CONTENT_TYPE,
    HeaderResolver,
    PresetRegistry,
)
from promised_request.application.services.payload import PayloadPreparer
from promised_request.application.services.serializers import SerializerRegistry, default_serializers
from promised_request.config import Settings, settings as default_settings
from promised_request.domain.errors import ConfigurationError, RequestConstructionError
from promised_request.domain.model import UNSET, RequestOptions, Unserializer, is_composite

logger = logging.getLogger(__name__)


def _default_transport(settings: Settings) -> TransportPort:
    from promised_request.infrastructure.adapters.http.httpx_transport import HttpxTransport

    return HttpxTransport(timeout=settings.http_timeout, user_agent=settings.user_agent)


class Request:
    """A single HTTP exchange with a promise-like result.

    Configure it with the chaining setters, then call one of get/post/put/
    patch/delete exactly once. The returned CompletionSignal resolves with
    the decoded body, or rejects with a RequestFailure for undecodable
    bodies, bodies without ``status == "success"`` (when status checking is
    on) and transport errors.

        signal = Request(url, {"id": 3}).set_json_headers().post()
        body = signal.result().data
    """

    def __init__(
        self,
        url: str,
        data: Any = UNSET,
        options: Mapping[str, Any] | Sequence[Any] | None = None,
        *,
        transport: TransportPort | None = None,
        serializers: SerializerRegistry | None = None,
        presets: PresetRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        if not url or not isinstance(url, str):
            raise RequestConstructionError("Url must be a string ( link )")
        if options is not None and not isinstance(options, (Mapping, list, tuple)):
            raise RequestConstructionError("Options must be a mapping")

        self.settings = settings or default_settings
        self.url = url
        self.data = data
        self.options = RequestOptions.from_settings(self.settings).merged(options)
        self.serializers = serializers if serializers is not None else default_serializers
        self.transport = transport if transport is not None else _default_transport(self.settings)
        self.signal = CompletionSignal()

        self._headers = HeaderResolver(presets)
        self._payload = PayloadPreparer(self.serializers, urlencoded_bodies=self.settings.urlencoded_bodies)
        self._classifier = ResponseClassifier(self.serializers)
        self._progress: Callable[[float], Any] | None = None
        self._sent = False
        self._owns_transport = transport is None

    def _log(self, msg: str) -> None:
        logger.debug("[Request] %s", msg)

    # =========================
    # Configuration
    # =========================
    def _configure(self, **changes: Any) -> "Request":
        if self._sent:
            raise ConfigurationError("Request already sent, options are read-only")
        self.options = replace(self.options, **changes)
        return self

    def set_headers(self, new_headers: Mapping[str, Any]) -> "Request":
        if not isinstance(new_headers, Mapping):
            raise ConfigurationError("new_headers must be a mapping name:value")
        return self._configure(headers={**self.options.headers, **new_headers})

    def remove_header(self, name: str) -> "Request":
        if not isinstance(name, str):
            raise ConfigurationError("Header name must be a string")
        headers = dict(self.options.headers)
        headers.pop(name, None)
        return self._configure(headers=headers)

    def set_json_headers(self) -> "Request":
        return self.set_headers({"Content-Type": JSON_CONTENT_TYPE, "Accept": JSON_CONTENT_TYPE})

    def set_url_enc_headers(self) -> "Request":
        return self.set_headers({"Content-Type": URLENCODED_CONTENT_TYPE})

    def use_preset(self, name: str) -> "Request":
        if not isinstance(name, str):
            raise ConfigurationError("Preset name must be a string")
        return self._configure(headers_preset=name)

    def set_form_serializer(self) -> "Request":
        return self._configure(send_form=True)

    def use_async(self) -> "Request":
        return self._configure(asynchronous=True)

    def use_sync(self) -> "Request":
        return self._configure(asynchronous=False)

    def set_unserializer(self, unserializer: Unserializer) -> "Request":
        if not isinstance(unserializer, str) and not callable(unserializer):
            raise ConfigurationError("Unserializer must be a serializer name or a callable")
        return self._configure(response_unserializer=unserializer)

    def check_status(self, enabled: bool = True) -> "Request":
        return self._configure(check_response_data_status=bool(enabled))

    def on_progress(self, fn: Callable[[float], Any]) -> "Request":
        """Call ``fn`` with the upload percentage (0-100) while sending."""
        if not callable(fn):
            raise ConfigurationError("Progress callback must be callable")
        if self._sent:
            raise ConfigurationError("Request already sent, options are read-only")
        self._progress = fn
        return self

    # =========================
    # Sending
    # =========================
    def post(self) -> CompletionSignal:
        return self._send("POST", self.url, with_body=True)

    def put(self) -> CompletionSignal:
        return self._send("PUT", self.url, with_body=True)

    def patch(self) -> CompletionSignal:
        return self._send("PATCH", self.url, with_body=True)

    def get(self) -> CompletionSignal:
        return self._send("GET", self._query_url(), with_body=False)

    def delete(self) -> CompletionSignal:
        return self._send("DELETE", self._query_url(), with_body=False)

    def _query_url(self) -> str:
        if self.data is UNSET:
            return self.url
        query = serialize_query(self.data) if is_composite(self.data) else to_string(self.data)
        if not query:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{query}"

    def _report_progress(self, loaded: int, total: int | None) -> None:
        if self._progress is not None and total:
            self._progress(loaded / total * 100)

    def _send(self, method: str, url: str, *, with_body: bool) -> CompletionSignal:
        if self._sent:
            raise ConfigurationError("Request already sent, create a new Request")

        options = self.options
        headers = self._headers.resolve(options)
        if isinstance(options.response_unserializer, str):
            self.serializers.lookup(options.response_unserializer)
        body = self._payload.prepare(self.data, options, headers) if with_body else None
        self._sent = True

        signal = self.signal
        classifier = self._classifier

        def _complete(response: TransportResponse) -> None:
            self._log(f"{method} {url} -> {response.status_code}")
            classifier.classify(response, options, signal)

        def _error(error: BaseException) -> None:
            self._log(f"{method} {url} failed: {error!r}")
            classifier.fail_transport(error, signal)

        transport = self.transport
        transport.on_complete(_complete)
        transport.on_error(_error)
        if self._progress is not None:
            transport.on_upload_progress(self._report_progress)

        self._log(f"{method} {url} async={options.asynchronous} body={type(body).__name__}")
        transport.open(method, url, options.asynchronous)
        for name, value in headers.items():
            transport.set_header(name, value)
        if self._owns_transport:
            signal.add_done_callback(lambda _s: self._close_transport())
        try:
            transport.send(body)
        except Exception as e:
            _error(e)
        return signal

    def _close_transport(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()
