from __future__ import annotations

from collections.abc import Mapping
from typing import Any
import logging

from promised_request.application.ports.transport_port import TransportResponse
from promised_request.application.services.completion import CompletionSignal
from promised_request.application.services.serializers import SerializerRegistry, default_serializers
from promised_request.domain.errors import RequestFailure
from promised_request.domain.model import RequestOptions

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"
UNEXPECTED_RESPONSE = "Unexpected response"


class ResponseClassifier:
    """Decodes a finished response and settles the signal once.

    Decoding uses a registry name or a custom ``fn(text, response)``. When
    status checking is on, only a decoded mapping with ``status == "success"``
    resolves; anything else rejects with the body's ``message`` when present.
    """

    def __init__(self, serializers: SerializerRegistry | None = None) -> None:
        self.serializers = serializers if serializers is not None else default_serializers

    def decode(self, response: TransportResponse, options: RequestOptions) -> Any:
        unserializer = options.response_unserializer
        if callable(unserializer):
            return unserializer(response.text, response)
        return self.serializers.decode(response.text, unserializer)

    def classify(self, response: TransportResponse, options: RequestOptions, signal: CompletionSignal) -> bool:
        text = response.text
        try:
            data = self.decode(response, options)
        except Exception as e:
            logger.debug("Decoding %s failed: %s", response.url, e)
            return signal.reject(RequestFailure(str(e), text=text, error=e, reason="decode"))

        if options.check_response_data_status and not self._has_success_status(data):
            message = UNEXPECTED_RESPONSE
            if isinstance(data, Mapping) and data.get("message") is not None:
                message = str(data["message"])
            return signal.reject(RequestFailure(message, data=data, text=text, reason="status"))

        return signal.resolve(data, text)

    def fail_transport(self, error: BaseException, signal: CompletionSignal) -> bool:
        return signal.reject(RequestFailure(str(error) or type(error).__name__, error=error, reason="transport"))

    @staticmethod
    def _has_success_status(data: Any) -> bool:
        return isinstance(data, Mapping) and data.get("status") == SUCCESS_STATUS
