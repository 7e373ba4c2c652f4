from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from promised_request.application.services.flatten import FormData, serialize_query
from promised_request.application.services.headers import (
    JSON_CONTENT_TYPE,
    URLENCODED_CONTENT_TYPE,
    content_type,
)
from promised_request.application.services.serializers import SerializerRegistry, default_serializers
from promised_request.domain.model import UNSET, RequestOptions, is_composite


class PayloadPreparer:
    """Picks one body encoding for the outgoing data.

    Order: forced form, JSON content type, urlencoded content type, then
    pass-through. Only composite data is ever re-encoded; strings and other
    scalars are assumed to be encoded by the caller already.

    With ``urlencoded_bodies=False`` the urlencoded step is skipped and such
    bodies pass through untouched, which is how older releases behaved.
    """

    def __init__(self, serializers: SerializerRegistry | None = None, *, urlencoded_bodies: bool = True) -> None:
        self.serializers = serializers if serializers is not None else default_serializers
        self.urlencoded_bodies = urlencoded_bodies

    def prepare(self, data: Any, options: RequestOptions, headers: Mapping[str, str]) -> Any:
        if data is UNSET:
            return None
        if options.send_form:
            return FormData.from_data(data) if is_composite(data) else data

        media_type = content_type(headers)
        if media_type == JSON_CONTENT_TYPE:
            return self.serializers.encode(data, "json") if is_composite(data) else data
        if self.urlencoded_bodies and media_type == URLENCODED_CONTENT_TYPE:
            return serialize_query(data) if is_composite(data) else data
        return data
