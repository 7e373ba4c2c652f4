from __future__ import annotations

from typing import Any, List, Optional
import json
import logging
import re

import typer

from promised_request.application.ports.transport_port import TransportPort
from promised_request.application.use_cases.request import Request
from promised_request.config import settings
from promised_request.domain.errors import RequestError, RequestFailure
from promised_request.domain.model import UNSET
from promised_request.infrastructure.adapters.http.httpx_transport import HttpxTransport

app = typer.Typer(help="Promise-style HTTP requests with status-checked responses")

_KEY_PART = re.compile(r"\[([^\]]*)\]")


def build_transport() -> TransportPort:
    return HttpxTransport(timeout=settings.http_timeout, user_agent=settings.user_agent)


def parse_data(pairs: List[str]) -> Any:
    """key=value pairs into a nested dict; ``a[b]=c`` nests under ``a``."""
    if not pairs:
        return UNSET
    data: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        head = key.split("[", 1)[0]
        path = [head, *_KEY_PART.findall(key[len(head):])]
        node = data
        for part in path[:-1]:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise typer.BadParameter(f"Conflicting keys at {key!r}")
        node[path[-1]] = value
    return data


def parse_headers(values: List[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep:
            raise typer.BadParameter(f"Expected 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def _run(
    method: str,
    url: str,
    data: List[str],
    header: List[str],
    as_json: bool,
    form: bool,
    check_status: bool,
    unserializer: Optional[str],
    verbose: bool,
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")
    transport = build_transport()
    req = Request(url, parse_data(data), {"asynchronous": False}, transport=transport)
    req.set_headers(parse_headers(header)).check_status(check_status)
    if as_json:
        req.set_json_headers()
    if form:
        req.set_form_serializer()
    if unserializer:
        req.set_unserializer(unserializer)

    try:
        result = getattr(req, method)().result()
    except RequestFailure as e:
        typer.echo(f"Request failed ({e.reason}): {e.message}", err=True)
        raise typer.Exit(code=1)
    except RequestError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    finally:
        close = getattr(transport, "close", None)
        if close is not None:
            close()

    data_out = result.data
    if isinstance(data_out, str):
        typer.echo(data_out)
    else:
        typer.echo(json.dumps(data_out, indent=2, ensure_ascii=False, default=str))


DATA_OPT = typer.Option([], "--data", "-d", help="key=value, repeatable")
HEADER_OPT = typer.Option([], "--header", "-H", help="'Name: value', repeatable")
JSON_OPT = typer.Option(False, "--json", help="Send and accept JSON")
FORM_OPT = typer.Option(False, "--form", help="Send data as multipart form")
CHECK_OPT = typer.Option(settings.check_response_status, "--check-status/--no-check-status")
UNSERIALIZER_OPT = typer.Option(None, "--unserializer", "-u")
VERBOSE_OPT = typer.Option(False, "--verbose", "-v")


@app.command()
def get(
    url: str,
    data: List[str] = DATA_OPT,
    header: List[str] = HEADER_OPT,
    as_json: bool = JSON_OPT,
    check_status: bool = CHECK_OPT,
    unserializer: Optional[str] = UNSERIALIZER_OPT,
    verbose: bool = VERBOSE_OPT,
) -> None:
    _run("get", url, data, header, as_json, False, check_status, unserializer, verbose)


@app.command()
def post(
    url: str,
    data: List[str] = DATA_OPT,
    header: List[str] = HEADER_OPT,
    as_json: bool = JSON_OPT,
    form: bool = FORM_OPT,
    check_status: bool = CHECK_OPT,
    unserializer: Optional[str] = UNSERIALIZER_OPT,
    verbose: bool = VERBOSE_OPT,
) -> None:
    _run("post", url, data, header, as_json, form, check_status, unserializer, verbose)


@app.command()
def delete(
    url: str,
    data: List[str] = DATA_OPT,
    header: List[str] = HEADER_OPT,
    as_json: bool = JSON_OPT,
    check_status: bool = CHECK_OPT,
    unserializer: Optional[str] = UNSERIALIZER_OPT,
    verbose: bool = VERBOSE_OPT,
) -> None:
    _run("delete", url, data, header, as_json, False, check_status, unserializer, verbose)


if __name__ == "__main__":
    app()
