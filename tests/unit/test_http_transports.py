from __future__ import annotations
import httpx
import requests
from requests.adapters import BaseAdapter
from promised_request.application.services.flatten import FormData
from promised_request.application.use_cases.request import Request
from promised_request.application.services.serializers import SerializerRegistry
from promised_request.domain.model import Blob
from promised_request.infrastructure.adapters.http.httpx_transport import HttpxTransport
from promised_request.infrastructure.adapters.http.requests_transport import RequestsTransport


def httpx_transport(handler, **kw):
    return HttpxTransport(client=httpx.Client(transport=httpx.MockTransport(handler)), **kw)


def test_httpx_sync_json_round_trip():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["ctype"] = request.headers["content-type"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"status": "success", "echo": 1})

    req = Request("http://api.test/x", {"a": 1}, transport=httpx_transport(handler), serializers=SerializerRegistry.default())
    res = req.set_json_headers().use_sync().post().result()
    assert res.data == {"status": "success", "echo": 1}
    assert seen == {"method": "POST", "ctype": "application/json", "body": b'{"a": 1}'}


def test_httpx_async_resolves_from_worker_thread():
    def handler(request):
        return httpx.Response(200, text='{"status": "success"}')

    signal = Request("http://api.test/x", transport=httpx_transport(handler)).use_async().get()
    assert signal.result(timeout=5).data == {"status": "success"}


def test_httpx_error_status_is_still_a_completion():
    def handler(request):
        return httpx.Response(500, json={"status": "error", "message": "boom"})

    failure = Request("http://api.test/x", transport=httpx_transport(handler)).use_sync().get().exception()
    assert failure.reason == "status"
    assert failure.message == "boom"


def test_httpx_network_error_rejects():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    failure = Request("http://api.test/x", transport=httpx_transport(handler)).use_sync().get().exception()
    assert failure.reason == "transport"
    assert isinstance(failure.error, httpx.ConnectError)


def test_httpx_multipart_with_progress():
    seen = {}

    def handler(request):
        seen["ctype"] = request.headers["content-type"]
        seen["body"] = request.read()
        seen["length"] = request.headers.get("content-length")
        return httpx.Response(200, text='{"status": "success"}')

    progress = []
    data = {"title": "doc", "files": [Blob(b"hello", "h.txt", "text/plain")]}
    req = Request("http://api.test/up", data, transport=httpx_transport(handler, chunk_size=16))
    req.set_form_serializer().on_progress(progress.append).use_sync().post().result()

    assert seen["ctype"].startswith("multipart/form-data; boundary=")
    assert b'name="title"' in seen["body"] and b"doc" in seen["body"]
    assert b'name="files[file]"; filename="h.txt"' in seen["body"]
    assert seen["length"] == str(len(seen["body"]))
    assert progress[-1] == 100.0
    assert progress == sorted(progress)


class StubAdapter(BaseAdapter):
    def __init__(self, status=200, body=b'{"status": "success"}', error=None):
        super().__init__()
        self.status, self.body, self.error = status, body, error
        self.requests = []

    def send(self, request, **kwargs):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        resp = requests.Response()
        resp.status_code = self.status
        resp._content = self.body
        resp.url = request.url
        resp.request = request
        resp.encoding = "utf-8"
        return resp

    def close(self):
        pass


def requests_transport(adapter):
    session = requests.Session()
    session.mount("http://", adapter)
    return RequestsTransport({"User-Agent": "test"}, session=session)


def test_requests_transport_urlencoded_post():
    adapter = StubAdapter()
    req = Request("http://api.test/x", {"a": {"b": 2}}, transport=requests_transport(adapter))
    res = req.set_url_enc_headers().use_sync().post().result()
    sent = adapter.requests[0]
    assert res.data == {"status": "success"}
    assert sent.body == b"a%5Bb%5D=2"
    assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert sent.headers["User-Agent"] == "test"


def test_requests_transport_form_and_progress():
    adapter = StubAdapter()
    progress = []
    form = FormData.from_data({"n": 1, "f": Blob(b"zz", "z.bin")})
    t = requests_transport(adapter)
    t.on_upload_progress(lambda loaded, total: progress.append((loaded, total)))
    t.on_complete(lambda resp: progress.append(resp.status_code))
    t.open("POST", "http://api.test/x", False)
    t.send(form)
    body = adapter.requests[0].body
    assert b'name="n"' in body and b'filename="z.bin"' in body
    assert progress == [(len(body), len(body)), 200]


def test_requests_transport_connection_error():
    err = requests.ConnectionError("down")
    failure = Request("http://api.test/x", transport=requests_transport(StubAdapter(error=err))).use_sync().get().exception()
    assert failure.error is err


def ok_handler(request):
    return httpx.Response(200, text='{"status": "success"}')


def test_httpx_non_ascii_header_rejects_async():
    req = Request("http://api.test/x", transport=httpx_transport(ok_handler)).set_headers({"X-User": "José"})
    failure = req.use_async().get().exception(timeout=5)
    assert failure.reason == "transport"
    assert isinstance(failure.error, UnicodeEncodeError)


def test_httpx_non_ascii_header_rejects_sync():
    req = Request("http://api.test/x", transport=httpx_transport(ok_handler)).set_headers({"X-User": "José"})
    signal = req.use_sync().get()
    assert signal.state == "failed"
    assert isinstance(signal.exception().error, UnicodeEncodeError)


def test_httpx_raising_progress_callback_rejects():
    err = ValueError("listener broke")

    def listener(percent):
        raise err

    req = Request("http://api.test/x", {"a": 1}, transport=httpx_transport(ok_handler))
    failure = req.set_json_headers().on_progress(listener).use_async().post().exception(timeout=5)
    assert failure.reason == "transport"
    assert failure.error is err


def test_requests_raising_progress_callback_rejects():
    err = ValueError("listener broke")

    def listener(percent):
        raise err

    req = Request("http://api.test/x", {"a": 1}, transport=requests_transport(StubAdapter()))
    failure = req.set_json_headers().on_progress(listener).use_async().post().exception(timeout=5)
    assert failure.reason == "transport"
    assert failure.error is err


def test_requests_header_encoding_error_rejects():
    err = UnicodeEncodeError("latin-1", "Ω", 0, 1, "ordinal not in range(256)")
    req = Request("http://api.test/x", transport=requests_transport(StubAdapter(error=err)))
    failure = req.set_headers({"X-User": "Ω"}).use_sync().get().exception()
    assert failure.reason == "transport"
    assert failure.error is err


def test_owned_httpx_client_closed_after_settle(monkeypatch):
    from promised_request.application.use_cases import request as request_module

    client = httpx.Client(transport=httpx.MockTransport(ok_handler))
    monkeypatch.setattr(request_module, "_default_transport", lambda settings: HttpxTransport(client=client))
    Request("http://api.test/x").use_sync().get().result()
    assert client.is_closed


def test_injected_httpx_client_left_open():
    client = httpx.Client(transport=httpx.MockTransport(ok_handler))
    Request("http://api.test/x", transport=HttpxTransport(client=client)).use_sync().get().result()
    assert not client.is_closed
