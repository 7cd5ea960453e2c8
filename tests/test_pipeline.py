"""End-to-end behaviour of the request pipeline."""

import asyncio
import json
import logging
import threading

import msgpack
import pytest

from herd import Handler, Ok, Pipeline, Response, Settings, TestClient, fail, ok
from herd.testclient import MemoryTransport
from tests.handlers import (
    AsyncWidgets,
    BrokenEncoder,
    BrokenErrors,
    CustomErrors,
    EncodeDecode,
    Failing,
    Minimal,
    Widgets,
)

JSON = {"content-type": "application/json", "accept": "application/json"}


def test_post_scenario(widgets_client) -> None:
    resp = widgets_client.post("/widgets", body=b"{}", headers=JSON)
    assert resp.status_code == 200
    assert resp.content == b'{"id":1}'
    assert resp.headers == {"content-type": "application/json"}


def test_get_without_chain_is_405() -> None:
    class NoGet(Handler):
        methods_spec = {"POST": ["create"]}

        def create(self, request, state):
            return ok(None)

    resp = TestClient(NoGet()).get("/")
    assert resp.status_code == 405
    assert resp.json() == "Method not allowed"


def test_empty_chain_is_405(chained_client) -> None:
    assert chained_client.delete("/").status_code == 405


def test_unknown_method_is_405(widgets_client) -> None:
    assert widgets_client.request("OPTIONS", "/").status_code == 405


def test_unsupported_content_type_is_400(widgets_client) -> None:
    resp = widgets_client.put(
        "/", body=b"<widget/>", headers={"content-type": "text/xml"}
    )
    assert resp.status_code == 400
    assert "content-type" in resp.json()


def test_decode_failure_is_400(widgets_client) -> None:
    resp = widgets_client.put("/", body=b"{oops", headers=JSON)
    assert resp.status_code == 400
    assert resp.json() == "Can't decode JSON payload"


def test_content_type_defaults_to_json(widgets_client) -> None:
    resp = widgets_client.put("/", body=b'{"a": [1, 2]}')
    assert resp.status_code == 200
    assert resp.json() == {"a": [1, 2]}


def test_empty_body_reaches_handler_as_empty_mapping(widgets_client) -> None:
    resp = widgets_client.put("/", headers={"content-type": "text/xml"})
    assert resp.status_code == 200
    assert resp.json() == {}


def test_msgpack_in_and_out(widgets_client) -> None:
    resp = widgets_client.put(
        "/",
        body=msgpack.packb({"n": 5}),
        headers={
            "content-type": "application/x-msgpack",
            "accept": "application/x-msgpack",
        },
    )
    assert resp.status_code == 200
    assert resp.headers == {"content-type": "application/x-msgpack"}
    assert resp.msgpack() == {"n": 5}


def test_unknown_accept_falls_back_to_json(widgets_client) -> None:
    resp = widgets_client.get("/", headers={"accept": "text/html"})
    assert resp.status_code == 200
    assert resp.headers == {"content-type": "application/json"}
    assert resp.json() == [{"id": 1, "name": "bolt"}]


def test_fail_with_response_keeps_status(widgets_client) -> None:
    resp = widgets_client.delete("/widgets/1")
    assert resp.status_code == 404
    assert resp.json() == "Widget not found"


def test_chain_threads_state(chained_client) -> None:
    resp = chained_client.post("/", json_body={"name": "gear"})
    assert resp.status_code == 200
    assert resp.json() == {"name": "gear", "calls": ["validate", "create"]}


def test_chain_short_circuits_on_failure(chained_client) -> None:
    resp = chained_client.post("/", json_body={"size": 3})
    assert resp.status_code == 422
    assert resp.json() == "name is required"


def test_exhausted_chain_is_204(chained_client) -> None:
    resp = chained_client.get("/")
    assert resp.status_code == 204
    assert resp.content == b""


def test_missing_function_is_501(chained_client) -> None:
    resp = chained_client.put("/", json_body={"name": "gear"})
    assert resp.status_code == 501
    assert resp.json() == "Not implemented"


def test_default_spec_function_missing_is_501() -> None:
    resp = TestClient(Minimal()).post("/", json_body={})
    assert resp.status_code == 501


@pytest.mark.parametrize(
    ("method", "status", "body"),
    [
        ("GET", 500, "Internal server error"),
        ("POST", 500, "Internal server error"),
        ("PUT", 500, "Internal server error"),
        ("PATCH", 409, "Conflict"),
        ("DELETE", 500, "Can't encode JSON payload"),
    ],
)
def test_failures_without_error_handlers(failing_client, method, status, body) -> None:
    resp = failing_client.request(method, "/")
    assert resp.status_code == status
    assert resp.json() == body


@pytest.mark.parametrize(
    ("method", "status", "body"),
    [
        ("GET", 503, {"error": "exception"}),
        ("POST", 503, {"error": "exception"}),
        ("PUT", 503, {"error": "error"}),
        ("PATCH", 409, {"error": "Conflict"}),
        ("DELETE", 500, {"error": "Can't encode JSON payload"}),
    ],
)
def test_custom_error_handlers(method, status, body) -> None:
    resp = TestClient(CustomErrors()).request(method, "/")
    assert resp.status_code == status
    assert resp.json() == body


@pytest.mark.parametrize("method", ["GET", "POST", "PUT", "PATCH", "DELETE"])
def test_broken_error_handlers_match_defaults(method) -> None:
    broken = TestClient(BrokenErrors()).request(method, "/")
    default = TestClient(Failing()).request(method, "/")
    assert broken.status_code == default.status_code
    assert broken.headers == default.headers
    assert broken.content == default.content


def test_custom_codecs_from_init() -> None:
    client = TestClient(EncodeDecode())
    resp = client.post("/", json_body={"a": 1})
    assert resp.status_code == 200
    assert resp.json() == {"a": 1, "custom_decoder": "ok", "custom_encoder": "ok"}


def test_custom_codecs_do_not_cover_msgpack_decode() -> None:
    client = TestClient(EncodeDecode())
    resp = client.post(
        "/",
        body=msgpack.packb({"a": 1}),
        headers={"content-type": "application/x-msgpack"},
    )
    assert resp.status_code == 400
    assert resp.json() == "Not supported 'content-type'"


def test_broken_encoder_still_answers() -> None:
    resp = TestClient(BrokenEncoder()).get("/")
    assert resp.status_code == 500
    assert resp.headers == {"content-type": "application/json"}
    assert json.loads(resp.content) == "Can't encode JSON payload"


def test_async_handler_gets_options_and_query() -> None:
    client = TestClient(AsyncWidgets(), {"tenant": "acme"})
    resp = client.get("/?page=2&tag=a&tag=b")
    assert resp.status_code == 200
    assert resp.json() == {
        "options": {"tenant": "acme"},
        "query": {"page": "2", "tag": ["a", "b"]},
    }


def test_init_failure_is_500() -> None:
    class BadInit(Widgets):
        def init(self, request, options):
            raise KeyError("config")

    assert TestClient(BadInit()).get("/").status_code == 500


def test_init_must_return_pair() -> None:
    class OddInit(Widgets):
        def init(self, request, options):
            return {}

    assert TestClient(OddInit()).get("/").status_code == 500


def test_handler_headers_are_replaced_by_default() -> None:
    class WithHeaders(Handler):
        def read(self, request, state):
            return Ok(Response(200, {"X-Trace": "abc"}, {"a": 1}))

    resp = TestClient(WithHeaders()).get("/")
    assert resp.headers == {"content-type": "application/json"}
    merged = TestClient(
        WithHeaders(), settings=Settings(merge_response_headers=True)
    ).get("/")
    assert merged.headers == {"x-trace": "abc", "content-type": "application/json"}


def test_bindings_reach_handler() -> None:
    class Echo(Handler):
        def read(self, request, state):
            return ok(request.bindings)

    resp = TestClient(Echo()).get("/widgets/7", bindings={"id": "7"})
    assert resp.json() == {"id": "7"}


def test_exactly_one_reply_and_access_log(caplog) -> None:
    pipeline = Pipeline(Widgets())
    transport = MemoryTransport(
        "GET",
        "/widgets",
        headers={"Host": "example.org", "User-Agent": "pytest"},
        peer="127.0.0.1",
    )
    with caplog.at_level(logging.INFO, logger="herd.access"):
        response = asyncio.run(pipeline.handle(transport))
    assert transport.status_code == 200
    assert response.body == transport.reply_body
    records = [r for r in caplog.records if r.name == "herd.access"]
    assert len(records) == 1
    assert records[0].getMessage() == (
        '127.0.0.1 example.org - "GET /widgets HTTP/1.1" 200 pytest'
    )
    assert records[0].access["status"] == 200


def test_access_log_placeholders(caplog) -> None:
    transport = MemoryTransport("GET", "/", peer=None)
    with caplog.at_level(logging.INFO, logger="herd.access"):
        asyncio.run(Pipeline(Widgets()).handle(transport))
    assert caplog.records[-1].getMessage() == '- - - "GET / HTTP/1.1" 200 -'


def test_msgpack_body_with_integer_keys(widgets_client) -> None:
    resp = widgets_client.put(
        "/widgets/1",
        body=msgpack.packb({1: "a"}),
        headers={
            "content-type": "application/x-msgpack",
            "accept": "application/x-msgpack",
        },
    )
    assert resp.status_code == 200
    assert msgpack.unpackb(resp.content, strict_map_key=False) == {1: "a"}


def test_non_finite_json_is_500() -> None:
    class NotANumber(Handler):
        def read(self, request, state):
            return ok(float("nan"))

    resp = TestClient(NotANumber()).get("/")
    assert resp.status_code == 500
    assert resp.json() == "Can't encode JSON payload"


def test_signal_handler_sees_uncopyable_body() -> None:
    class Model:
        def __init__(self) -> None:
            self.name = "bolt"
            self.lock = threading.Lock()

    class Locked(Handler):
        def read(self, request, state):
            return fail(409, Model())

        def handle_signal(self, request, status_code, response):
            return Response(status_code, body={"name": response.body.name})

    resp = TestClient(Locked()).get("/")
    assert resp.status_code == 409
    assert resp.json() == {"name": "bolt"}


def test_merge_with_headerless_error_response_still_replies() -> None:
    class Down(Handler):
        def read(self, request, state):
            raise RuntimeError("boom")

        def handle_failure(self, request, failure):
            return Response(503, None, "down")

    client = TestClient(Down(), settings=Settings(merge_response_headers=True))
    resp = client.get("/")
    assert resp.status_code == 503
    assert resp.headers == {"content-type": "application/json"}
    assert resp.json() == "down"


def test_unknown_method_is_logged(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="herd.chain"):
        resp = TestClient(Widgets()).request("BREW", "/")
    assert resp.status_code == 405
    assert "unknown request method 'BREW'" in caplog.text
