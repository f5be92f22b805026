# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import threading

import pytest

from shapeclient.config import HttpSettings
from shapeclient.dispatch import Dispatcher
from shapeclient.errors import ErrorCategory
from shapeclient.http.adapters import StubHttpClient
from shapeclient.http.models import HttpRequest, HttpResponse
from shapeclient.resolve import ErrorReply, ListSuccess, Success, TransportFailure, Unrecognized
from shapeclient.shapes import Shape

URL = "http://api.example/items"


class Item(Shape):
    id: int | None = None
    title: str | None = None


class ApiError(Shape):
    error: str | None = None
    code: int | None = None


class Recorder:
    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.threads: list[str] = []

    def _record(self, kind, value):
        self.calls.append((kind, value))
        self.threads.append(threading.current_thread().name)

    def success(self, value):
        self._record("success", value)

    def error(self, value):
        self._record("error", value)

    def failure(self, message):
        self._record("failure", message)

    def callbacks(self):
        return self.success, self.error, self.failure


def _dispatcher(stub: StubHttpClient, **kwargs) -> Dispatcher:
    return Dispatcher(http_client=stub, settings=HttpSettings(), **kwargs)


def test_success_invokes_only_on_success():
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 1, "title": "first"}')
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("success", Item(id=1, title="first"))]
    assert result == Success(Item(id=1, title="first"))


def test_error_shape_invokes_only_on_error():
    stub = StubHttpClient()
    stub.add_json(URL, '{"error": "not found", "code": 404}', status_code=404)
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("error", ApiError(error="not found", code=404))]
    assert isinstance(result, ErrorReply)


def test_status_code_does_not_select_callback():
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 9}', status_code=500)
    rec = Recorder()

    _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("success", Item(id=9))]


def test_transport_failure_reports_message():
    stub = StubHttpClient()
    stub.add_failure(URL, "timeout", category=ErrorCategory.TIMEOUT)
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("failure", "timeout")]
    assert result == TransportFailure(message="timeout", category=ErrorCategory.TIMEOUT.value)


def test_transport_failure_without_message_uses_category_reason():
    stub = StubHttpClient()
    stub.add(URL, HttpResponse(ok=False, error_category=ErrorCategory.DNS_ERROR.value))
    rec = Recorder()

    _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("failure", "DNS resolution failure")]


def test_client_exception_becomes_failure():
    class ExplodingClient:
        def request(self, request):  # noqa: ARG002
            raise ConnectionResetError("reset by peer")

    rec = Recorder()
    result = Dispatcher(http_client=ExplodingClient(), settings=HttpSettings()).request(
        URL, Item, ApiError, *rec.callbacks()
    )

    assert rec.calls == [("failure", "reset by peer")]
    assert result.category == ErrorCategory.CONNECTION_ERROR.value


def test_invalid_json_is_failure():
    stub = StubHttpClient()
    stub.add_json(URL, "<html>oops</html>")
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert len(rec.calls) == 1
    kind, message = rec.calls[0]
    assert kind == "failure"
    assert "JSON" in message
    assert result.category == ErrorCategory.INVALID_JSON.value


def test_empty_object_is_reported_as_unrecognized():
    stub = StubHttpClient()
    stub.add_json(URL, "{}")
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, Unrecognized)
    assert rec.calls == [("failure", result.message)]


def test_empty_body_is_reported_as_unrecognized():
    stub = StubHttpClient()
    stub.add(URL, HttpResponse(ok=True, status_code=204))
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, Unrecognized)
    assert [kind for kind, _ in rec.calls] == ["failure"]


def test_list_success_and_empty_list():
    stub = StubHttpClient()
    stub.add_json(URL, '[{"id": 1}, {"id": 2}]')
    stub.add_json(URL + "/empty", "[]")
    rec = Recorder()
    dispatcher = _dispatcher(stub)

    dispatcher.request_list(URL, Item, ApiError, *rec.callbacks())
    result = dispatcher.request_list(URL + "/empty", Item, ApiError, *rec.callbacks())

    assert rec.calls == [("success", [Item(id=1), Item(id=2)]), ("success", [])]
    assert result == ListSuccess([])


def test_list_error_checked_before_array():
    stub = StubHttpClient()
    stub.add_json(URL, '{"error": "forbidden", "code": 403}', status_code=403)
    rec = Recorder()

    _dispatcher(stub).request_list(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == [("error", ApiError(error="forbidden", code=403))]


def test_list_vacuous_error_object_is_failure():
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": null}')
    rec = Recorder()

    result = _dispatcher(stub).request_list(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, Unrecognized)
    assert [kind for kind, _ in rec.calls] == ["failure"]


def test_request_convertible_is_converted():
    class Route:
        def as_http_request(self):
            return HttpRequest.json_body(URL, {"title": "new"})

    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 3, "title": "new"}', status_code=201)
    rec = Recorder()

    _dispatcher(stub).request(Route(), Item, ApiError, *rec.callbacks())

    sent = stub.requests[0]
    assert sent.method == "POST"
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.body == b'{"title":"new"}'
    assert rec.calls == [("success", Item(id=3, title="new"))]


def test_unconvertible_request_raises_before_io():
    stub = StubHttpClient()
    with pytest.raises(TypeError):
        _dispatcher(stub).request(42, Item, ApiError, *Recorder().callbacks())
    assert stub.requests == []


def test_raising_callback_is_logged_and_contained(caplog):
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 1}')
    rec = Recorder()

    def broken(_value):
        raise RuntimeError("callback bug")

    with caplog.at_level(logging.ERROR, logger="shapeclient.dispatch"):
        result = _dispatcher(stub).request(URL, Item, ApiError, broken, rec.error, rec.failure)

    assert isinstance(result, Success)
    assert rec.calls == []
    assert "callback bug" in caplog.text


def test_deliver_hook_receives_callbacks():
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 1}')
    rec = Recorder()
    queued = []

    dispatcher = _dispatcher(stub, deliver=queued.append)
    dispatcher.request(URL, Item, ApiError, *rec.callbacks())

    assert rec.calls == []
    assert len(queued) == 1
    queued[0]()
    assert rec.calls == [("success", Item(id=1))]


def test_submit_runs_on_worker_thread():
    stub = StubHttpClient()
    stub.add_json(URL, '[{"id": 5}]')
    stub.add_failure(URL + "/down", "timeout", category=ErrorCategory.TIMEOUT)
    rec = Recorder()

    with _dispatcher(stub) as dispatcher:
        listed = dispatcher.submit_list(URL, Item, ApiError, *rec.callbacks()).result(timeout=5)
        failed = dispatcher.submit(URL + "/down", Item, ApiError, *rec.callbacks()).result(timeout=5)

    assert listed == ListSuccess([Item(id=5)])
    assert isinstance(failed, TransportFailure)
    assert rec.calls == [("success", [Item(id=5)]), ("failure", "timeout")]
    assert all(name.startswith("shapeclient") for name in rec.threads)
    assert stub.closed is True


def test_close_closes_client_and_is_idempotent():
    stub = StubHttpClient()
    dispatcher = _dispatcher(stub)
    dispatcher.close()
    dispatcher.close()
    assert stub.closed is True


def test_type_mismatch_on_both_shapes_is_failure():
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": "seven", "error": 5}')
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, Unrecognized)
    assert rec.calls == [("failure", result.message)]


def test_list_with_non_object_elements_is_failure():
    stub = StubHttpClient()
    stub.add_json(URL, '[{"id": 1}, 5, null, "x"]')
    rec = Recorder()

    result = _dispatcher(stub).request_list(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, Unrecognized)
    assert [kind for kind, _ in rec.calls] == ["failure"]


def test_exception_while_mapping_is_failure(caplog):
    class Keyed(Shape):
        id: int | None = None

        @classmethod
        def accepts(cls, payload):
            return payload["kind"] == "item"

    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 1}')
    rec = Recorder()

    with caplog.at_level(logging.ERROR, logger="shapeclient.dispatch"):
        result = _dispatcher(stub).request(URL, Keyed, ApiError, *rec.callbacks())

    assert isinstance(result, TransportFailure)
    assert result.category == ErrorCategory.MAPPING_ERROR.value
    assert rec.calls == [("failure", result.message)]
    assert "KeyError" in result.message
    assert "mapping the response failed" in caplog.text


def test_truncated_body_is_failure_naming_the_limit():
    stub = StubHttpClient.from_fixtures(
        {URL: {"status_code": 200, "body": '{"id": 1, "ti', "body_truncated": True, "body_bytes_limit": 13}}
    )
    rec = Recorder()

    result = _dispatcher(stub).request(URL, Item, ApiError, *rec.callbacks())

    assert isinstance(result, TransportFailure)
    assert result.category == ErrorCategory.RESPONSE_TOO_LARGE.value
    assert rec.calls == [("failure", "Response body exceeded the size limit (limit 13 bytes)")]


def test_recorded_fixtures_drive_dispatch():
    stub = StubHttpClient.from_fixtures(
        {
            URL: {"status_code": 200, "headers": {"Content-Type": "application/json"}, "body": {"id": 2, "title": "two"}},
            URL + "/gone": {"status_code": 410, "body": '{"error": "gone", "code": 410}'},
            URL + "/down": {"ok": False, "error_category": "TIMEOUT", "error_message": "timeout"},
        }
    )
    rec = Recorder()
    dispatcher = _dispatcher(stub)

    for url in (URL, URL + "/gone", URL + "/down"):
        dispatcher.request(url, Item, ApiError, *rec.callbacks())

    assert rec.calls == [
        ("success", Item(id=2, title="two")),
        ("error", ApiError(error="gone", code=410)),
        ("failure", "timeout"),
    ]


def test_close_from_worker_callback_does_not_join_itself(caplog):
    stub = StubHttpClient()
    stub.add_json(URL, '{"id": 1}')
    dispatcher = _dispatcher(stub)
    seen = []

    def close_on_success(value):
        seen.append(value)
        dispatcher.close()

    with caplog.at_level(logging.ERROR, logger="shapeclient.dispatch"):
        result = dispatcher.submit(URL, Item, ApiError, close_on_success, seen.append, seen.append).result(timeout=5)

    assert result == Success(Item(id=1))
    assert seen == [Item(id=1)]
    assert stub.closed is True
    assert caplog.records == []
