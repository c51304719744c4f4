from __future__ import annotations

import logging
from pathlib import Path
from unittest import mock

import pytest

from httpipe.config import Config, set_default_config
from httpipe.connection import Connection, ExecutionOptions, Status
from httpipe.exceptions import (
    AlreadyExecutedError,
    FileReadError,
    HTTPipeError,
    InvalidResponseError,
    NilURLError,
    TransportError,
    UnimplementedError,
)
from httpipe.request import DuplicatePolicy, FileBody, FormBody, Request
from httpipe.response import Response
from httpipe.transport import DEFAULT_TRANSPORT

from . import CapturingTransport, FailingTransport


class TestNewConnection:
    def test_defaults(self) -> None:
        conn = Connection()

        assert conn.status is Status.UNEXECUTED
        assert conn.request == Request()
        assert conn.response is None
        assert conn.error is None
        assert conn.transport is DEFAULT_TRANSPORT
        assert dict(conn.transport_options) == {}
        assert conn.options == ExecutionOptions(defer_body_processing=False)
        assert not conn.ok

    def test_builders_update_request(self) -> None:
        conn = (
            Connection()
            .put_req_method("POST")
            .put_req_url("http://x/")
            .put_req_body("payload")
            .put_req_header("Accept", "text/html")
            .put_req_param("q", "1")
        )

        assert conn.request.method == "POST"
        assert conn.request.url == "http://x/"
        assert dict(conn.request.headers) == {"accept": "text/html"}
        assert dict(conn.request.params) == {"q": ("1",)}
        assert conn.request.body == "payload"

    def test_builders_do_not_mutate(self) -> None:
        conn = Connection()
        conn.put_req_url("http://x/").put_req_header("Accept", "*/*")

        assert conn == Connection()

    def test_header_builders(self) -> None:
        conn = (
            Connection()
            .put_req_header("Accept-Encoding", "gzip")
            .put_req_header("Accept-Encoding", "deflate")
            .put_req_header("Content-Type", "application/json")
        )
        assert dict(conn.request.headers) == {
            "accept-encoding": "gzip, deflate",
            "content-type": "application/json",
        }

        deleted = conn.delete_req_header("Accept-Encoding")
        assert dict(deleted.request.headers) == {"content-type": "application/json"}

        merged = conn.merge_req_headers({"Accept-Encoding": "br"})
        assert merged.request.headers["accept-encoding"] == "br"

        assert dict(conn.clear_req_headers().request.headers) == {}

    def test_header_policy(self) -> None:
        conn = (
            Connection()
            .put_req_header("Accept", "a")
            .put_req_header("Accept", "b", DuplicatePolicy.PREFER_EXISTING)
        )
        assert conn.request.headers["accept"] == "a"

    def test_param_builders(self) -> None:
        conn = (
            Connection()
            .put_req_param("q", "a", DuplicatePolicy.DUPLICATES_OK)
            .put_req_param("q", "b", DuplicatePolicy.DUPLICATES_OK)
            .put_req_param("tbas", "0")
        )
        assert dict(conn.request.params) == {"q": ("b", "a"), "tbas": ("0",)}
        assert dict(conn.delete_req_param("q").request.params) == {"tbas": ("0",)}

    def test_authentication_basic(self) -> None:
        conn = Connection().put_req_authentication_basic("user", "pass")
        assert conn.request.headers["authorization"] == "Basic dXNlcjpwYXNz"

    def test_transport_builders(self, transport: CapturingTransport) -> None:
        conn = Connection().put_transport(transport).put_transport_options(
            {"timeout": 5}
        )

        assert conn.transport is transport
        assert dict(conn.transport_options) == {"timeout": 5}
        assert conn.put_transport(DEFAULT_TRANSPORT).transport is DEFAULT_TRANSPORT

    def test_transport_options_from_pairs(self) -> None:
        conn = Connection().put_transport_options([("timeout", 1), ("retries", 0)])
        assert dict(conn.transport_options) == {"timeout": 1, "retries": 0}

    def test_defer_body_processing(self) -> None:
        conn = Connection().defer_body_processing()
        assert conn.options.defer_body_processing is True
        assert conn.defer_body_processing(False).options.defer_body_processing is False


class TestExecute:
    def test_success(self, transport: CapturingTransport) -> None:
        conn = (
            Connection()
            .put_req_method("GET")
            .put_req_url("http://x/")
            .put_transport(transport)
            .execute()
        )

        assert conn.ok
        assert conn.status is Status.EXECUTED
        assert conn.error is None
        assert isinstance(conn.response, Response)
        assert conn.response.status_code == 204
        assert dict(conn.response.headers) == {}
        assert conn.response.body == ""

    def test_transport_receives_prepared_request(self) -> None:
        transport = CapturingTransport()
        (
            Connection()
            .put_req_method("POST")
            .put_req_url("https://h/search")
            .put_req_param("q", "a b")
            .put_req_header("Content-Type", "application/x-www-form-urlencoded")
            .put_req_body(FormBody([("name", "httpipe"), ("lang", "Python")]))
            .put_transport(transport)
            .put_transport_options({"timeout": 3})
            .execute()
        )

        assert transport.last_request.method == "POST"
        assert transport.last_request.url == "https://h/search?q=a+b"
        assert transport.last_request.body == "name=httpipe&lang=Python"
        assert transport.last_request.headers == {
            "content-type": "application/x-www-form-urlencoded"
        }
        assert transport.last_request.options == {"timeout": 3}

    def test_folded_header_reaches_transport(self) -> None:
        transport = CapturingTransport()
        (
            Connection()
            .put_req_url("http://x/")
            .put_req_header("Accept-Encoding", "gzip")
            .put_req_header("Accept-Encoding", "deflate")
            .put_transport(transport)
            .execute()
        )
        assert transport.last_request.headers["accept-encoding"] == "gzip, deflate"

    def test_nil_body_is_sent_empty(self, transport: CapturingTransport) -> None:
        Connection().put_req_url("http://x/").put_transport(transport).execute()
        assert transport.last_request.body == ""

    def test_file_body(self, transport: CapturingTransport, body_file: Path) -> None:
        (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(FileBody(body_file))
            .put_transport(transport)
            .execute()
        )
        assert transport.last_request.body == b"file contents\n"

    def test_response_values(self) -> None:
        transport = CapturingTransport(
            200, {"Content-Type": "application/json"}, '{"ok": true}'
        )
        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.response.body == '{"ok": true}'
        assert conn.get_resp_header("content-type") == "application/json"
        assert conn.get_resp_header("Content-Type") == "application/json"
        assert conn.get_resp_header("etag", "missing") == "missing"

    def test_error_status_code_is_not_a_failure(self) -> None:
        transport = CapturingTransport(500, {}, "oops")
        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.status is Status.EXECUTED
        assert conn.response.status_code == 500

    def test_original_connection_is_untouched(
        self, transport: CapturingTransport
    ) -> None:
        conn = Connection().put_req_url("http://x/").put_transport(transport)
        executed = conn.execute()

        assert executed.status is Status.EXECUTED
        assert conn.status is Status.UNEXECUTED
        assert conn.response is None


class TestExecuteFailures:
    def test_nil_url(self, transport: CapturingTransport) -> None:
        conn = Connection().put_transport(transport).execute()

        assert conn.status is Status.FAILED
        assert isinstance(conn.error, NilURLError)
        assert conn.response is None
        assert transport.requests == []

    def test_unreadable_file(
        self, transport: CapturingTransport, tmp_path: Path
    ) -> None:
        conn = (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(FileBody(tmp_path / "missing"))
            .put_transport(transport)
            .execute()
        )

        assert conn.status is Status.FAILED
        assert isinstance(conn.error, FileReadError)
        assert transport.requests == []

    def test_transport_error(self) -> None:
        transport = FailingTransport("connection reset")
        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.status is Status.FAILED
        assert isinstance(conn.error, TransportError)
        assert str(conn.error) == "connection reset"
        assert conn.response is None

    def test_transport_os_error_is_wrapped(self) -> None:
        error = ConnectionRefusedError(111, "Connection refused")
        transport = CapturingTransport(error=error)
        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.status is Status.FAILED
        assert type(conn.error) is TransportError
        assert conn.error.original_error is error
        assert conn.error.kind == "transport"

    def test_other_transport_exceptions_propagate(self) -> None:
        transport = CapturingTransport(error=KeyError("bug"))
        conn = Connection().put_req_url("http://x/").put_transport(transport)

        with pytest.raises(KeyError):
            conn.execute()

    @pytest.mark.parametrize(
        "result",
        [
            None,
            (200, {}),
            (999, {}, ""),
            ("200", {}, ""),
            (200, [("a", "b")], ""),
            (200, {}, 5),
            (200, {}, ["chunk"]),
        ],
    )
    def test_invalid_transport_result(self, result: object) -> None:
        def transport(*args: object) -> object:
            return result

        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.status is Status.FAILED
        assert isinstance(conn.error, InvalidResponseError)
        assert isinstance(conn.error, TransportError)

    def test_transport_result_without_headers(self) -> None:
        def transport(*args: object) -> object:
            return 200, None, None

        conn = Connection().put_req_url("http://x/").put_transport(transport).execute()

        assert conn.ok
        assert dict(conn.response.headers) == {}
        assert conn.response.body == ""

    def test_unimplemented_default_transport(self) -> None:
        conn = Connection().put_req_url("http://x/").execute()

        assert conn.status is Status.FAILED
        assert isinstance(conn.error, UnimplementedError)
        assert conn.error.kind == "unimplemented"


class TestAlreadyExecuted:
    def test_second_execute_fails(self, transport: CapturingTransport) -> None:
        first = Connection().put_req_url("http://x/").put_transport(transport).execute()
        second = first.execute()

        assert second.status is Status.FAILED
        assert isinstance(second.error, AlreadyExecutedError)
        assert second.response is None
        assert len(transport.requests) == 1

    def test_first_result_is_kept(self, transport: CapturingTransport) -> None:
        first = Connection().put_req_url("http://x/").put_transport(transport).execute()
        first.execute()

        assert first.status is Status.EXECUTED
        assert first.response.status_code == 204
        assert first.error is None

    def test_failed_connection_cannot_be_retried(
        self, transport: CapturingTransport
    ) -> None:
        failed = Connection().put_transport(transport).execute()
        again = failed.put_req_url("http://x/").execute()

        assert isinstance(failed.error, NilURLError)
        assert isinstance(again.error, AlreadyExecutedError)
        assert transport.requests == []


class TestExecuteOrRaise:
    def test_returns_executed_connection(self, transport: CapturingTransport) -> None:
        conn = (
            Connection()
            .put_req_url("http://x/")
            .put_transport(transport)
            .execute_or_raise()
        )
        assert conn.status is Status.EXECUTED
        assert conn.response.status_code == 204

    def test_nil_url_raises(self, transport: CapturingTransport) -> None:
        with pytest.raises(NilURLError):
            Connection().put_transport(transport).execute_or_raise()

    def test_transport_error_raises(self) -> None:
        transport = FailingTransport("boom")
        conn = Connection().put_req_url("http://x/").put_transport(transport)

        with pytest.raises(TransportError, match="boom"):
            conn.execute_or_raise()

    def test_already_executed_raises(self, transport: CapturingTransport) -> None:
        conn = Connection().put_req_url("http://x/").put_transport(transport)
        executed = conn.execute_or_raise()

        with pytest.raises(AlreadyExecutedError):
            executed.execute_or_raise()

    def test_error_status_does_not_raise(self) -> None:
        transport = CapturingTransport(404, {}, "Not found")
        conn = (
            Connection()
            .put_req_url("http://x/")
            .put_transport(transport)
            .execute_or_raise()
        )
        assert conn.response.status_code == 404

    def test_raises_base_class(self) -> None:
        with pytest.raises(HTTPipeError):
            Connection().put_req_url("http://x/").execute_or_raise()


class TestTransportSelection:
    def test_default_transport_from_config(self, transport: CapturingTransport) -> None:
        config = Config(transport=transport)
        conn = Connection().put_req_url("http://x/").execute(config)

        assert conn.ok
        assert len(transport.requests) == 1

    def test_default_transport_from_default_config(
        self, transport: CapturingTransport
    ) -> None:
        set_default_config(Config(transport=transport))
        conn = Connection().put_req_url("http://x/").execute()

        assert conn.ok
        assert len(transport.requests) == 1

    def test_explicit_transport_wins(self, transport: CapturingTransport) -> None:
        configured = CapturingTransport()
        conn = (
            Connection()
            .put_req_url("http://x/")
            .put_transport(transport)
            .execute(Config(transport=configured))
        )

        assert conn.response.status_code == 204
        assert configured.requests == []

    def test_function_transport(self) -> None:
        calls = []

        def transport(
            method: str, url: str, body: object, headers: object, options: object
        ) -> tuple[int, dict[str, str], str]:
            calls.append((method, url, body, headers, options))
            return 201, {"Location": "/things/1"}, "created"

        conn = (
            Connection()
            .put_req_method("PUT")
            .put_req_url("http://x/things")
            .put_req_body("{}")
            .put_transport(transport)
            .execute()
        )

        assert calls == [("PUT", "http://x/things", "{}", {}, {})]
        assert conn.get_resp_header("location") == "/things/1"

    def test_invalid_transport(self) -> None:
        conn = Connection().put_req_url("http://x/").put_transport(object())
        with pytest.raises(TypeError):
            conn.execute()


class TestDeferBodyProcessing:
    def test_local_option(self, transport: CapturingTransport) -> None:
        body = FormBody([("a", "1")])
        (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(body)
            .defer_body_processing()
            .put_transport(transport)
            .execute()
        )
        assert transport.last_request.body is body

    def test_config_option(self, transport: CapturingTransport) -> None:
        body = FormBody([("a", "1")])
        (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(body)
            .put_transport(transport)
            .execute(Config(defer_body_processing=True))
        )
        assert transport.last_request.body is body

    def test_config_option_cannot_be_disabled_locally(
        self, transport: CapturingTransport
    ) -> None:
        body = FormBody([("a", "1")])
        (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(body)
            .defer_body_processing(False)
            .put_transport(transport)
            .execute(Config(defer_body_processing=True))
        )
        assert transport.last_request.body is body

    def test_deferred_file_is_not_read(
        self, transport: CapturingTransport, tmp_path: Path
    ) -> None:
        body = FileBody(tmp_path / "missing")
        conn = (
            Connection()
            .put_req_url("http://x/")
            .put_req_body(body)
            .defer_body_processing()
            .put_transport(transport)
            .execute()
        )

        assert conn.ok
        assert transport.last_request.body is body

    def test_deferred_nil_body(self, transport: CapturingTransport) -> None:
        (
            Connection()
            .put_req_url("http://x/")
            .defer_body_processing()
            .put_transport(transport)
            .execute()
        )
        assert transport.last_request.body is None


class TestLogging:
    def test_execution_is_logged(
        self, transport: CapturingTransport, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="httpipe.connection"):
            Connection().put_req_url("http://x/").put_transport(transport).execute()

        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("Executing GET http://x/") for m in messages)
        assert '"GET http://x/" 204' in messages

    def test_preparation_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="httpipe.connection"):
            Connection().execute()

        assert any(
            r.getMessage().startswith("Failed to prepare GET request")
            for r in caplog.records
        )

    def test_transport_is_not_called_twice(self) -> None:
        transport = mock.Mock()
        transport.execute_request.return_value = (200, {}, "")
        conn = Connection().put_req_url("http://x/").put_transport(transport)

        conn.execute().execute()

        transport.execute_request.assert_called_once_with(
            "GET", "http://x/", "", {}, {}
        )
