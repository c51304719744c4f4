from __future__ import annotations

import logging
import typing
from enum import Enum
from types import MappingProxyType

from .config import Config, get_default_config
from .exceptions import (
    AlreadyExecutedError,
    HTTPipeError,
    InvalidResponseError,
    TransportError,
)
from .request import _TYPE_BODY, _TYPE_HEADERS, DuplicatePolicy, Request
from .response import Response
from .transport import DEFAULT_TRANSPORT, _TYPE_DEFAULT, Transport, resolve_transport

__all__ = ["Connection", "ExecutionOptions", "Status"]

log = logging.getLogger(__name__)

_TYPE_TRANSPORT_SELECTOR = typing.Union[
    _TYPE_DEFAULT, Transport, typing.Callable[..., typing.Any]
]

_EMPTY: typing.Mapping[str, typing.Any] = MappingProxyType({})


class Status(Enum):
    """Execution status of a :class:`Connection`."""

    #: Still being composed. The only status :meth:`Connection.execute` accepts.
    UNEXECUTED = "unexecuted"
    #: The transport completed the request and returned a response. This says
    #: nothing about the response's status code.
    EXECUTED = "executed"
    #: Something went wrong, see :attr:`Connection.error`. The request may
    #: have failed before it ever reached the transport.
    FAILED = "failed"


class ExecutionOptions(typing.NamedTuple):
    #: Pass the request body to the transport exactly as it was set instead
    #: of encoding it first.
    defer_body_processing: bool = False


class Connection(typing.NamedTuple):
    """
    One HTTP request/response cycle.

    A connection pairs a :class:`~httpipe.request.Request` with the transport
    that will send it and, once executed, with either a
    :class:`~httpipe.response.Response` or the error that prevented one. Like
    the request it wraps, a connection is immutable: builder methods return
    updated copies, which makes them easy to chain::

        conn = (
            Connection()
            .put_req_method("POST")
            .put_req_url("https://httpbin.org/post")
            .put_req_header("Content-Type", "application/x-www-form-urlencoded")
            .put_req_body(FormBody.from_fields({"name": "httpipe"}))
            .put_transport(HTTPClientTransport())
        )
        conn = conn.execute()
        if conn.ok:
            print(conn.response.status_code)
        else:
            print(conn.error)

    A connection can be executed once. Executing it again returns a failed
    copy carrying :class:`~httpipe.exceptions.AlreadyExecutedError` and
    leaves the original alone.
    """

    status: Status = Status.UNEXECUTED
    request: Request = Request()
    response: typing.Optional[Response] = None
    error: typing.Optional[HTTPipeError] = None
    transport: _TYPE_TRANSPORT_SELECTOR = DEFAULT_TRANSPORT
    transport_options: typing.Mapping[str, typing.Any] = _EMPTY
    options: ExecutionOptions = ExecutionOptions()

    @property
    def ok(self) -> bool:
        """``True`` once the connection was executed without error."""
        return self.status is Status.EXECUTED

    def put_req_method(self, method: str) -> Connection:
        return self._replace(request=self.request.put_method(method))

    def put_req_url(self, url: typing.Optional[str]) -> Connection:
        """
        Sets the URL of the resource, without its query string.

        Use :meth:`put_req_param` for query parameters::

            conn = (
                Connection()
                .put_req_url("https://api.example.com/v1/phone/+5555555678")
                .put_req_param("account_sid", "abc123")
            )

        will request
        ``https://api.example.com/v1/phone/+5555555678?account_sid=abc123``.
        """
        return self._replace(request=self.request.put_url(url))

    def put_req_body(self, body: _TYPE_BODY) -> Connection:
        """
        Sets the request body. See :meth:`httpipe.request.Request.put_body`.

        No ``Content-Type`` is derived from the body; set it with
        :meth:`put_req_header`.
        """
        return self._replace(request=self.request.put_body(body))

    def put_req_header(
        self,
        name: str,
        value: str,
        policy: DuplicatePolicy = DuplicatePolicy.DUPLICATES_OK,
    ) -> Connection:
        """
        Sets a request header, folding it into an existing value by default.
        See :meth:`httpipe.request.Request.put_header`.
        """
        return self._replace(request=self.request.put_header(name, value, policy))

    def clear_req_headers(self) -> Connection:
        return self._replace(request=self.request.clear_headers())

    def merge_req_headers(
        self,
        headers: typing.Union[_TYPE_HEADERS, typing.Iterable[typing.Tuple[str, str]]],
    ) -> Connection:
        """Sets every header in ``headers``, replacing existing values."""
        return self._replace(request=self.request.merge_headers(headers))

    def delete_req_header(self, name: str) -> Connection:
        return self._replace(request=self.request.delete_header(name))

    def put_req_param(
        self,
        name: typing.Any,
        value: typing.Any,
        policy: DuplicatePolicy = DuplicatePolicy.REPLACE_EXISTING,
    ) -> Connection:
        """
        Sets a query parameter, replacing an existing value by default.
        See :meth:`httpipe.request.Request.put_param`.
        """
        return self._replace(request=self.request.put_param(name, value, policy))

    def delete_req_param(self, name: typing.Any) -> Connection:
        return self._replace(request=self.request.delete_param(name))

    def put_req_authentication_basic(self, username: str, password: str) -> Connection:
        """Sets Basic credentials, replacing any ``Authorization`` header."""
        return self._replace(
            request=self.request.put_authentication_basic(username, password)
        )

    def put_transport(self, transport: _TYPE_TRANSPORT_SELECTOR) -> Connection:
        """
        Selects the transport for this connection.

        Pass :data:`~httpipe.transport.DEFAULT_TRANSPORT` to go back to the
        transport of the config used at execution time.
        """
        return self._replace(transport=transport)

    def put_transport_options(
        self,
        options: typing.Union[
            typing.Mapping[str, typing.Any],
            typing.Iterable[typing.Tuple[str, typing.Any]],
        ],
    ) -> Connection:
        """
        Replaces the options handed to the transport. Which options exist is
        up to the transport.
        """
        return self._replace(transport_options=MappingProxyType(dict(options)))

    def defer_body_processing(self, defer: bool = True) -> Connection:
        """
        Turns deferred body processing on or off for this connection.

        By default the body is encoded before the transport sees it, so a
        ``FormBody.from_fields({"name": "httpipe"})`` arrives as
        ``"name=httpipe"``. Some transports handle such bodies natively; with
        deferment on they receive the ``FormBody`` itself. Deferment is also
        on whenever the executing :class:`~httpipe.config.Config` enables it.
        """
        options = self.options._replace(defer_body_processing=defer)
        return self._replace(options=options)

    def get_resp_header(
        self, name: str, default: typing.Optional[typing.Any] = None
    ) -> typing.Optional[typing.Any]:
        """Returns a response header, or ``default`` if absent or not executed."""
        if self.response is None:
            return default
        return self.response.get_header(name, default)

    def execute(self, config: typing.Optional[Config] = None) -> Connection:
        """
        Sends the request and returns the executed connection.

        The URL and body are prepared first; if the URL is missing or the body
        can't be encoded the transport is never called. Otherwise the
        transport's outcome is recorded. This method does not raise for
        request failures: check :attr:`status` (or :attr:`ok`) and
        :attr:`error` on the returned connection.

        :param config:
            Defaults to :func:`~httpipe.config.get_default_config`.

        :raises TypeError:
            If the selected transport is neither a transport nor a callable.
            This is a programming error and is not recorded on the connection.
        """
        if self.status is not Status.UNEXECUTED:
            log.debug(
                "Not executing connection with status %r again", self.status.value
            )
            return self._fail(AlreadyExecutedError())

        if config is None:
            config = get_default_config()

        transport = resolve_transport(self.transport, config)
        defer_body = (
            self.options.defer_body_processing or config.defer_body_processing
        )
        request = self.request

        try:
            url = request.prepare_url()
            body = request.prepare_body(defer_body)
        except HTTPipeError as e:
            log.debug("Failed to prepare %s request: %s", request.method, e)
            return self._fail(e)

        log.debug("Executing %s %s using %r", request.method, url, transport)
        try:
            result = transport.execute_request(
                request.method,
                url,
                body,
                dict(request.headers),
                dict(self.transport_options),
            )
        except HTTPipeError as e:
            log.debug("%s %s failed: %r", request.method, url, e)
            return self._fail(e)
        except OSError as e:
            log.debug("%s %s failed: %r", request.method, url, e)
            error = TransportError(f"Transport raised {e!r}", e)
            error.__cause__ = e
            return self._fail(error)

        try:
            status_code, headers, resp_body = result
            response = Response(status_code, headers, resp_body)
        except (TypeError, ValueError, AttributeError) as e:
            error = InvalidResponseError(
                f"Transport returned an invalid response: {result!r}", e
            )
            error.__cause__ = e
            return self._fail(error)

        log.debug('"%s %s" %s', request.method, url, response.status_code)
        return self._replace(status=Status.EXECUTED, response=response, error=None)

    def execute_or_raise(self, config: typing.Optional[Config] = None) -> Connection:
        """
        Like :meth:`execute`, but raises the error of a failed connection.

        Only failures to complete the request raise. A response with an error
        status code such as 404 or 500 is returned normally.

        :raises HTTPipeError: the error recorded on the failed connection.
        """
        conn = self.execute(config)
        if conn.error is not None:
            raise conn.error
        return conn

    def _fail(self, error: HTTPipeError) -> Connection:
        return self._replace(status=Status.FAILED, response=None, error=error)
