"""
Transport built on the standard library's :mod:`http.client`.

Every request opens a new connection which is closed once the response has
been read. There is no pooling, retrying or redirect handling. Use it like
this::

    import httpipe
    from httpipe.contrib.httpclient import HTTPClientTransport

    httpipe.set_default_config(httpipe.Config(transport=HTTPClientTransport()))

    conn = httpipe.Connection().put_req_url("http://example.com/").execute()

Supported transport options:

``timeout``
    Socket timeout in seconds, overriding the one given to the transport.

``context``
    :class:`ssl.SSLContext` used for ``https`` URLs.
"""

from __future__ import annotations

import http.client
import logging
import socket
import typing
from urllib.parse import urlsplit

from .._version import __version__
from ..exceptions import ConnectionFailedError, ProtocolError, TransportError
from ..request import FileBody, FormBody, encode_body

if typing.TYPE_CHECKING:
    import ssl

    from ..request import _TYPE_BODY

__all__ = ["HTTPClientTransport"]

log = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _get_default_user_agent() -> str:
    return f"python-httpipe/{__version__}"


class HTTPClientTransport:
    """
    :class:`~httpipe.transport.Transport` using :mod:`http.client`.

    :param timeout:
        Socket timeout in seconds. ``None`` uses the global socket default.

    :param context:
        :class:`ssl.SSLContext` for ``https`` URLs. ``None`` lets
        :mod:`http.client` create a default, verifying context.

    :param user_agent:
        ``User-Agent`` sent when the request does not set one.
    """

    def __init__(
        self,
        timeout: typing.Optional[float] = None,
        context: typing.Optional[ssl.SSLContext] = None,
        user_agent: typing.Optional[str] = None,
    ) -> None:
        self.timeout = timeout
        self.context = context
        self.user_agent = user_agent or _get_default_user_agent()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout!r})"

    def execute_request(
        self,
        method: str,
        url: str,
        body: _TYPE_BODY,
        headers: typing.Mapping[str, str],
        options: typing.Mapping[str, typing.Any],
    ) -> typing.Tuple[int, typing.Dict[str, str], str]:
        parsed = urlsplit(url)
        scheme = (parsed.scheme or "http").lower()
        if scheme not in _DEFAULT_PORTS:
            raise TransportError(f"Unsupported URL scheme {scheme!r} in {url!r}")
        if not parsed.hostname:
            raise TransportError(f"No host in URL {url!r}")
        try:
            port = parsed.port
        except ValueError as e:
            raise TransportError(f"Invalid port in URL {url!r}: {e}", e) from e

        request_uri = parsed.path or "/"
        if parsed.query:
            request_uri += "?" + parsed.query

        payload = self._encode_payload(body)

        request_headers = dict(headers)
        if "user-agent" not in request_headers:
            request_headers["user-agent"] = self.user_agent

        conn = self._new_conn(scheme, parsed.hostname, port, options)
        try:
            try:
                conn.connect()
            except (OSError, ValueError) as e:
                raise ConnectionFailedError(
                    f"Failed to establish a new connection: {e}", e
                ) from e

            try:
                conn.request(
                    method, request_uri, body=payload, headers=request_headers
                )
                httplib_response = conn.getresponse()
                data = httplib_response.read()
            except (OSError, ValueError, http.client.HTTPException) as e:
                # ValueError covers headers http.client refuses to encode.
                raise ProtocolError(f"Connection aborted: {e!r}", e) from e

            log.debug(
                '%s://%s:%s "%s %s HTTP/1.1" %s %s',
                scheme,
                parsed.hostname,
                port or _DEFAULT_PORTS[scheme],
                method,
                request_uri,
                httplib_response.status,
                len(data),
            )

            return (
                httplib_response.status,
                _fold_headers(httplib_response.getheaders()),
                _decode_body(data, httplib_response.msg.get_content_charset()),
            )
        finally:
            conn.close()

    def _new_conn(
        self,
        scheme: str,
        host: str,
        port: typing.Optional[int],
        options: typing.Mapping[str, typing.Any],
    ) -> http.client.HTTPConnection:
        timeout = options.get("timeout", self.timeout)
        if timeout is None:
            timeout = socket.getdefaulttimeout()

        if scheme == "https":
            return http.client.HTTPSConnection(
                host,
                port,
                timeout=timeout,
                context=options.get("context", self.context),
            )
        return http.client.HTTPConnection(host, port, timeout=timeout)

    @staticmethod
    def _encode_payload(body: _TYPE_BODY) -> typing.Optional[bytes]:
        # Deferred structured bodies are encoded here, the same way the core
        # would have done it.
        if isinstance(body, (FormBody, FileBody)) or body is None:
            body = encode_body(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return body or None


def _fold_headers(
    headers: typing.Iterable[typing.Tuple[str, str]]
) -> typing.Dict[str, str]:
    folded: typing.Dict[str, str] = {}
    for name, value in headers:
        key = name.lower()
        if key in folded:
            folded[key] = f"{folded[key]}, {value}"
        else:
            folded[key] = value
    return folded


def _decode_body(data: bytes, charset: typing.Optional[str]) -> str:
    try:
        return data.decode(charset or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset
        return data.decode("utf-8", errors="replace")
