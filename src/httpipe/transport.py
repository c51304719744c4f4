from __future__ import annotations

import typing
from enum import Enum

from .exceptions import UnimplementedError

if typing.TYPE_CHECKING:
    from .config import Config
    from .request import _TYPE_BODY

__all__ = [
    "DEFAULT_TRANSPORT",
    "FunctionTransport",
    "Transport",
    "UnimplementedTransport",
    "resolve_transport",
]

#: What a transport returns on success: status code, headers and body.
_TYPE_TRANSPORT_RESULT = typing.Tuple[
    int, typing.Mapping[str, str], typing.Union[str, bytes, None]
]
_TYPE_TRANSPORT_OPTIONS = typing.Mapping[str, typing.Any]


class _TYPE_DEFAULT(Enum):
    # This value should never be passed to a transport.
    token = -1


#: Selects the transport of the :class:`~httpipe.config.Config` in use
#: when the connection is executed.
DEFAULT_TRANSPORT: typing.Final[_TYPE_DEFAULT] = _TYPE_DEFAULT.token


class Transport(typing.Protocol):
    """
    Performs the network operation for a prepared request.

    The transport receives the request method, the URL with its query string
    already appended, the body, the headers (lower-cased names) and the
    connection's transport options, which are passed through uninterpreted.

    Unless body processing was deferred the body is already a ``str`` or
    ``bytes``. When it was deferred the body is passed exactly as set on the
    request, so a transport may receive a
    :class:`~httpipe.request.FormBody` or :class:`~httpipe.request.FileBody`
    and can fall back to :func:`~httpipe.request.encode_body` for the forms
    it does not handle itself.

    Transports return ``(status_code, headers, body)``. To report a failure
    they raise a :class:`~httpipe.exceptions.TransportError` (or another
    :class:`~httpipe.exceptions.HTTPipeError`); :class:`OSError` is wrapped
    in a :class:`~httpipe.exceptions.TransportError` by the connection.
    Retries, timeouts, redirects and connection reuse are the transport's
    business.
    """

    def execute_request(
        self,
        method: str,
        url: str,
        body: _TYPE_BODY,
        headers: typing.Mapping[str, str],
        options: _TYPE_TRANSPORT_OPTIONS,
    ) -> _TYPE_TRANSPORT_RESULT:
        ...


class UnimplementedTransport:
    """
    Transport that fails every request with
    :class:`~httpipe.exceptions.UnimplementedError`.

    Used when no transport is configured.
    """

    def execute_request(
        self,
        method: str,
        url: str,
        body: _TYPE_BODY,
        headers: typing.Mapping[str, str],
        options: _TYPE_TRANSPORT_OPTIONS,
    ) -> _TYPE_TRANSPORT_RESULT:
        raise UnimplementedError()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FunctionTransport:
    """Adapts a plain function with the transport signature to :class:`Transport`."""

    def __init__(
        self, func: typing.Callable[..., _TYPE_TRANSPORT_RESULT]
    ) -> None:
        self.func = func

    def execute_request(
        self,
        method: str,
        url: str,
        body: _TYPE_BODY,
        headers: typing.Mapping[str, str],
        options: _TYPE_TRANSPORT_OPTIONS,
    ) -> _TYPE_TRANSPORT_RESULT:
        return self.func(method, url, body, headers, options)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.func!r})"


def resolve_transport(
    selector: typing.Union[
        _TYPE_DEFAULT, Transport, typing.Callable[..., _TYPE_TRANSPORT_RESULT]
    ],
    config: Config,
) -> Transport:
    """
    Returns the transport a connection should use.

    :data:`DEFAULT_TRANSPORT` resolves to ``config.transport``, or to an
    :class:`UnimplementedTransport` when that is ``None``. Anything else is
    used as given, plain callables being wrapped in
    :class:`FunctionTransport`.
    """
    if selector is DEFAULT_TRANSPORT:
        transport = config.transport
        if transport is None:
            return UnimplementedTransport()
    else:
        transport = selector

    if hasattr(transport, "execute_request"):
        return typing.cast(Transport, transport)
    if callable(transport):
        return FunctionTransport(transport)
    raise TypeError(
        f"{transport!r} does not implement execute_request() and is not callable"
    )
