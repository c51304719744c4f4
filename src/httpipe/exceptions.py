from __future__ import annotations

import typing

_TYPE_REDUCE_RESULT = typing.Tuple[
    typing.Callable[..., object], typing.Tuple[object, ...]
]

# Base Exceptions


class HTTPipeError(Exception):
    """Base exception used by this module.

    Every error carries a ``kind`` discriminator so callers inspecting a
    failed :class:`~httpipe.connection.Connection` can branch on it without
    importing each class.
    """

    kind: typing.ClassVar[str] = "error"
    default_message: typing.ClassVar[str] = "HTTPipe encountered an error."

    def __init__(self, message: typing.Optional[str] = None) -> None:
        if message is None:
            message = self.default_message
        self.message = message
        super().__init__(message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.message,)


class TransportError(HTTPipeError):
    """Base exception for failures reported by a transport.

    The core never looks inside these. The underlying error, if any, is
    available as ``original_error``.
    """

    kind = "transport"
    default_message = "The transport was unable to complete the request."

    original_error: typing.Optional[BaseException]

    def __init__(
        self,
        message: typing.Optional[str] = None,
        error: typing.Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.original_error = error

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.message, self.original_error)


# Leaf Exceptions


class NilURLError(HTTPipeError):
    """Raised when a request is prepared without a URL."""

    kind = "nil_url"
    default_message = (
        "No URL is specified for the request. The request cannot be completed."
    )


class FileReadError(HTTPipeError):
    """Raised when a file body cannot be read.

    :param path: The path that was being read.
    :param error: The :class:`OSError` raised while reading it.
    """

    kind = "file_read"

    def __init__(self, path: str, error: OSError) -> None:
        self.path = path
        self.original_error = error
        reason = error.strerror or str(error)
        super().__init__(f"Could not read file {path!r}: {reason}")

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.path, self.original_error)


class AlreadyExecutedError(HTTPipeError):
    """Raised when a connection that already ran is executed again.

    Copy the connection before executing it if the same request has to be
    sent more than once.
    """

    kind = "already_executed"
    default_message = (
        "The connection has already been executed. "
        "Build a new connection to send the request again."
    )


class UnimplementedError(HTTPipeError):
    """Raised by the fallback transport used when none is configured."""

    kind = "unimplemented"
    default_message = (
        "No transport has been configured. Pass one to the connection with "
        "put_transport() or configure a default with set_default_config()."
    )


class InvalidResponseError(TransportError):
    """Raised when a transport returns something that is not a valid response."""

    default_message = "The transport returned an invalid response."


class ConnectionFailedError(TransportError):
    """Raised when the host could not be reached."""

    default_message = "The host could not be reached."


class ProtocolError(TransportError):
    """Raised when something unexpected happens mid-request/response."""

    default_message = "Failed to send the request to the host or read its response."
