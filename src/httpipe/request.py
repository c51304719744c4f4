from __future__ import annotations

import os
import typing
from base64 import b64encode
from enum import Enum
from types import MappingProxyType
from urllib.parse import urlencode

from .exceptions import FileReadError, NilURLError

__all__ = [
    "DuplicatePolicy",
    "FileBody",
    "FormBody",
    "Request",
    "encode_body",
    "prepare_body",
    "prepare_url",
]


class DuplicatePolicy(Enum):
    """How a new header or query parameter value treats an existing one."""

    #: Keep both values. Headers are folded into ``"old, new"``, query
    #: parameters get the new value put in front of the existing ones.
    DUPLICATES_OK = "duplicates_ok"
    #: Keep the existing value and discard the new one.
    PREFER_EXISTING = "prefer_existing"
    #: Overwrite the existing value.
    REPLACE_EXISTING = "replace_existing"


class FormBody(typing.NamedTuple):
    """
    Body that is sent ``application/x-www-form-urlencoded``.

    ``fields`` keeps the order it was given in, which is the order the pairs
    appear in the encoded body. A mapping is accepted and converted to its
    items. Setting the ``Content-Type`` header is left to the caller.
    """

    fields: typing.Tuple[typing.Tuple[str, typing.Any], ...]

    @classmethod
    def from_fields(cls, fields: _TYPE_FORM_FIELDS) -> FormBody:
        if isinstance(fields, typing.Mapping):
            fields = fields.items()
        return cls(tuple((str(k), v) for k, v in fields))


class FileBody(typing.NamedTuple):
    """
    Body whose payload is the full content of the file at ``path``.

    The file is only opened when the body is encoded. This is not a
    ``multipart/form-data`` upload.
    """

    path: typing.Union[str, "os.PathLike[str]"]


_TYPE_FORM_FIELDS = typing.Union[
    typing.Mapping[str, typing.Any], typing.Iterable[typing.Tuple[str, typing.Any]]
]
_TYPE_BODY = typing.Union[None, str, bytes, FormBody, FileBody]
_TYPE_ENCODED_BODY = typing.Union[str, bytes]
_TYPE_HEADERS = typing.Mapping[str, str]
_TYPE_PARAMS = typing.Mapping[str, typing.Tuple[typing.Any, ...]]

_EMPTY: typing.Mapping[str, typing.Any] = MappingProxyType({})


class Request(typing.NamedTuple):
    """
    Description of one HTTP request.

    A ``Request`` is never modified in place. Every ``put_*``, ``delete_*``,
    ``clear_*`` and ``merge_*`` method returns a new request, which makes it
    safe to share partially built requests between threads or to use one as
    a template for several others.

    Header names are stored in lower case so that ``Accept`` and ``accept``
    refer to the same header. Query parameter names keep their case and map
    to a tuple of values, since a key may be repeated in a query string::

        >>> req = Request().put_url("https://example.com/search")
        >>> req = req.put_param("q", "httpipe python")
        >>> req = req.put_header("Accept", "text/html")
        >>> req.prepare_url()
        'https://example.com/search?q=httpipe+python'
        >>> dict(req.headers)
        {'accept': 'text/html'}
    """

    method: str = "GET"
    url: typing.Optional[str] = None
    headers: _TYPE_HEADERS = _EMPTY
    params: _TYPE_PARAMS = _EMPTY
    body: _TYPE_BODY = None

    def put_method(self, method: str) -> Request:
        """Sets the HTTP method. Extension methods are passed through as-is."""
        return self._replace(method=method)

    def put_url(self, url: typing.Optional[str]) -> Request:
        """
        Sets the URL, including scheme, host and path.

        Query parameters should be added with :meth:`put_param` rather than
        written into the URL. A missing URL is only reported when the request
        is prepared.
        """
        return self._replace(url=url)

    def put_body(self, body: _TYPE_BODY) -> Request:
        """
        Sets the body, replacing any existing one.

        ``None`` is sent as an empty body. :class:`FormBody` and
        :class:`FileBody` are encoded when the request is prepared.
        """
        return self._replace(body=body)

    def put_header(
        self,
        name: str,
        value: str,
        policy: DuplicatePolicy = DuplicatePolicy.DUPLICATES_OK,
    ) -> Request:
        """
        Adds a header to the request.

        By default a header that is already set is not replaced; instead the
        values are folded into a comma separated list as allowed by
        `RFC 7230 Section 3.2.2
        <https://tools.ietf.org/html/rfc7230#section-3.2.2>`_::

            >>> req = Request().put_header("Accept-Encoding", "gzip")
            >>> req = req.put_header("accept-encoding", "deflate")
            >>> req.headers["accept-encoding"]
            'gzip, deflate'

        :param policy:
            :attr:`DuplicatePolicy.REPLACE_EXISTING` always overwrites,
            :attr:`DuplicatePolicy.PREFER_EXISTING` only sets the header when
            it is absent.
        """
        key = name.lower()
        headers = dict(self.headers)
        existing = headers.get(key)

        if existing is None or policy is DuplicatePolicy.REPLACE_EXISTING:
            headers[key] = value
        elif policy is DuplicatePolicy.DUPLICATES_OK:
            headers[key] = f"{existing}, {value}"
        else:
            return self

        return self._replace(headers=MappingProxyType(headers))

    def clear_headers(self) -> Request:
        """
        Removes every header.

        Transports may still send headers of their own, such as ``Host``.
        """
        return self._replace(headers=_EMPTY)

    def merge_headers(
        self,
        headers: typing.Union[_TYPE_HEADERS, typing.Iterable[typing.Tuple[str, str]]],
    ) -> Request:
        """Sets every header in ``headers``, replacing existing values."""
        if isinstance(headers, typing.Mapping):
            headers = headers.items()

        request = self
        for name, value in headers:
            request = request.put_header(
                name, value, DuplicatePolicy.REPLACE_EXISTING
            )
        return request

    def delete_header(self, name: str) -> Request:
        key = name.lower()
        if key not in self.headers:
            return self
        headers = dict(self.headers)
        del headers[key]
        return self._replace(headers=MappingProxyType(headers))

    def put_param(
        self,
        name: typing.Any,
        value: typing.Any,
        policy: DuplicatePolicy = DuplicatePolicy.REPLACE_EXISTING,
    ) -> Request:
        """
        Adds a query parameter.

        Unlike headers, an existing parameter is replaced by default. With
        :attr:`DuplicatePolicy.DUPLICATES_OK` the key is repeated in the
        query string, most recently added value first::

            >>> req = Request().put_url("https://example.com/")
            >>> req = req.put_param("tag", "a", DuplicatePolicy.DUPLICATES_OK)
            >>> req = req.put_param("tag", "b", DuplicatePolicy.DUPLICATES_OK)
            >>> req.prepare_url()
            'https://example.com/?tag=b&tag=a'

        :param name:
            Converted with :func:`str`, so enum members and numbers work.
        """
        key = str(name)
        params = dict(self.params)
        existing = params.get(key)

        if existing is None or policy is DuplicatePolicy.REPLACE_EXISTING:
            params[key] = (value,)
        elif policy is DuplicatePolicy.DUPLICATES_OK:
            params[key] = (value,) + tuple(existing)
        else:
            return self

        return self._replace(params=MappingProxyType(params))

    def delete_param(self, name: typing.Any) -> Request:
        key = str(name)
        if key not in self.params:
            return self
        params = dict(self.params)
        del params[key]
        return self._replace(params=MappingProxyType(params))

    def put_authentication_basic(self, username: str, password: str) -> Request:
        """
        Sets the ``Authorization`` header for HTTP Basic authentication,
        replacing any existing one.

        Prefer this to putting credentials into the URL.
        """
        credentials = b64encode(f"{username}:{password}".encode("utf-8")).decode()
        return self.put_header(
            "Authorization", f"Basic {credentials}", DuplicatePolicy.REPLACE_EXISTING
        )

    def prepare_url(self) -> str:
        """Returns :attr:`url` with :attr:`params` encoded into it."""
        return prepare_url(self.url, self.params)

    def prepare_body(self, defer: bool = False) -> typing.Union[_TYPE_BODY, bytes]:
        """Returns :attr:`body` ready to hand to a transport."""
        return prepare_body(self.body, defer)


def prepare_url(url: typing.Optional[str], params: _TYPE_PARAMS) -> str:
    """
    Combines ``url`` with the query parameters in ``params``.

    Each key is emitted once per value, in key insertion order. Values are
    form encoded, so spaces become ``+``. Nothing is appended when there are
    no parameters. The URL itself is not parsed or normalized.

    :raises NilURLError: if ``url`` is ``None``.
    """
    if url is None:
        raise NilURLError()

    query = urlencode(
        [(key, value) for key, values in params.items() for value in values]
    )
    if not query:
        return url
    return f"{url}?{query}"


def prepare_body(body: _TYPE_BODY, defer: bool) -> typing.Union[_TYPE_BODY, bytes]:
    """
    Returns ``body`` untouched when ``defer`` is true (the transport will
    process it), otherwise the result of :func:`encode_body`.
    """
    if defer:
        return body
    return encode_body(body)


def encode_body(body: _TYPE_BODY) -> _TYPE_ENCODED_BODY:
    """
    Encodes a request body.

    ``str`` and ``bytes`` are returned as-is and ``None`` becomes ``""``.
    A :class:`FormBody` is form encoded in the order of its pairs. A
    :class:`FileBody` is replaced by the file's content.

    Transports that process bodies themselves can call this for the forms
    they do not handle natively.

    :raises FileReadError: if the file of a :class:`FileBody` can't be read.
    """
    if body is None:
        return ""

    if isinstance(body, (str, bytes)):
        return body

    if isinstance(body, FormBody):
        return urlencode(body.fields)

    if isinstance(body, FileBody):
        path = os.fspath(body.path)
        try:
            with open(path, "rb") as fp:
                return fp.read()
        except OSError as e:
            raise FileReadError(path, e) from e

    raise TypeError(
        "body must be str, bytes, FormBody, FileBody or None, "
        f"not {type(body).__name__}"
    )
