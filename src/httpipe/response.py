from __future__ import annotations

import typing
from types import MappingProxyType

__all__ = ["Response"]

_TYPE_BODY = typing.Union[str, bytes]


class _ResponseBase(typing.NamedTuple):
    status_code: int
    headers: typing.Mapping[str, str]
    body: _TYPE_BODY


class Response(_ResponseBase):
    """
    HTTP response returned by a transport.

    Header names are stored in lower case. If a transport hands back the
    same header under different casings the values are folded into a comma
    separated list. A missing body is stored as ``""``.

    A status code outside of 2xx is not an error; checking it is left to
    the caller.

    :raises ValueError:
        If ``status_code`` is not an integer between 100 and 599
        or ``body`` is not ``str``, ``bytes`` or ``None``.
    """

    __slots__ = ()

    def __new__(
        cls,
        status_code: int,
        headers: typing.Optional[typing.Mapping[str, str]] = None,
        body: typing.Optional[_TYPE_BODY] = None,
    ) -> Response:
        if (
            isinstance(status_code, bool)
            or not isinstance(status_code, int)
            or not 100 <= status_code <= 599
        ):
            raise ValueError(
                "status_code must be an integer between 100 and 599, "
                f"got {status_code!r}"
            )

        folded: typing.Dict[str, str] = {}
        for name, value in (headers or {}).items():
            key = name.lower()
            if key in folded:
                folded[key] = f"{folded[key]}, {value}"
            else:
                folded[key] = value

        if body is None:
            body = ""
        elif not isinstance(body, (str, bytes)):
            raise ValueError(
                f"body must be str, bytes or None, got {type(body).__name__}"
            )

        return super().__new__(cls, status_code, MappingProxyType(folded), body)

    def get_header(
        self, name: str, default: typing.Optional[typing.Any] = None
    ) -> typing.Optional[typing.Any]:
        """Returns the value of header ``name``, or ``default`` if it is absent."""
        return self.headers.get(name.lower(), default)
