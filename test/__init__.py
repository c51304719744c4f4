from __future__ import annotations

import typing

from httpipe.exceptions import TransportError


class RecordedRequest(typing.NamedTuple):
    method: str
    url: str
    body: typing.Any
    headers: typing.Mapping[str, str]
    options: typing.Mapping[str, typing.Any]


class CapturingTransport:
    """
    Transport stub that records every call and answers with a canned
    response, or raises ``error`` when one is given.
    """

    def __init__(
        self,
        status_code: int = 200,
        headers: typing.Mapping[str, str] | None = None,
        body: str | bytes | None = "",
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.body = body
        self.error = error
        self.requests: list[RecordedRequest] = []

    def execute_request(
        self,
        method: str,
        url: str,
        body: typing.Any,
        headers: typing.Mapping[str, str],
        options: typing.Mapping[str, typing.Any],
    ) -> tuple[int, dict[str, str], str | bytes | None]:
        self.requests.append(RecordedRequest(method, url, body, headers, options))
        if self.error is not None:
            raise self.error
        return self.status_code, self.headers, self.body

    @property
    def last_request(self) -> RecordedRequest:
        assert self.requests, "transport was never called"
        return self.requests[-1]


class FailingTransport(CapturingTransport):
    def __init__(self, message: str = "connection reset") -> None:
        super().__init__(error=TransportError(message))
