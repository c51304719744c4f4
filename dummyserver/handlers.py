from __future__ import annotations

import json
import typing
from http.client import responses
from urllib.parse import urlsplit

from tornado import httputil
from tornado.web import RequestHandler

class Response:
    def __init__(
        self,
        body: str | bytes = "",
        status: str = "200 OK",
        headers: typing.Sequence[tuple[str, str]] | None = None,
        json: typing.Any | None = None,
    ) -> None:
        self.body = body
        self.status = status
        if json is not None:
            self.headers = headers or [("Content-type", "application/json")]
            self.body = json
        else:
            self.headers = headers or [("Content-type", "text/plain")]

    def __call__(self, request_handler: RequestHandler) -> None:
        status, reason = self.status.split(" ", 1)
        request_handler.set_status(int(status), reason)
        for header in {name for name, _ in self.headers}:
            request_handler.clear_header(header)
        for header, value in self.headers:
            request_handler.add_header(header, value)

        if isinstance(self.body, str):
            request_handler.write(self.body.encode())
        else:
            request_handler.write(self.body)


def request_params(request: httputil.HTTPServerRequest) -> dict[str, bytes]:
    params = {}
    for k, v in request.query_arguments.items():
        params[k] = next(iter(v))
    return params


class TestingApp(RequestHandler):
    """
    Simple app that performs various operations, useful for testing an HTTP
    library.

    Given any path, it will attempt to load a corresponding local method if
    it exists. Status code 200 indicates success, 400 indicates failure. Each
    method has its own conditions for success/failure.
    """

    def get(self) -> None:
        """Handle GET requests"""
        self._call_method()

    def post(self) -> None:
        """Handle POST requests"""
        self._call_method()

    def put(self) -> None:
        """Handle PUT requests"""
        self._call_method()

    def patch(self) -> None:
        """Handle PATCH requests"""
        self._call_method()

    def delete(self) -> None:
        """Handle DELETE requests"""
        self._call_method()

    def options(self) -> None:
        """Handle OPTIONS requests"""
        self._call_method()

    def _call_method(self) -> None:
        """Call the correct method in this class based on the incoming URI"""
        req = self.request

        path = req.path[:]
        if not path.startswith("/"):
            path = urlsplit(path).path

        target = path[1:].split("/", 1)[0]
        method = getattr(self, target, self.index)

        resp = method(req)
        resp(self)

    def index(self, _request: httputil.HTTPServerRequest) -> Response:
        "Render simple message"
        return Response("Dummy server!")

    def specific_method(self, request: httputil.HTTPServerRequest) -> Response:
        "Confirm that the request matches the desired method type"
        params = request_params(request)
        method = params.get("method")
        method_str = method.decode() if method else None

        if request.method != method_str:
            return Response(
                f"Wrong method: {method_str} != {request.method}",
                status="400 Bad Request",
            )
        return Response()

    def set_code(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with the status code given in ``status``"
        params = request_params(request)
        code = int(params.get("status", b"200"))
        return Response(f"Status {code}", status=f"{code} {responses[code]}")

    def not_found(self, request: httputil.HTTPServerRequest) -> Response:
        return Response("Not found", status="404 Not Found")

    def echo(self, request: httputil.HTTPServerRequest) -> Response:
        "Echo back the body"
        return Response(request.body)

    def echo_uri(self, request: httputil.HTTPServerRequest) -> Response:
        "Echo back the requested URI"
        assert request.uri is not None
        return Response(request.uri)

    def echo_headers(self, request: httputil.HTTPServerRequest) -> Response:
        "Echo back the request headers as JSON, with lower-cased names"
        return Response(
            json=json.dumps({k.lower(): v for k, v in request.headers.items()})
        )

    def multi_headers(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with a header that is sent twice"
        headers = [
            ("Content-type", "text/plain"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
        ]
        return Response("Cookies", headers=headers)

    def latin1(self, request: httputil.HTTPServerRequest) -> Response:
        "Respond with an ISO-8859-1 encoded body"
        headers = [("Content-type", "text/plain; charset=iso-8859-1")]
        return Response("caf\xe9".encode("latin-1"), headers=headers)
