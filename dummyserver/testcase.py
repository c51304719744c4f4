from __future__ import annotations

import asyncio
import contextlib
import typing

import tornado.httpserver
import tornado.web

from dummyserver.handlers import TestingApp
from dummyserver.server import run_loop_in_thread, run_tornado_app


class HTTPDummyServerTestCase:
    """A simple HTTP server that runs when your test class runs

    Have your test class inherit from this one, and then a simple server
    will start when your tests run, and automatically shut down when they
    complete. For examples of what test requests you can send to the server,
    see the TestingApp in dummyserver/handlers.py.
    """

    scheme = "http"
    host = "127.0.0.1"

    server: typing.ClassVar[tornado.httpserver.HTTPServer]
    port: typing.ClassVar[int]
    io_loop_stack: typing.ClassVar[contextlib.ExitStack]

    @classmethod
    def _start_server(cls) -> None:
        with contextlib.ExitStack() as stack:
            io_loop = stack.enter_context(run_loop_in_thread())

            async def run_app() -> None:
                app = tornado.web.Application([(r".*", TestingApp)])
                cls.server, cls.port = run_tornado_app(app, cls.host)

            asyncio.run_coroutine_threadsafe(
                run_app(), io_loop.asyncio_loop  # type: ignore[attr-defined]
            ).result()
            cls.io_loop_stack = stack.pop_all()

    @classmethod
    def _stop_server(cls) -> None:
        cls.io_loop_stack.close()

    @classmethod
    def setup_class(cls) -> None:
        cls._start_server()

    @classmethod
    def teardown_class(cls) -> None:
        cls._stop_server()

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"
