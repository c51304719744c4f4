from __future__ import annotations

import logging

import httpipe
from httpipe import add_stderr_logger


class TestPackage:
    def test_add_stderr_logger(self) -> None:
        handler = add_stderr_logger(level=logging.INFO)  # Don't actually print debug
        logger = logging.getLogger("httpipe")
        try:
            assert handler in logger.handlers
            assert logger.level == logging.INFO
            logger.debug("Testing add_stderr_logger")
        finally:
            logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_null_handler_installed(self) -> None:
        logger = logging.getLogger("httpipe")
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_exports(self) -> None:
        for name in httpipe.__all__:
            assert hasattr(httpipe, name), name
        assert isinstance(httpipe.__version__, str)
