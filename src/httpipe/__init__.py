"""
Composable HTTP request builder with pluggable transports
"""

from __future__ import annotations

# Set default logging handler to avoid "No handler found" warnings.
import logging
import typing
from logging import NullHandler

from . import exceptions
from ._version import __version__
from .config import Config, get_default_config, set_default_config
from .connection import Connection, ExecutionOptions, Status
from .request import (
    DuplicatePolicy,
    FileBody,
    FormBody,
    Request,
    encode_body,
    prepare_body,
    prepare_url,
)
from .response import Response
from .transport import (
    DEFAULT_TRANSPORT,
    FunctionTransport,
    Transport,
    UnimplementedTransport,
)

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "Config",
    "Connection",
    "DEFAULT_TRANSPORT",
    "DuplicatePolicy",
    "ExecutionOptions",
    "FileBody",
    "FormBody",
    "FunctionTransport",
    "Request",
    "Response",
    "Status",
    "Transport",
    "UnimplementedTransport",
    "add_stderr_logger",
    "encode_body",
    "exceptions",
    "get_default_config",
    "prepare_body",
    "prepare_url",
    "set_default_config",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(
    level: int = logging.DEBUG,
) -> logging.StreamHandler[typing.TextIO]:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if httpipe is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler
