from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from .transport import Transport

__all__ = ["Config", "get_default_config", "set_default_config"]


class Config(typing.NamedTuple):
    """
    Process-wide defaults used when executing a connection.

    A config can be passed to :meth:`~httpipe.connection.Connection.execute`
    directly. Connections executed without one use the default config, which
    should be set once while the application starts up::

        import httpipe
        from httpipe.contrib.httpclient import HTTPClientTransport

        httpipe.set_default_config(httpipe.Config(transport=HTTPClientTransport()))
    """

    #: Transport used by connections that select
    #: :data:`~httpipe.transport.DEFAULT_TRANSPORT`. ``None`` means requests
    #: fail with :class:`~httpipe.exceptions.UnimplementedError`.
    transport: typing.Optional[Transport] = None

    #: Hand request bodies to the transport unencoded. A connection defers
    #: when either this or its own option is true.
    defer_body_processing: bool = False


_default_config = Config()


def get_default_config() -> Config:
    return _default_config


def set_default_config(config: Config) -> Config:
    """
    Replaces the default config and returns the previous one, so tests can
    restore it afterwards.
    """
    global _default_config
    previous, _default_config = _default_config, config
    return previous
