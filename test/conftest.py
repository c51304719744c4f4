from __future__ import annotations

import typing
from pathlib import Path

import pytest

from httpipe.config import Config, set_default_config

from . import CapturingTransport


@pytest.fixture(autouse=True)
def default_config() -> typing.Generator[Config, None, None]:
    """Every test starts from, and restores, an empty default config."""
    config = Config()
    previous = set_default_config(config)
    try:
        yield config
    finally:
        set_default_config(previous)


@pytest.fixture
def transport() -> CapturingTransport:
    return CapturingTransport(204, {}, "")


@pytest.fixture
def body_file(tmp_path: Path) -> Path:
    path = tmp_path / "body.txt"
    path.write_bytes(b"file contents\n")
    return path
