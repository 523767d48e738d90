from __future__ import annotations

import os.path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from cascade.core import Config

HERE = os.path.dirname(__file__)
VERBOSE = os.environ.get("VERBOSE", "false").lower() in ("true", "1")


@pytest.fixture
def config() -> Config:
    import cascade.core
    from cascade.cli import set_config

    return set_config(
        cascade.core.load_config(
            os.path.join(HERE, "..", "pyproject.toml"), verbose=VERBOSE
        )
    )
