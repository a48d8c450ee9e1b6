from __future__ import annotations

import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _reset_logger():
    """Undo ``configure_logging`` so caplog sees records in every test."""
    yield
    logger = logging.getLogger("flatten_workspace")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small workspace: ``README.md`` and ``src/a.ts``."""
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_bytes(b"hi")
    (root / "src" / "a.ts").write_bytes(b"x\n")
    return root
