from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator

import pytest

DEFAULT_CONFIG = "pages:\n  - glob: '**/*.md'\n"


def write_files(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Create a project root with a site config and the given files."""

    def _make(files: dict[str, str] | None = None, *, config: str = DEFAULT_CONFIG) -> Path:
        root = tmp_path / "project"
        root.mkdir(exist_ok=True)
        (root / "site.yml").write_text(config, encoding="utf-8")
        write_files(root, files or {})
        return root

    return _make


@pytest.fixture(autouse=True)
def _reset_livedocs_logger() -> Iterator[None]:
    # CLI runs install their own handlers and stop propagation.
    yield
    logger = logging.getLogger("livedocs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
