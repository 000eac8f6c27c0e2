"""Jinja2 environments for page sources, layouts and the document shell."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader, PackageLoader, StrictUndefined, select_autoescape

from .constants import LAYOUT_FOLDER_PATH, LAYOUT_SITE_FOLDER_NAME, SITE_ASSET_FOLDER_NAME

logger = logging.getLogger(__name__)

PAGE_TEMPLATE_NAME = "page.html.j2"

FRAMEWORK_ASSETS = {
    "theme": "css/theme.css",
    "stylesheet": "css/livedocs.css",
    "highlight": "css/highlight.css",
    "setup": "js/setup.js",
}


class TrackingLoader(FileSystemLoader):
    """File loader that reports every template file it reads."""

    def __init__(self, searchpath: Path, on_load: Callable[[Path], None]) -> None:
        super().__init__(str(searchpath))
        self._on_load = on_load

    def get_source(self, environment: Environment, template: str) -> tuple[str, str | None, Callable[[], bool] | None]:
        source, filename, uptodate = super().get_source(environment, template)
        if filename:
            self._on_load(Path(filename).resolve())
        return source, filename, uptodate


def make_source_environment(root_path: Path, on_load: Callable[[Path], None]) -> Environment:
    """Environment for page bodies and includes; templates are never cached."""
    return Environment(
        loader=TrackingLoader(root_path, on_load),
        autoescape=False,
        cache_size=0,
        keep_trailing_newline=True,
    )


def page_shell_environment() -> Environment:
    return Environment(
        loader=PackageLoader("livedocs", "templates"),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def layout_template_name(layout: str) -> str:
    return f"{LAYOUT_FOLDER_PATH}/{layout}.html"


def make_asset_href(result_path: Path, target: Path) -> str:
    """Return a relative href from the rendered page to ``target``."""
    return Path(os.path.relpath(target, result_path.parent)).as_posix()


def build_asset_hrefs(output_path: Path, result_path: Path) -> dict[str, str]:
    """Resolve framework asset hrefs relative to the rendered page location."""
    assets_root = output_path / SITE_ASSET_FOLDER_NAME
    hrefs = {key: make_asset_href(result_path, assets_root / value) for key, value in FRAMEWORK_ASSETS.items()}
    hrefs["layouts"] = make_asset_href(result_path, assets_root / LAYOUT_SITE_FOLDER_NAME)
    return hrefs


def render_shell(environment: Environment, context: dict[str, Any]) -> str:
    template = environment.get_template(PAGE_TEMPLATE_NAME)
    return template.render(**context)
