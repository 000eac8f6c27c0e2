"""Utilities for copying site assets into the output area."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from .constants import CONFIG_FOLDER_NAME, LAYOUT_FOLDER_PATH, LAYOUT_SITE_FOLDER_NAME, SITE_ASSET_FOLDER_NAME
from .errors import AssetIOError
from .fsutil import IgnoreMatcher, is_source_file, walk_files

logger = logging.getLogger(__name__)

STATIC_FOLDER = Path(__file__).resolve().parent / "static"
THEMES_FOLDER = Path(__file__).resolve().parent / "themes"
DEFAULT_THEME = "default"
THEME_STYLESHEET_PATH = "css/theme.css"


@dataclass
class StagingResult:
    """Summary of copied and removed assets."""

    copied: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.copied) + len(self.removed)


def reset_directory(path: Path) -> None:
    """Remove a directory and recreate it empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def remove_directory(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


def list_assets(
    root: Path,
    matcher: IgnoreMatcher,
    *,
    excluded_dirs: Sequence[str] = (),
    site_config_name: str | None = None,
) -> list[str]:
    """Relative paths of every non-source file that is not ignored."""
    assets: list[str] = []
    for relative in walk_files(root, exclude=[CONFIG_FOLDER_NAME, *excluded_dirs]):
        if relative == site_config_name:
            continue
        if is_source_file(root / relative, root) or matcher.ignores(relative):
            continue
        assets.append(relative)
    return assets


def copy_assets(root: Path, output: Path, rel_paths: Iterable[str]) -> StagingResult:
    """Copy ``rel_paths`` from ``root`` into ``output``.

    Any I/O failure raises :class:`AssetIOError`; files copied before the
    failure stay in place.
    """
    result = StagingResult()
    for relative in rel_paths:
        source = root / relative
        destination = output / relative
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as exc:
            raise AssetIOError(f"Failed to copy asset {relative}: {exc}") from exc
        result.copied.append(destination)
    logger.debug("Copied %d asset(s)", len(result.copied))
    return result


def remove_assets(output: Path, rel_paths: Iterable[str]) -> StagingResult:
    result = StagingResult()
    for relative in rel_paths:
        target = output / relative
        try:
            _delete_path(target)
        except OSError as exc:
            raise AssetIOError(f"Failed to remove asset {relative}: {exc}") from exc
        result.removed.append(target)
    logger.debug("Removed %d asset(s)", len(result.removed))
    return result


def supported_themes() -> list[str]:
    return sorted(path.stem for path in THEMES_FOLDER.glob("*.css"))


def copy_framework_assets(root: Path, output: Path, theme: str | None = None) -> StagingResult:
    """Copy packaged css/js, the theme stylesheet and the project layouts under ``<output>/livedocs``."""
    name = theme or DEFAULT_THEME
    if name not in supported_themes():
        logger.warning("Unknown theme '%s'; available themes: %s", name, ", ".join(supported_themes()))
        name = DEFAULT_THEME

    result = StagingResult()
    destination = output / SITE_ASSET_FOLDER_NAME
    try:
        _copytree(STATIC_FOLDER, destination)
        result.copied.append(destination)
        theme_destination = destination / THEME_STYLESHEET_PATH
        shutil.copy2(THEMES_FOLDER / f"{name}.css", theme_destination)
        result.copied.append(theme_destination)
    except OSError as exc:
        raise AssetIOError(f"Failed to copy framework assets: {exc}") from exc
    result.copied.extend(copy_layouts(root, output).copied)
    return result


def copy_layouts(root: Path, output: Path) -> StagingResult:
    """Mirror the project layouts folder to ``<output>/livedocs/layouts``."""
    result = StagingResult()
    layouts = root / LAYOUT_FOLDER_PATH
    destination = output / SITE_ASSET_FOLDER_NAME / LAYOUT_SITE_FOLDER_NAME
    try:
        if layouts.is_dir():
            _copytree(layouts, destination)
            result.copied.append(destination)
        elif destination.exists():
            shutil.rmtree(destination)
    except OSError as exc:
        raise AssetIOError(f"Failed to copy layouts: {exc}") from exc
    return result


def _copytree(source: Path, destination: Path) -> None:
    if destination.exists():
        shutil.rmtree(destination)
    shutil.copytree(source, destination)


def _delete_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)
