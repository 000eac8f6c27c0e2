"""Watchdog wiring that routes file events to the debounced site operations."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from .fsutil import is_source_file

if TYPE_CHECKING:
    from .site import Site

logger = logging.getLogger(__name__)

# Temporary files some editors write next to the file being saved.
EDITOR_TEMP_MARKERS = ("___jb_tmp___", "___jb_old___")


class SiteEventHandler(FileSystemEventHandler):
    """Translate watchdog events into page rebuilds and asset syncs.

    Added or removed source files change the page set, so they rebuild
    every page; modified source files only rebuild the pages that include
    them. Everything else is a plain asset that is copied or removed; when a
    page read it through an include, the pages that include it rebuild too.
    """

    def __init__(self, site: "Site") -> None:
        super().__init__()
        self.site = site
        self.root_path = site.root_path
        self._ignored = [path.resolve() for path in site.ignored_paths()]
        self._site_config_path = (site.root_path / site.site_config_name).resolve()

    def should_ignore(self, path: Path) -> bool:
        try:
            relative = path.relative_to(self.root_path)
        except ValueError:
            return True
        if any(part.startswith(".") for part in relative.parts):
            return True
        if any(marker in path.name for marker in EDITOR_TEMP_MARKERS):
            return True
        return any(path == ignored or ignored in path.parents for ignored in self._ignored)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.added(_event_path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.changed(_event_path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.removed(_event_path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.removed(_event_path(event.src_path))
        if isinstance(event, FileSystemMovedEvent):
            self.added(_event_path(event.dest_path))

    def added(self, path: Path) -> None:
        if self.should_ignore(path):
            return
        logger.info("[%s] File added: %s", time.strftime("%X"), path)
        if self._is_structural(path):
            self.site.rebuild_source_files(path)
            return
        if self._is_included(path):
            self.site.rebuild_affected_source_files(path)
        self.site.build_asset(path)

    def changed(self, path: Path) -> None:
        if self.should_ignore(path):
            return
        logger.info("[%s] File changed: %s", time.strftime("%X"), path)
        if path == self._site_config_path:
            self.site.rebuild_source_files(path)
        elif is_source_file(path, self.root_path):
            self.site.rebuild_affected_source_files(path)
        else:
            if self._is_included(path):
                self.site.rebuild_affected_source_files(path)
            self.site.build_asset(path)

    def removed(self, path: Path) -> None:
        if self.should_ignore(path):
            return
        logger.info("[%s] File removed: %s", time.strftime("%X"), path)
        if self._is_structural(path):
            self.site.rebuild_source_files(path)
            return
        if self._is_included(path):
            self.site.rebuild_affected_source_files(path)
        self.site.remove_asset(path)

    def _is_structural(self, path: Path) -> bool:
        return path == self._site_config_path or is_source_file(path, self.root_path)

    def _is_included(self, path: Path) -> bool:
        # Non-source files that a page read through an include.
        return path in self.site.engine.all_included_files()


def watch(site: "Site") -> Observer:
    """Start watching the site root; the caller stops and joins the observer."""
    observer = Observer()
    observer.schedule(SiteEventHandler(site), str(site.root_path), recursive=True)
    observer.daemon = True
    observer.start()
    logger.info("Watching %s for changes", site.root_path)
    return observer


def _event_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", "surrogateescape")
    return Path(raw).resolve()
