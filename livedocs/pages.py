"""Addressable page registry: merge explicit and glob page entries into page specs."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .config import PageEntry
from .constants import CONFIG_FOLDER_NAME
from .errors import DuplicateAddressablePageError
from .fsutil import glob_matches, set_extension, walk_files

logger = logging.getLogger(__name__)

# Fields a glob entry shares with every file it matches.
GLOB_SHARED_FIELDS = ("layout", "frontmatter", "searchable")
MERGEABLE_FIELDS = ("title", "layout", "frontmatter", "searchable", "external_scripts")


class PageSpec(BaseModel):
    """One addressable page; ``src`` is the unique key."""

    model_config = ConfigDict(frozen=True)

    src: str
    title: str | None = Field(default=None)
    layout: str | None = Field(default=None)
    frontmatter: dict[str, Any] | None = Field(default=None)
    searchable: bool | None = Field(default=None)
    external_scripts: list[str] | None = Field(default=None)
    glob_derived: bool = Field(default=False)

    def defined_fields(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in MERGEABLE_FIELDS
            if getattr(self, name) is not None
        }

    @property
    def output_path(self) -> str:
        return set_extension(self.src)


def merge_page_specs(glob_specs: Iterable[PageSpec], explicit_specs: Iterable[PageSpec]) -> list[PageSpec]:
    """Merge glob-derived and explicit specs keyed by ``src``.

    Explicit fields that are defined win over glob-derived values; undefined
    fields fall back to whatever the globs supplied. Later globs override
    earlier ones for the same path.
    """
    merged: dict[str, dict[str, Any]] = {}
    glob_derived: set[str] = set()

    for spec in glob_specs:
        merged.setdefault(spec.src, {}).update(spec.defined_fields())
        glob_derived.add(spec.src)

    explicit_fields: dict[str, dict[str, Any]] = {}
    for spec in explicit_specs:
        explicit_fields[spec.src] = spec.defined_fields()
        merged.setdefault(spec.src, {})

    pages: list[PageSpec] = []
    for src, fields in merged.items():
        combined = {**fields, **explicit_fields.get(src, {})}
        pages.append(PageSpec(src=src, glob_derived=src in glob_derived, **combined))
    return pages


def find_duplicate_sources(entries: Iterable[PageEntry]) -> list[str]:
    counts = Counter(entry.src for entry in entries if entry.src)
    return [src for src, count in counts.items() if count > 1]


class AddressablePageRegistry:
    """Compute and track the set of pages a site builds."""

    def __init__(self, root_path: Path, *, excluded_dirs: Sequence[str] = ()) -> None:
        self.root_path = Path(root_path)
        self._excluded_dirs = [CONFIG_FOLDER_NAME, *excluded_dirs]
        self._pages: list[PageSpec] = []

    @property
    def pages(self) -> list[PageSpec]:
        return list(self._pages)

    @property
    def sources(self) -> list[str]:
        return [page.src for page in self._pages]

    def find(self, src: str) -> PageSpec | None:
        for page in self._pages:
            if page.src == src:
                return page
        return None

    def collect(self, entries: Sequence[PageEntry]) -> list[PageSpec]:
        """Replace the registered pages with the merged result of ``entries``.

        Duplicate explicit ``src`` values raise
        :class:`DuplicateAddressablePageError` and leave the registry unchanged.
        """
        explicit_entries = [entry for entry in entries if entry.src]
        duplicates = find_duplicate_sources(explicit_entries)
        if duplicates:
            raise DuplicateAddressablePageError(duplicates)

        glob_specs = self._expand_globs([entry for entry in entries if entry.glob])
        explicit_specs = [
            PageSpec(
                src=entry.src,
                title=entry.title,
                layout=entry.layout,
                frontmatter=entry.frontmatter,
                searchable=entry.searchable,
                external_scripts=entry.external_scripts,
            )
            for entry in explicit_entries
            if entry.src
        ]
        self._pages = merge_page_specs(glob_specs, explicit_specs)
        logger.debug("Collected %d addressable page(s)", len(self._pages))
        return self.pages

    def update(self, entries: Sequence[PageEntry]) -> list[str]:
        """Recollect pages and return output paths of pages that disappeared."""
        previous = self.sources
        self.collect(entries)
        current = set(self.sources)
        return [set_extension(src) for src in previous if src not in current]

    def _expand_globs(self, glob_entries: Sequence[PageEntry]) -> list[PageSpec]:
        if not glob_entries:
            return []
        files = list(walk_files(self.root_path, exclude=self._excluded_dirs))
        specs: list[PageSpec] = []
        for entry in glob_entries:
            pattern = entry.glob or ""
            shared = {name: getattr(entry, name) for name in GLOB_SHARED_FIELDS}
            matched = [path for path in files if glob_matches(pattern, path)]
            if not matched:
                logger.debug("Glob %s matched no files", pattern)
            specs.extend(PageSpec(src=path, glob_derived=True, **shared) for path in matched)
        return specs
