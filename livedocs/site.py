"""Site build pipeline and the debounced live-preview rebuild operations."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Iterable

from .config import SiteConfig, load_site_config
from .constants import (
    FAVICON_DEFAULT_PATH,
    LAYOUT_FOLDER_PATH,
    LOGS_FOLDER_PATH,
    OUTPUT_FOLDER_NAME,
    REBUILD_DELAY_SECONDS,
    SITE_CONFIG_NAME,
    TEMP_FOLDER_NAME,
)
from .engine import RebuildEngine, normalize_change_set
from .errors import ConfigurationError
from .fsutil import IgnoreMatcher, relative_posix
from .page import Page, PageRenderer
from .pages import AddressablePageRegistry, PageSpec
from .plugin_loader import PluginRegistry
from .renderer import MarkdownPageRenderer
from .scheduler import DebouncedCall
from .site_index import SiteIndexWriter
from .staging import (
    copy_assets,
    copy_framework_assets,
    copy_layouts,
    list_assets,
    remove_assets,
    remove_directory,
    reset_directory,
)
from .templates import build_asset_hrefs
from .variables import VariableScopeResolver

logger = logging.getLogger(__name__)


class Site:
    """One documentation project: full builds plus incremental rebuilds.

    The ``rebuild_affected_source_files``, ``rebuild_source_files``,
    ``build_asset`` and ``remove_asset`` attributes are debounced calls that
    accumulate paths over a quiet window. Their runs share one lock, so at
    most one of them touches the output tree at a time.
    """

    def __init__(
        self,
        root_path: Path | str,
        output_path: Path | str | None = None,
        *,
        one_page: str | None = None,
        force_reload: bool = False,
        site_config_name: str = SITE_CONFIG_NAME,
        rebuild_delay: float = REBUILD_DELAY_SECONDS,
        renderer: PageRenderer | None = None,
    ) -> None:
        self.root_path = Path(root_path).resolve()
        self.output_path = (
            Path(output_path).resolve() if output_path is not None else self.root_path / OUTPUT_FOLDER_NAME
        )
        self.temp_path = self.root_path / TEMP_FOLDER_NAME
        self.one_page = one_page.replace("\\", "/") if one_page else None
        self.force_reload = force_reload
        self.site_config_name = site_config_name
        self.site_config = SiteConfig()
        self.favicon_url: str | None = None
        self._base_url: str | None = None

        excluded = self.excluded_dirs()
        self.registry = AddressablePageRegistry(self.root_path, excluded_dirs=excluded)
        self.resolver = VariableScopeResolver(
            self.root_path,
            site_config_name=site_config_name,
            excluded_dirs=excluded,
        )
        self.plugins = PluginRegistry(self.root_path)
        self.index_writer = SiteIndexWriter(self.output_path)
        self.engine = RebuildEngine(
            renderer=renderer or MarkdownPageRenderer(self.output_path),
            page_factory=self.create_page,
            resolver=self.resolver,
            index_writer=self.index_writer,
            force_reload=force_reload,
        )

        run_lock = threading.Lock()
        self.rebuild_affected_source_files: DebouncedCall[Path] = DebouncedCall(
            self._rebuild_affected_source_files,
            wait=rebuild_delay,
            name="rebuild-affected",
            run_lock=run_lock,
        )
        self.rebuild_source_files: DebouncedCall[Path] = DebouncedCall(
            self._rebuild_source_files,
            wait=rebuild_delay,
            name="rebuild-all",
            run_lock=run_lock,
        )
        self.build_asset: DebouncedCall[Path] = DebouncedCall(
            self._build_assets,
            wait=rebuild_delay,
            name="build-asset",
            run_lock=run_lock,
        )
        self.remove_asset: DebouncedCall[Path] = DebouncedCall(
            self._remove_assets,
            wait=rebuild_delay,
            name="remove-asset",
            run_lock=run_lock,
        )

    @property
    def pages(self) -> list[Page]:
        return self.engine.pages

    def excluded_dirs(self) -> list[str]:
        """Relative directories never treated as part of the source tree."""
        excluded = [TEMP_FOLDER_NAME]
        try:
            excluded.append(self.output_path.relative_to(self.root_path).as_posix())
        except ValueError:
            pass
        return excluded

    def ignored_paths(self) -> list[Path]:
        """Absolute paths the watcher must not report."""
        return [self.output_path, self.temp_path, self.root_path / LOGS_FOLDER_PATH]

    def generate(self, base_url: str | None = None) -> None:
        """Full build: every stage in order, cleaning up on failure."""
        start = time.perf_counter()
        self._base_url = base_url
        reset_directory(self.temp_path)
        reset_directory(self.output_path)
        logger.info("Website generation started at %s", time.strftime("%X"))
        try:
            self.read_site_config(base_url)
            self.collect_addressable_pages()
            self.collect_base_urls()
            self.collect_user_defined_variables()
            self.collect_plugins()
            self.build_assets()
            self.build_source_files()
            self.copy_framework_assets()
            self.engine.update_site_data()
        except Exception as exc:
            self._cleanup(exc)
            raise
        logger.info("Website generation complete! Total build time: %.3fs", time.perf_counter() - start)

    def read_site_config(self, base_url: str | None = None) -> SiteConfig:
        self.site_config = load_site_config(self.root_path, self.site_config_name, base_url=base_url)
        if not self.site_config.base_url:
            logger.info("The base URL of your site is set to '/'")
        self.index_writer.enable_search = self.site_config.enable_search
        self.favicon_url = self.resolve_favicon_url()
        return self.site_config

    def collect_addressable_pages(self) -> list[PageSpec]:
        return self.registry.collect(self.site_config.pages)

    def collect_base_urls(self) -> list[Path]:
        return self.resolver.discover_roots()

    def collect_user_defined_variables(self) -> None:
        self.resolver.collect()

    def collect_plugins(self, *, reload: bool = False) -> list[str]:
        return self.plugins.collect(self.site_config, reload=reload)

    def build_assets(self) -> None:
        logger.info("Building assets...")
        copy_assets(self.root_path, self.output_path, self._list_assets())
        logger.info("Assets built")

    def build_source_files(self) -> None:
        logger.info("Generating pages...")
        self.engine.generate_pages(self.selected_pages())
        remove_directory(self.temp_path)

    def copy_framework_assets(self) -> None:
        copy_framework_assets(self.root_path, self.output_path, self.site_config.theme)

    def selected_pages(self) -> list[PageSpec]:
        """Registered pages, narrowed to the single preview page in one-page mode."""
        specs = self.registry.pages
        if self.one_page is None:
            return specs
        page = self.registry.find(self.one_page)
        if page is None:
            raise ConfigurationError(f"{self.one_page} is not specified in the site configuration.")
        return [page]

    def create_page(self, spec: PageSpec) -> Page:
        config = self.site_config
        source_path = (self.root_path / spec.src).resolve()
        result_path = self.output_path / spec.output_path
        scripts = [*config.external_scripts, *(spec.external_scripts or [])]
        return Page(
            spec=spec,
            root_path=self.root_path,
            source_path=source_path,
            result_path=result_path,
            temp_path=self.temp_path / spec.src,
            variables=self.resolver.variables_for(source_path),
            plugins=self.plugins,
            base_url=config.base_url,
            title_prefix=config.title_prefix,
            enable_search=config.enable_search,
            heading_indexing_level=config.heading_indexing_level,
            favicon_url=self.favicon_url,
            external_scripts=list(dict.fromkeys(scripts)),
            plugins_context=config.plugins_context,
            asset=build_asset_hrefs(self.output_path, result_path),
        )

    def resolve_favicon_url(self) -> str | None:
        config = self.site_config
        if config.favicon_path:
            if not (self.root_path / config.favicon_path).exists():
                logger.warning("%s does not exist", config.favicon_path)
            return _join_url(config.base_url, config.favicon_path)
        if (self.root_path / FAVICON_DEFAULT_PATH).exists():
            return _join_url(config.base_url, FAVICON_DEFAULT_PATH)
        return None

    def regenerate_affected_pages(self, paths: Iterable[Path | str]) -> list[Page]:
        """Undebounced incremental rebuild, used by the debounced call and tests."""
        return self._rebuild_affected_source_files(normalize_change_set(paths))

    def flush(self) -> None:
        """Run every pending debounced operation now, structural changes first."""
        self.rebuild_source_files.flush()
        self.remove_asset.flush()
        self.build_asset.flush()
        self.rebuild_affected_source_files.flush()

    def cancel(self) -> None:
        for call in (
            self.rebuild_source_files,
            self.remove_asset,
            self.build_asset,
            self.rebuild_affected_source_files,
        ):
            call.cancel_timer()

    def _rebuild_affected_source_files(self, paths: list[Path]) -> list[Page]:
        logger.info("Rebuilding affected source files")
        start = time.perf_counter()
        try:
            pages = self.engine.regenerate_affected_pages(paths)
            layouts = self.root_path / LAYOUT_FOLDER_PATH
            if any(layouts in path.parents for path in paths):
                copy_layouts(self.root_path, self.output_path)
            remove_directory(self.temp_path)
        except Exception as exc:
            self._cleanup(exc)
            raise
        logger.info("Rebuild finished in %.3fs", time.perf_counter() - start)
        return pages

    def _rebuild_source_files(self, paths: list[Path] | None = None) -> list[Page]:
        logger.warning("Rebuilding all source files")
        start = time.perf_counter()
        try:
            if (self.root_path / self.site_config_name).resolve() in normalize_change_set(paths or []):
                self._reload_site_config()
            removed = self.registry.update(self.site_config.pages)
            remove_assets(self.output_path, removed)
            self.build_source_files()
            self.engine.update_site_data()
        except Exception as exc:
            self._cleanup(exc)
            raise
        logger.info("Rebuild finished in %.3fs", time.perf_counter() - start)
        return self.pages

    def _reload_site_config(self) -> None:
        """Re-read the site config and resync plugins, assets and the theme."""
        previous = set(self._list_assets())
        self.read_site_config(self._base_url)
        self.collect_plugins(reload=True)
        current = self._list_assets()
        remove_assets(self.output_path, sorted(previous - set(current)))
        copy_assets(self.root_path, self.output_path, current)
        self.copy_framework_assets()

    def _build_assets(self, paths: list[Path]) -> None:
        matcher = self._ignore_matcher()
        relative = [relative_posix(path, self.root_path) for path in paths]
        copy_assets(self.root_path, self.output_path, matcher.filter(relative))
        logger.info("Assets built")

    def _remove_assets(self, paths: list[Path]) -> None:
        relative = [relative_posix(path, self.root_path) for path in paths]
        remove_assets(self.output_path, relative)
        logger.info("Assets removed")

    def _list_assets(self) -> list[str]:
        return list_assets(
            self.root_path,
            self._ignore_matcher(),
            excluded_dirs=self.excluded_dirs(),
            site_config_name=self.site_config_name,
        )

    def _ignore_matcher(self) -> IgnoreMatcher:
        return IgnoreMatcher([*self.site_config.ignore, *self.excluded_dirs()])

    def _cleanup(self, error: BaseException) -> None:
        logger.debug("Removing %s and %s after failure", self.temp_path, self.output_path)
        for folder in (self.temp_path, self.output_path):
            try:
                remove_directory(folder)
            except OSError as cleanup_error:
                error.add_note(f"Cleanup of {folder} failed: {cleanup_error}")


def _join_url(base_url: str, path: str) -> str:
    parts = [part.strip("/") for part in (base_url, path) if part and part.strip("/")]
    return "/" + "/".join(parts)
