"""Resolve, load and validate site plugins.

Plugins are Python modules exposing one or more capability hooks:

``pre_render(content, plugin_context, frontmatter) -> str``
    Transform page source after variable substitution, before markdown.
``post_render(html, plugin_context, frontmatter) -> str``
    Transform the final HTML document.
``get_links(plugin_context, frontmatter) -> list[str]``
    Extra ``<link>`` tags for the document head.
``get_scripts(plugin_context, frontmatter) -> list[str]``
    Extra ``<script>`` tags appended to the body.

A registry belongs to one site session and is handed to each page.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Iterator, Mapping

from .config import SiteConfig
from .constants import PLUGIN_PREFIX, PROJECT_PLUGIN_FOLDER_PATH
from .errors import PluginLoadError

logger = logging.getLogger(__name__)

PLUGIN_CAPABILITIES = ("pre_render", "post_render", "get_links", "get_scripts")

BUILT_IN_PLUGIN_FOLDER = Path(__file__).resolve().parent / "plugins"
BUILT_IN_DEFAULT_PLUGIN_FOLDER = BUILT_IN_PLUGIN_FOLDER / "default"


@dataclass(frozen=True, slots=True)
class LoadedPlugin:
    """A validated plugin module and the hooks it provides."""

    name: str
    module: ModuleType
    path: Path | None
    capabilities: frozenset[str]

    @property
    def context_key(self) -> str:
        return strip_prefix(self.name)

    def has(self, capability: str) -> bool:
        return capability in self.capabilities

    def call(self, capability: str, *args: Any) -> Any:
        return getattr(self.module, capability)(*args)


def strip_prefix(name: str) -> str:
    return name[len(PLUGIN_PREFIX) :] if name.startswith(PLUGIN_PREFIX) else name


def validate_capabilities(name: str, module: ModuleType) -> frozenset[str]:
    found: set[str] = set()
    for capability in PLUGIN_CAPABILITIES:
        if not hasattr(module, capability):
            continue
        if not callable(getattr(module, capability)):
            raise PluginLoadError(f"Plugin {name} exports '{capability}' but it is not callable.")
        found.add(capability)
    if not found:
        raise PluginLoadError(
            f"Plugin {name} provides none of the supported hooks: {', '.join(PLUGIN_CAPABILITIES)}."
        )
    return frozenset(found)


def find_default_plugins(folder: Path = BUILT_IN_DEFAULT_PLUGIN_FOLDER) -> list[str]:
    if not folder.is_dir():
        return []
    return sorted(path.stem for path in folder.glob(f"{PLUGIN_PREFIX}*.py"))


class PluginRegistry:
    """Plugins loaded for one build session, keyed by name."""

    def __init__(
        self,
        root_path: Path,
        *,
        builtin_folder: Path = BUILT_IN_PLUGIN_FOLDER,
        default_folder: Path = BUILT_IN_DEFAULT_PLUGIN_FOLDER,
    ) -> None:
        self.root_path = Path(root_path)
        self._builtin_folder = builtin_folder
        self._default_folder = default_folder
        self._plugins: dict[str, LoadedPlugin] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[LoadedPlugin]:
        return iter(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)

    def get(self, name: str) -> LoadedPlugin | None:
        return self._plugins.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._plugins)

    def resolve_path(self, name: str) -> Path | None:
        """Return the first plugin file for ``name`` in precedence order."""
        for folder in (
            self.root_path / PROJECT_PLUGIN_FOLDER_PATH,
            self._builtin_folder,
            self._default_folder,
        ):
            candidate = folder / f"{name}.py"
            if candidate.is_file():
                return candidate
        return None

    def load(self, name: str, *, is_default: bool = False) -> LoadedPlugin | None:
        """Load ``name`` once; failures are logged and the plugin is skipped."""
        existing = self._plugins.get(name)
        if existing is not None:
            return existing
        try:
            plugin = self._import(name, is_default=is_default)
        except PluginLoadError as exc:
            logger.warning("Unable to load plugin %s, skipping: %s", name, exc)
            return None
        self._plugins[name] = plugin
        logger.debug("Loaded plugin %s from %s", name, plugin.path or plugin.module.__name__)
        return plugin

    def collect(self, config: SiteConfig, *, reload: bool = False) -> list[str]:
        """Load configured plugins, then every default plugin not switched off.

        With ``reload`` the previously loaded plugins are dropped first, so
        edits to the plugin list, its contexts or plugin files take effect.
        """
        if reload:
            self._plugins.clear()
        defaults = find_default_plugins(self._default_folder)

        for name in config.plugins:
            if name in defaults:
                continue
            self.load(name)

        for name in defaults:
            if config.plugin_disabled(strip_prefix(name)):
                logger.debug("Default plugin %s is turned off", name)
                continue
            self.load(name, is_default=True)
        return self.names

    def _import(self, name: str, *, is_default: bool) -> LoadedPlugin:
        path = self.resolve_path(name)
        if is_default and (path is None or path.parent != self._default_folder):
            logger.warning("Default plugin %s will be overridden", name)

        if path is not None:
            module = _load_module_from_path(name, path)
        else:
            try:
                module = importlib.import_module(name)
            except Exception as exc:
                raise PluginLoadError(f"cannot import module '{name}': {exc}") from exc
        return LoadedPlugin(
            name=name,
            module=module,
            path=path,
            capabilities=validate_capabilities(name, module),
        )

    def run_pre_render(self, content: str, contexts: Mapping[str, Any], frontmatter: dict[str, Any]) -> str:
        for plugin in self:
            if plugin.has("pre_render"):
                content = plugin.call("pre_render", content, _context_for(plugin, contexts), frontmatter)
        return content

    def run_post_render(self, html: str, contexts: Mapping[str, Any], frontmatter: dict[str, Any]) -> str:
        for plugin in self:
            if plugin.has("post_render"):
                html = plugin.call("post_render", html, _context_for(plugin, contexts), frontmatter)
        return html

    def collect_tags(self, capability: str, contexts: Mapping[str, Any], frontmatter: dict[str, Any]) -> list[str]:
        tags: list[str] = []
        for plugin in self:
            if plugin.has(capability):
                tags.extend(plugin.call(capability, _context_for(plugin, contexts), frontmatter) or [])
        return tags


def _context_for(plugin: LoadedPlugin, contexts: Mapping[str, Any]) -> dict[str, Any]:
    value = contexts.get(plugin.name)
    if value is None:
        value = contexts.get(plugin.context_key)
    return dict(value or {})


def _load_module_from_path(name: str, path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"livedocs_plugin_{name}", path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"cannot create an import spec for {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise PluginLoadError(f"error while executing {path}: {exc}") from exc
    return module
