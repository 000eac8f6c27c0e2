"""Per-root user variable maps for the site and its subsites."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import yaml
from jinja2 import Environment, TemplateError

from .constants import (
    BASE_URL_PLACEHOLDER,
    PRODUCT_NAME,
    PRODUCT_VARIABLE,
    PRODUCT_WEBSITE_URL,
    SITE_CONFIG_NAME,
    USER_VARIABLES_PATH,
)
from .errors import ConfigurationError, VariableFileMissing
from .fsutil import walk_files

logger = logging.getLogger(__name__)

VariableMap = dict[str, str]


def product_link_html() -> str:
    from . import __version__

    return f"<a href='{PRODUCT_WEBSITE_URL}'>{PRODUCT_NAME} {__version__}</a>"


def read_variable_definitions(path: Path) -> list[tuple[str, str]]:
    """Return ``(name, template)`` pairs in declaration order."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise VariableFileMissing(f"No variables file found at {path}") from exc
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse variables file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Variables file {path} should define a mapping of names to values.")
    return [(str(name), "" if value is None else str(value)) for name, value in data.items()]


def resolve_variables(
    definitions: Iterable[tuple[str, str]],
    seed: Mapping[str, str],
    environment: Environment | None = None,
    *,
    source: Path | None = None,
) -> VariableMap:
    """Resolve definitions in one left-to-right pass over a partial map.

    Each value may reference variables declared before it. References to
    names declared later render as empty text. A value that is not a valid
    template raises :class:`ConfigurationError` naming ``source``.
    """
    env = environment or Environment(autoescape=False)
    resolved: VariableMap = dict(seed)
    for name, template in definitions:
        try:
            resolved[name] = env.from_string(template).render(**resolved)
        except TemplateError as exc:
            location = source or "variables file"
            raise ConfigurationError(f"Failed to resolve variable '{name}' in {location}: {exc}") from exc
    return resolved


class VariableScopeResolver:
    """Discover roots and build one variable map per root."""

    def __init__(
        self,
        root_path: Path,
        *,
        site_config_name: str = SITE_CONFIG_NAME,
        excluded_dirs: Sequence[str] = (),
    ) -> None:
        self.root_path = Path(root_path).resolve()
        self.site_config_name = site_config_name
        self._excluded_dirs = list(excluded_dirs)
        self._environment = Environment(autoescape=False)
        self.roots: list[Path] = []
        self.maps: dict[Path, VariableMap] = {}

    @property
    def variables_path(self) -> Path:
        """Variables file of the primary root."""
        return self.root_path / USER_VARIABLES_PATH

    def discover_roots(self) -> list[Path]:
        config_name = Path(self.site_config_name).name
        candidates = {
            (self.root_path / relative).parent
            for relative in walk_files(self.root_path, exclude=self._excluded_dirs)
            if relative.split("/")[-1] == config_name and not _in_hidden_dir(relative)
        }
        candidates.add(self.root_path)
        self.roots = sorted(candidates)
        return list(self.roots)

    def collect(self) -> dict[Path, VariableMap]:
        if not self.roots:
            self.discover_roots()
        maps: dict[Path, VariableMap] = {}
        for root in self.roots:
            maps[root] = self._collect_root(root)
        self.maps = maps
        return maps

    def collect_if_needed(self, changed_paths: Iterable[Path]) -> bool:
        """Re-collect when the primary variables file is among ``changed_paths``."""
        target = self.variables_path
        if any(Path(path) == target for path in changed_paths):
            logger.info("Variables file changed; recollecting variables")
            self.collect()
            return True
        return False

    def variables_for(self, path: Path) -> VariableMap:
        """Return the map of the closest root containing ``path``."""
        resolved = Path(path).resolve()
        best: Path | None = None
        for root in self.maps:
            if resolved == root or root in resolved.parents:
                if best is None or len(root.parts) > len(best.parts):
                    best = root
        if best is None:
            return self.maps.get(self.root_path, {})
        return self.maps[best]

    def set_timestamp(self, moment: datetime | None = None) -> str:
        stamp = (moment or datetime.now(UTC)).strftime("%a, %d %b %Y %H:%M:%S GMT")
        for variables in self.maps.values():
            variables["timestamp"] = stamp
        return stamp

    def _collect_root(self, root: Path) -> VariableMap:
        # The base URL stays a literal placeholder so pages can substitute it last.
        seed = {PRODUCT_VARIABLE: product_link_html(), "baseUrl": BASE_URL_PLACEHOLDER}
        try:
            definitions = read_variable_definitions(root / USER_VARIABLES_PATH)
        except VariableFileMissing as exc:
            logger.warning("%s", exc)
            definitions = []
        return resolve_variables(definitions, seed, self._environment, source=root / USER_VARIABLES_PATH)


def _in_hidden_dir(relative: str) -> bool:
    return any(part.startswith(".") for part in relative.split("/")[:-1])
