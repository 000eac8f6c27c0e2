from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants import HEADING_INDEXING_LEVEL_DEFAULT, SITE_CONFIG_NAME
from .errors import ConfigurationError


class PageEntry(BaseModel):
    """One row of the ``pages`` list: either an explicit ``src`` or a ``glob``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    src: str | None = Field(default=None)
    glob: str | None = Field(default=None)
    title: str | None = Field(default=None)
    layout: str | None = Field(default=None)
    frontmatter: dict[str, Any] | None = Field(default=None)
    searchable: bool | None = Field(
        default=None,
        description="Include the page in the site index; accepts booleans or 'yes'/'no'.",
    )
    external_scripts: list[str] | None = Field(default=None)

    @field_validator("searchable", mode="before")
    def _normalize_searchable(cls, value: Any) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"no", "false", "off", "0"}:
            return False
        if text in {"yes", "true", "on", "1"}:
            return True
        raise ValueError(f"searchable must be a boolean or 'yes'/'no', got {value!r}")

    @field_validator("src", mode="before")
    def _normalize_src(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip().replace("\\", "/")
        while text.startswith("./"):
            text = text[2:]
        return text or None

    @model_validator(mode="after")
    def _require_single_target(self) -> "PageEntry":
        if bool(self.src) == bool(self.glob):
            raise ValueError("Each page entry needs exactly one of 'src' or 'glob'.")
        return self


class SiteConfig(BaseModel):
    """Site configuration read from ``site.yml`` (camelCase keys are accepted too)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title_prefix: str = Field(default="")
    base_url: str = Field(default="")
    enable_search: bool = Field(default=True)
    heading_indexing_level: int = Field(default=HEADING_INDEXING_LEVEL_DEFAULT, ge=1, le=6)
    favicon_path: str | None = Field(default=None)
    theme: str | None = Field(default=None, description="Name of a packaged stylesheet theme.")
    pages: list[PageEntry] = Field(default_factory=list)
    ignore: list[str] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)
    plugins_context: dict[str, dict[str, Any]] = Field(default_factory=dict)
    external_scripts: list[str] = Field(default_factory=list)

    @field_validator("base_url", mode="before")
    def _normalize_base_url(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).rstrip("/")

    @field_validator("pages", "ignore", "plugins", "external_scripts", mode="before")
    def _ensure_list(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        return value

    @field_validator("plugins_context", mode="before")
    def _ensure_mapping(cls, value: Any) -> dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {name: _string_keys(context) for name, context in value.items()}

    def plugin_context(self, name: str) -> dict[str, Any]:
        return dict(self.plugins_context.get(name) or {})

    def plugin_disabled(self, name: str) -> bool:
        return self.plugin_context(name).get("off") is True


def _string_keys(context: Any) -> Any:
    if context is None:
        return {}
    # YAML 1.1 reads bare ``off``/``on`` keys as booleans.
    if not isinstance(context, dict):
        return context
    return {
        ("on" if key else "off") if isinstance(key, bool) else key: item
        for key, item in context.items()
    }


def load_site_config(
    root: str | Path,
    config_name: str = SITE_CONFIG_NAME,
    *,
    base_url: str | None = None,
) -> SiteConfig:
    """Read and validate the site configuration located under ``root``.

    ``base_url`` overrides the configured value when given (an empty string
    clears it). Missing, unreadable or invalid files raise
    :class:`ConfigurationError`.
    """
    root_path = Path(root)
    config_path = root_path / config_name
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"Failed to read the site config file '{config_name}' at {root_path}: {exc}. "
            "Please ensure the file exists and is valid."
        ) from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Site config {config_path} must define a mapping at its root.")

    try:
        config = SiteConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid site config {config_path}: {exc}") from exc

    if base_url is not None:
        config.base_url = base_url.rstrip("/")
    return config


def find_root_folder(user_root: str | Path | None, config_name: str = SITE_CONFIG_NAME) -> Path:
    """Locate the project root holding ``config_name``.

    An explicit ``user_root`` must contain the configuration file. Otherwise
    the working directory and its parents are searched.
    """
    if user_root is not None:
        candidate = Path(user_root).resolve()
        if not (candidate / config_name).is_file():
            raise ConfigurationError(f"No config file '{config_name}' found at {candidate}.")
        return candidate

    current = Path.cwd().resolve()
    for folder in (current, *current.parents):
        if (folder / config_name).is_file():
            return folder
    raise ConfigurationError(
        f"No config file '{config_name}' found in {current} or any parent directory."
    )
