"""Exception taxonomy for site builds."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class LivedocsError(RuntimeError):
    """Base class for errors surfaced to the user as a single-line message."""


class ConfigurationError(LivedocsError):
    """Raised when the site configuration is missing or invalid."""


class DuplicateAddressablePageError(ConfigurationError):
    """Raised when the same ``src`` is declared by more than one explicit page entry."""

    def __init__(self, duplicates: Iterable[str]) -> None:
        self.duplicates = list(dict.fromkeys(duplicates))
        super().__init__(
            f"Duplicate page entries found in site config: {', '.join(self.duplicates)}"
        )


class RenderError(LivedocsError):
    """Raised when a single page fails to render."""

    def __init__(self, source_path: Path | str, message: str | None = None) -> None:
        self.source_path = Path(source_path)
        super().__init__(message or f"Error while generating {self.source_path}")


class PluginLoadError(LivedocsError):
    """Raised when a plugin cannot be resolved, imported or validated."""


class AssetIOError(LivedocsError):
    """Raised when copying or removing a non-source asset fails."""


class VariableFileMissing(LivedocsError):
    """Raised when a root has no variables-definition file."""


class ScaffoldError(LivedocsError):
    """Raised when a new project cannot be scaffolded."""
