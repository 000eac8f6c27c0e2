"""Filesystem helpers: tree walking, glob matching and ignore rules."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Sequence

from .constants import CONFIG_FOLDER_NAME, RESULT_EXTENSION, SOURCE_EXTENSIONS


def walk_files(root: Path, *, exclude: Iterable[str] = ()) -> Iterator[str]:
    """Yield posix paths (relative to ``root``) of every file below it.

    ``exclude`` lists relative directory paths whose subtrees are skipped.
    """
    excluded = {PurePosixPath(item).as_posix().strip("/") for item in exclude if item}
    for current, dirnames, filenames in os.walk(root):
        relative_dir = Path(current).relative_to(root).as_posix()
        prefix = "" if relative_dir == "." else f"{relative_dir}/"
        dirnames[:] = sorted(
            name for name in dirnames if f"{prefix}{name}" not in excluded
        )
        for filename in sorted(filenames):
            yield f"{prefix}{filename}"


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    index = 0
    length = len(pattern)
    parts: list[str] = []
    while index < length:
        char = pattern[index]
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                index = end
        elif char == "{":
            end = pattern.find("}", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                options = pattern[index + 1 : end].split(",")
                parts.append("(?:" + "|".join(_compile_glob(option).pattern[:-2] for option in options) + ")")
                index = end
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts) + r"\Z")


def glob_matches(pattern: str, relative_path: str) -> bool:
    """Return True when the posix ``relative_path`` matches the glob ``pattern``."""
    return _compile_glob(pattern.lstrip("/")).match(relative_path) is not None


@dataclass
class IgnoreRule:
    """Single gitignore-style pattern from the ``ignore`` config list."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str) -> bool:
        if not self.pattern:
            return False
        parts = rel_path.split("/")
        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern) or glob_matches(self.pattern, rel_path):
                return not self.directory_only
            # A directory pattern hides everything beneath it.
            for depth in range(1, len(parts)):
                if fnmatchcase("/".join(parts[:depth]), self.pattern):
                    return True
            return False

        candidates = parts[:-1] if self.directory_only else parts
        return any(fnmatchcase(part, self.pattern) for part in candidates)


def build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None

    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


class IgnoreMatcher:
    """Ordered set of ignore rules; later negations re-include paths."""

    def __init__(self, patterns: Sequence[str] = ()) -> None:
        self._rules: list[IgnoreRule] = []
        self.add(patterns)

    def add(self, patterns: Iterable[str]) -> "IgnoreMatcher":
        for pattern in patterns:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                self._rules.append(rule)
        return self

    def ignores(self, rel_path: str) -> bool:
        ignored = False
        for rule in self._rules:
            if rule.matches(rel_path):
                ignored = not rule.negate
        return ignored

    def filter(self, rel_paths: Iterable[str]) -> list[str]:
        return [path for path in rel_paths if not self.ignores(path)]


def is_source_file(path: Path, root: Path) -> bool:
    """Source files feed page rendering; everything else is a plain asset."""
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    if relative.parts and relative.parts[0] == CONFIG_FOLDER_NAME:
        return True
    return path.suffix.lower() in SOURCE_EXTENSIONS


def set_extension(filename: str, extension: str = RESULT_EXTENSION) -> str:
    """Swap the extension of a posix relative path (``guide/a.md`` -> ``guide/a.html``)."""
    return PurePosixPath(filename).with_suffix(extension).as_posix()


def relative_posix(path: Path, root: Path) -> str:
    return path.resolve().relative_to(root.resolve()).as_posix()
