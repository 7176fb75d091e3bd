"""Project file index: the traversal primitives the payload builder uses.

``ProjectIndex`` is the narrow interface; ``LocalProject`` implements it
over the local filesystem with pathspec for ignore rules:

* version-control ignores come from the root ``.gitignore`` and
  ``.git/info/exclude``
* tool ignores come from ``settings.skip_directories`` and the
  project's ``.codescanignore``
* library sources are anything under ``settings.library_directories``
"""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path
from typing import Protocol

import pathspec

from codescan.config import Settings

logger = logging.getLogger(__name__)


class ProjectIndex(Protocol):
    @property
    def root(self) -> Path: ...
    def module_roots(self) -> list[Path]: ...
    def children(self, directory: Path) -> list[Path]: ...
    def is_vcs_ignored(self, path: Path) -> bool: ...
    def is_tool_ignored(self, path: Path) -> bool: ...
    def is_in_library_source(self, path: Path) -> bool: ...


class LocalProject:
    """A project rooted at a local directory."""

    def __init__(
        self,
        root: Path,
        settings: Settings | None = None,
        modules: list[Path] | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        if not self._root.is_dir():
            msg = f"Project root does not exist: {self._root}"
            raise FileNotFoundError(msg)
        self._settings = settings or Settings()
        self._modules = (
            [Path(m).resolve() for m in modules] if modules else None
        )
        self._skip_dirs = set(self._settings.skip_directories)
        self._library_dirs = set(self._settings.library_directories)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def name(self) -> str:
        return self._root.name

    def module_roots(self) -> list[Path]:
        return list(self._modules) if self._modules else [self._root]

    def children(self, directory: Path) -> list[Path]:
        return sorted(directory.iterdir())

    def is_vcs_ignored(self, path: Path) -> bool:
        rel = self._relative(path)
        if rel is None:
            return False
        return self._vcs_spec.match_file(rel)

    def is_tool_ignored(self, path: Path) -> bool:
        rel = self._relative(path)
        if rel is None:
            return False
        parts = Path(rel.rstrip("/")).parts
        if not rel.endswith("/"):
            # A file is skipped only through its directories.
            parts = parts[:-1]
        if any(part in self._skip_dirs for part in parts):
            return True
        return self._tool_spec.match_file(rel)

    def is_in_library_source(self, path: Path) -> bool:
        try:
            parts = path.relative_to(self._root).parts
        except ValueError:
            parts = path.parts
        return any(part in self._library_dirs for part in parts)

    def _relative(self, path: Path) -> str | None:
        """Root-relative posix path; directories get a trailing slash."""
        try:
            rel = path.relative_to(self._root).as_posix()
        except ValueError:
            return None
        if rel == ".":
            return None
        try:
            is_dir = path.is_dir()
        except OSError:
            is_dir = False
        return rel + "/" if is_dir else rel

    @cached_property
    def _vcs_spec(self) -> pathspec.PathSpec:
        lines: list[str] = []
        for source in (
            self._root / ".gitignore",
            self._root / ".git" / "info" / "exclude",
        ):
            lines.extend(_read_patterns(source))
        return pathspec.PathSpec.from_lines("gitignore", lines)

    @cached_property
    def _tool_spec(self) -> pathspec.PathSpec:
        source = self._root / self._settings.ignore_file_name
        return pathspec.PathSpec.from_lines(
            "gitignore", _read_patterns(source)
        )


def _read_patterns(path: Path) -> list[str]:
    """Read ignore patterns; a missing or unreadable file yields none."""
    if not path.is_file():
        return []
    try:
        with open(path, encoding="utf-8", errors="ignore") as f:
            return f.readlines()
    except OSError as exc:
        logger.warning(
            "event=ignore_file_unreadable path=%s error=%s", path, exc
        )
        return []
