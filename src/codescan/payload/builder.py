"""Select the project files that make up a scan payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from codescan.errors import (
    BuildArtifactsNotFound,
    CodeScanError,
    FileUnreadable,
    NoFileSelected,
    NoValidFiles,
    PayloadTooLarge,
)
from codescan.payload.language import detect_language
from codescan.payload.project import ProjectIndex
from codescan.payload.schemas import FileManifest, PayloadMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayloadLimits:
    """Policy applied while collecting files."""

    payload_limit_bytes: int
    # None = every extension; otherwise lower-case suffixes like ".yaml"
    source_extensions: frozenset[str] | None = None


def build(
    selected_file: Path | None,
    project: ProjectIndex,
    limits: PayloadLimits,
) -> PayloadMetadata:
    """Collect the payload manifest for ``selected_file``'s project.

    The selected file is always included first. Module roots are then
    walked depth-first with an explicit stack; ignored entries, library
    sources and already-visited directories are skipped. Unreadable
    files are logged and skipped.

    Raises:
        NoFileSelected: ``selected_file`` is None.
        PayloadTooLarge: adding a file would exceed the byte limit.
        NoValidFiles: no included file has a known language.
        BuildArtifactsNotFound: metadata collection failed unexpectedly.
    """
    if selected_file is None:
        raise NoFileSelected()
    selected = Path(selected_file).resolve()

    try:
        manifest = _collect(selected, project, limits)
    except CodeScanError:
        raise
    except Exception as exc:
        logger.debug("event=payload_metadata_failed error=%s", exc)
        raise BuildArtifactsNotFound(str(exc)) from exc

    language = manifest.dominant_language()
    if language is None:
        raise NoValidFiles()

    return PayloadMetadata(
        source_files=list(manifest.files),
        payload_size=manifest.total_size,
        lines_scanned=manifest.total_lines,
        language=language,
    )


def _collect(
    selected: Path, project: ProjectIndex, limits: PayloadLimits
) -> FileManifest:
    manifest = FileManifest()

    size = selected.stat().st_size
    if manifest.would_exceed(size, limits.payload_limit_bytes):
        raise PayloadTooLarge(limits.payload_limit_bytes, selected)
    try:
        lines = count_lines(selected)
    except FileUnreadable as exc:
        raise BuildArtifactsNotFound(str(exc)) from exc
    manifest.add(selected, size, lines, detect_language(selected))

    visited: set[Path] = set()
    for module_root in project.module_roots():
        stack: list[Path] = [module_root]
        while stack:
            current = stack.pop()
            try:
                is_dir = current.is_dir()
                is_file = not is_dir and current.is_file()
            except OSError as exc:
                logger.debug(
                    "event=file_skipped path=%s error=%s", current, exc
                )
                continue
            if is_dir:
                _expand(current, project, visited, stack)
            elif is_file:
                _include(current, selected, project, limits, manifest)

    return manifest


def _expand(
    directory: Path,
    project: ProjectIndex,
    visited: set[Path],
    stack: list[Path],
) -> None:
    key = directory.resolve()
    if key in visited:
        return
    visited.add(key)
    if (
        project.is_vcs_ignored(directory)
        or project.is_tool_ignored(directory)
        or project.is_in_library_source(directory)
    ):
        return
    try:
        stack.extend(project.children(directory))
    except OSError as exc:
        logger.debug(
            "event=directory_unreadable path=%s error=%s", directory, exc
        )


def _include(
    path: Path,
    selected: Path,
    project: ProjectIndex,
    limits: PayloadLimits,
    manifest: FileManifest,
) -> None:
    if path in manifest or path.resolve() == selected:
        return
    if (
        project.is_vcs_ignored(path)
        or project.is_tool_ignored(path)
        or project.is_in_library_source(path)
    ):
        return
    if (
        limits.source_extensions is not None
        and path.suffix.lower() not in limits.source_extensions
    ):
        return

    try:
        size = path.stat().st_size
    except OSError as exc:
        logger.debug("event=file_skipped path=%s error=%s", path, exc)
        return
    if manifest.would_exceed(size, limits.payload_limit_bytes):
        raise PayloadTooLarge(limits.payload_limit_bytes, path)

    try:
        lines = count_lines(path)
    except FileUnreadable as exc:
        logger.debug("event=file_skipped path=%s error=%s", path, exc)
        return
    manifest.add(path, size, lines, detect_language(path))


def count_lines(path: Path) -> int:
    """Count lines in a file, decoding as UTF-8 with replacement.

    Raises:
        FileUnreadable: the file cannot be opened or decoded.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return sum(1 for _ in f)
    except (OSError, UnicodeError) as exc:
        raise FileUnreadable(path, str(exc)) from exc
