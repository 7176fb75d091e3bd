"""Package payload files into the zip layout the scan service unpacks.

Source layout::

    <projectBaseName>/<relative/path>        one entry per source file
    utgRequiredArtifactsDir/                 fixed markers, always present
    utgRequiredArtifactsDir/buildAndExecuteLogDir/
    utgRequiredArtifactsDir/repoMapData/
    utgRequiredArtifactsDir/testCoverageDir/
    utgRequiredArtifactsDir/buildAndExecuteLogDir/<log name>   optional

Entry names always use ``/``. A failure on any entry deletes the partial
archive; callers never see an incomplete zip.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path

from codescan.constants import (
    ARTIFACT_SUBDIRS,
    ARTIFACTS_DIR,
    BUILD_LOG_DIR,
)
from codescan.errors import ArchiveWriteError

logger = logging.getLogger(__name__)


def entry_name(file: Path, project_root: Path) -> str:
    """Archive entry for ``file``: ``<rootName>/<relative path>``."""
    relative = file.relative_to(project_root).as_posix().replace("\\", "/")
    return f"{project_root.name}/{relative}"


def package(
    files: Iterable[Path],
    project_root: Path,
    aux_log: Path | None = None,
) -> Path:
    """Write source files, marker directories and the optional log.

    Returns the path of a new temporary zip owned by the caller.

    Raises:
        ArchiveWriteError: an entry could not be written.
    """
    archive = _temporary_zip()
    try:
        with zipfile.ZipFile(
            archive,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            strict_timestamps=False,
        ) as zf:
            for file in files:
                _write_entry(zf, file, lambda f: entry_name(f, project_root))

            logger.debug("event=zip_add_dir entry=%s/", ARTIFACTS_DIR)
            zf.mkdir(ARTIFACTS_DIR)
            for sub_dir in ARTIFACT_SUBDIRS:
                logger.debug(
                    "event=zip_add_dir entry=%s/%s/", ARTIFACTS_DIR, sub_dir
                )
                zf.mkdir(f"{ARTIFACTS_DIR}/{sub_dir}")

            if aux_log is not None:
                _write_entry(
                    zf,
                    aux_log,
                    lambda f: f"{ARTIFACTS_DIR}/{BUILD_LOG_DIR}/{f.name}",
                )
    except BaseException:
        remove_archive(archive)
        raise
    return archive


def package_directory(directory: Path) -> Path:
    """Zip every regular file under ``directory``, relative to it.

    Used for the build-artifacts upload (compiled classes, jars).
    """
    archive = _temporary_zip()
    try:
        with zipfile.ZipFile(
            archive,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            strict_timestamps=False,
        ) as zf:
            for file in sorted(directory.rglob("*")):
                if file.is_file():
                    _write_entry(
                        zf,
                        file,
                        lambda f: f.relative_to(directory).as_posix(),
                    )
    except BaseException:
        remove_archive(archive)
        raise
    return archive


def remove_archive(archive: Path | None) -> None:
    """Delete a temporary archive; missing files are ignored."""
    if archive is None:
        return
    with contextlib.suppress(FileNotFoundError):
        archive.unlink()
        logger.debug("event=archive_removed path=%s", archive)


def _write_entry(
    zf: zipfile.ZipFile, file: Path, name_for: Callable[[Path], str]
) -> None:
    try:
        name = name_for(file)
        logger.debug("event=zip_add_file entry=%s", name)
        zf.write(file, arcname=name)
    except (OSError, ValueError) as exc:
        raise ArchiveWriteError(file, str(exc)) from exc


def _temporary_zip() -> Path:
    fd, name = tempfile.mkstemp(prefix="codescan-", suffix=".zip")
    os.close(fd)
    return Path(name)
