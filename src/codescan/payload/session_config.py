"""Per-scan configuration: scan profile, inputs, and payload creation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from codescan.config import Settings
from codescan.constants import (
    BYTES_IN_KB,
    CLOUDFORMATION_PAYLOAD_LIMIT_BYTES,
    CLOUDFORMATION_SCAN_TIMEOUT,
    MILLIS_IN_SECOND,
)
from codescan.errors import (
    BuildArtifactsNotFound,
    NoFileSelected,
    PayloadTooLarge,
)
from codescan.payload import archive, builder
from codescan.payload.project import LocalProject
from codescan.payload.schemas import Payload, PayloadContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanProfile:
    """Limits and timeouts for one kind of scan."""

    name: str
    payload_limit_bytes: int
    create_payload_timeout_seconds: float
    overall_job_timeout_seconds: float
    source_extensions: frozenset[str] | None = None


def default_profile(settings: Settings) -> ScanProfile:
    return ScanProfile(
        name="default",
        payload_limit_bytes=settings.payload_limit_bytes,
        create_payload_timeout_seconds=(
            settings.create_payload_timeout_seconds
        ),
        overall_job_timeout_seconds=settings.overall_job_timeout_seconds,
    )


def cloudformation_profile(settings: Settings) -> ScanProfile:
    """YAML templates only, with a smaller budget and shorter deadline."""
    return ScanProfile(
        name="cloudformation",
        payload_limit_bytes=CLOUDFORMATION_PAYLOAD_LIMIT_BYTES,
        create_payload_timeout_seconds=(
            settings.create_payload_timeout_seconds
        ),
        overall_job_timeout_seconds=CLOUDFORMATION_SCAN_TIMEOUT,
        source_extensions=frozenset({".yaml", ".yml"}),
    )


PROFILES = {
    "default": default_profile,
    "cloudformation": cloudformation_profile,
}


class CodeScanSessionConfig:
    """Everything a scan session needs to build its payload."""

    def __init__(
        self,
        selected_file: Path | None,
        project: LocalProject,
        profile: ScanProfile,
        build_artifacts_dir: Path | None = None,
        aux_log: Path | None = None,
    ) -> None:
        self.selected_file = (
            Path(selected_file).resolve() if selected_file else None
        )
        self.project = project
        self.profile = profile
        self.build_artifacts_dir = build_artifacts_dir
        self.aux_log = aux_log

    @classmethod
    def create(
        cls,
        selected_file: Path | None,
        project: LocalProject,
        settings: Settings | None = None,
        profile_name: str = "default",
        **kwargs: Path | None,
    ) -> CodeScanSessionConfig:
        cfg = settings or Settings()
        try:
            profile = PROFILES[profile_name](cfg)
        except KeyError:
            msg = (
                f"Unknown scan profile '{profile_name}'. "
                f"Valid: {', '.join(PROFILES)}"
            )
            raise ValueError(msg) from None
        return cls(selected_file, project, profile, **kwargs)

    @property
    def project_root(self) -> Path:
        return self.project.root

    def relative_path(self) -> Path | None:
        """Selected file relative to the project root, if inside it."""
        if self.selected_file is None:
            return None
        try:
            return self.selected_file.relative_to(self.project_root)
        except ValueError:
            logger.debug(
                "Cannot calculate relative path of %s with respect to %s",
                self.selected_file,
                self.project_root,
            )
            return None

    def create_payload(self) -> Payload:
        """Select files, then package source and build archives.

        Blocking; the scan session runs it in a worker thread.
        """
        if self.selected_file is None:
            raise NoFileSelected()
        limit = self.profile.payload_limit_bytes
        if (
            self.selected_file.is_file()
            and self.selected_file.stat().st_size > limit
        ):
            raise PayloadTooLarge(limit, self.selected_file)

        start = time.monotonic()
        logger.debug(
            "Creating payload. Project root for the context truncation: %s",
            self.project_root,
        )
        metadata = builder.build(
            self.selected_file,
            self.project,
            builder.PayloadLimits(
                payload_limit_bytes=limit,
                source_extensions=self.profile.source_extensions,
            ),
        )

        build_zip: Path | None = None
        if self.build_artifacts_dir is not None:
            if not self.build_artifacts_dir.is_dir():
                raise BuildArtifactsNotFound(
                    f"{self.build_artifacts_dir} is not a directory"
                )
            build_zip = archive.package_directory(self.build_artifacts_dir)

        try:
            src_zip = archive.package(
                metadata.source_files, self.project_root, self.aux_log
            )
        except BaseException:
            archive.remove_archive(build_zip)
            raise

        elapsed_ms = (time.monotonic() - start) * MILLIS_IN_SECOND
        context = PayloadContext(
            language=metadata.language,
            total_lines=metadata.lines_scanned,
            total_files=len(metadata.source_files),
            total_time_ms=elapsed_ms,
            scanned_files=metadata.source_files,
            payload_size=metadata.payload_size,
            src_payload_size=src_zip.stat().st_size,
        )
        logger.debug(
            "event=payload_created size_kb=%.1f lines=%d files=%d "
            "seconds=%.2f language=%s",
            context.payload_size / BYTES_IN_KB,
            context.total_lines,
            context.total_files,
            elapsed_ms / MILLIS_IN_SECOND,
            context.language,
        )
        return Payload(context=context, src_zip=src_zip, build_zip=build_zip)
