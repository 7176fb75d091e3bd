"""Typed failures raised while building payloads and running scans.

Every error carries a human-readable message suitable for showing to
the user as-is. ``FileUnreadable`` is the only non-fatal member: the
payload builder absorbs it and skips the file.
"""

from __future__ import annotations

from pathlib import Path


class CodeScanError(Exception):
    """Base class for all scan failures."""


class NoFileSelected(CodeScanError):
    def __init__(self) -> None:
        super().__init__(
            "No file selected. Open a file in the project to scan."
        )


class PayloadTooLarge(CodeScanError):
    def __init__(self, limit_bytes: int, path: Path | None = None) -> None:
        self.limit_bytes = limit_bytes
        self.path = path
        where = f" while adding {path}" if path else ""
        super().__init__(
            f"Payload exceeds the {limit_bytes} byte limit{where}."
        )


class NoValidFiles(CodeScanError):
    def __init__(self) -> None:
        super().__init__(
            "The project does not contain any file in a supported "
            "language."
        )


class BuildArtifactsNotFound(CodeScanError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Cannot find build artifacts: {detail}")


class FileUnreadable(CodeScanError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        super().__init__(f"Cannot read {path}: {detail}")


class ArchiveWriteError(CodeScanError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        super().__init__(f"Zipping error for {path}: {detail}")


class PayloadBuildTimeout(CodeScanError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Creating the payload took longer than {timeout_seconds}s."
        )


class UploadFailed(CodeScanError):
    def __init__(self, artifact_type: str, detail: str) -> None:
        self.artifact_type = artifact_type
        super().__init__(
            f"Uploading {artifact_type} artifact failed: {detail}"
        )


class ScanCreationFailed(CodeScanError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Creating the scan job failed: {detail}")


class ScanFailed(CodeScanError):
    def __init__(self, job_id: str, detail: str = "") -> None:
        self.job_id = job_id
        suffix = f": {detail}" if detail else ""
        super().__init__(f"Scan job {job_id} failed{suffix}")


class ScanTimeout(CodeScanError):
    def __init__(self, job_id: str, timeout_seconds: float) -> None:
        self.job_id = job_id
        super().__init__(
            f"Scan job {job_id} did not finish within "
            f"{timeout_seconds}s."
        )


class InvalidTransition(CodeScanError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Illegal session transition {current} -> {target}"
        )
