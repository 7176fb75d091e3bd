"""Shared constants: single source of truth for cross-module values.

StrEnum members are str-compatible, so they go straight into JSON
request bodies and log lines.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class ScanStatus(StrEnum):
    """Remote job status as reported by the scan service."""

    NOT_STARTED = "NotStarted"
    CREATED = "Created"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"


TERMINAL_STATUSES = frozenset({ScanStatus.COMPLETED, ScanStatus.FAILED})


class SessionState(StrEnum):
    """Client-side scan session states."""

    BUILDING_PAYLOAD = "building_payload"
    UPLOADING = "uploading"
    CREATING_SCAN = "creating_scan"
    POLLING = "polling"
    FETCHING_RESULTS = "fetching_results"
    DONE = "done"
    FAILED = "failed"


class ArtifactType(StrEnum):
    """Kinds of uploaded archive."""

    SOURCE_CODE = "SourceCode"
    BUILT_JARS = "BuiltJars"


class StageProgress(StrEnum):
    """Progress status carried by session stage events."""

    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


# ── Upload Protocol ──────────────────────────────────────

AES256 = "AES256"
CONTENT_MD5_HEADER = "Content-MD5"
SERVER_SIDE_ENCRYPTION_HEADER = "x-amz-server-side-encryption"
ZIP_CONTENT_TYPE = "application/zip"

FINDINGS_SCHEMA = "CodeScanFindings/1.0"

# ── Archive Layout ───────────────────────────────────────

ARTIFACTS_DIR = "utgRequiredArtifactsDir"
BUILD_LOG_DIR = "buildAndExecuteLogDir"
REPO_MAP_DIR = "repoMapData"
TEST_COVERAGE_DIR = "testCoverageDir"
ARTIFACT_SUBDIRS = (BUILD_LOG_DIR, REPO_MAP_DIR, TEST_COVERAGE_DIR)

# ── Limits & Timeouts ────────────────────────────────────

DEFAULT_PAYLOAD_LIMIT_BYTES = 200 * 1024 * 1024
DEFAULT_CREATE_PAYLOAD_TIMEOUT = 600
DEFAULT_SCAN_TIMEOUT = 600
DEFAULT_POLLING_INTERVAL = 1.0

CLOUDFORMATION_PAYLOAD_LIMIT_BYTES = 200 * 1024
CLOUDFORMATION_SCAN_TIMEOUT = 60

# ── Circuit Breaker Configuration ────────────────────────

CB_SERVICE_FAILURE_THRESHOLD = 5
CB_SERVICE_RECOVERY_TIMEOUT = 30

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 1
RETRY_MAX_WAIT = 10

# ── Misc ─────────────────────────────────────────────────

BYTES_IN_KB = 1024
MILLIS_IN_SECOND = 1000
ERROR_TRUNCATION_CHARS = 200

# ── Stage Labels (user-facing) ───────────────────────────

STAGE_LABELS: dict[str, str] = {
    SessionState.BUILDING_PAYLOAD: "Building payload",
    SessionState.UPLOADING: "Uploading artifacts",
    SessionState.CREATING_SCAN: "Creating scan job",
    SessionState.POLLING: "Waiting for scan to finish",
    SessionState.FETCHING_RESULTS: "Fetching findings",
    SessionState.DONE: "Done",
    SessionState.FAILED: "Failed",
}
