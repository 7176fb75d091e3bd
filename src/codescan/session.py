"""Scan session orchestration: payload to findings in one async job.

Steps, strictly in order:
  1. Build and package the payload (worker thread, payload deadline).
  2. Request an upload URL per archive and upload it (source first).
  3. Create the remote scan job.
  4. Poll the job until it completes, fails, or the overall deadline
     (measured from session start) passes.
  5. Fetch every findings page and map them into issues.

Any failure moves the session to FAILED and raises exactly one
:class:`~codescan.errors.CodeScanError`. Temporary archives are removed
on every exit path.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from codescan.client.protocol import ScanServiceClient
from codescan.client.schemas import CreateUploadUrlResponse
from codescan.config import Settings
from codescan.constants import (
    AES256,
    BYTES_IN_KB,
    ERROR_TRUNCATION_CHARS,
    FINDINGS_SCHEMA,
    MILLIS_IN_SECOND,
    TERMINAL_STATUSES,
    ArtifactType,
    ScanStatus,
    SessionState,
    StageProgress,
)
from codescan.errors import (
    CodeScanError,
    InvalidTransition,
    PayloadBuildTimeout,
    ScanCreationFailed,
    ScanFailed,
    ScanTimeout,
    UploadFailed,
)
from codescan.events import ProgressCallback, StageEvent
from codescan.payload import archive
from codescan.payload.schemas import Payload
from codescan.payload.session_config import CodeScanSessionConfig
from codescan.results import Issue, map_to_issues

logger = logging.getLogger(__name__)


# Allowed moves; FAILED is reachable from every non-terminal state.
_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.BUILDING_PAYLOAD: frozenset(
        {SessionState.UPLOADING, SessionState.FAILED}
    ),
    SessionState.UPLOADING: frozenset(
        {SessionState.CREATING_SCAN, SessionState.FAILED}
    ),
    SessionState.CREATING_SCAN: frozenset(
        {SessionState.POLLING, SessionState.FAILED}
    ),
    SessionState.POLLING: frozenset(
        {SessionState.FETCHING_RESULTS, SessionState.FAILED}
    ),
    SessionState.FETCHING_RESULTS: frozenset(
        {SessionState.DONE, SessionState.FAILED}
    ),
    SessionState.DONE: frozenset(),
    SessionState.FAILED: frozenset(),
}

_STATUS_RANK: dict[ScanStatus, int] = {
    ScanStatus.NOT_STARTED: 0,
    ScanStatus.CREATED: 1,
    ScanStatus.RUNNING: 2,
    ScanStatus.COMPLETED: 3,
    ScanStatus.FAILED: 3,
}


def transition(current: SessionState, target: SessionState) -> SessionState:
    """Return ``target`` if the move is legal, else raise."""
    if target not in _TRANSITIONS[current]:
        raise InvalidTransition(current, target)
    return target


@dataclass
class ScanJob:
    """Remote job identity; status only moves forward."""

    client_token: str = field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str | None = None
    status: ScanStatus = ScanStatus.NOT_STARTED

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def observe(self, status: ScanStatus) -> None:
        """Record a status reported by the service.

        Statuses that would move the job backwards, or out of a
        terminal status, are ignored.
        """
        if self.is_terminal:
            return
        if _STATUS_RANK[status] < _STATUS_RANK[self.status]:
            logger.debug(
                "event=status_regression_ignored job_id=%s current=%s "
                "reported=%s",
                self.job_id,
                self.status,
                status,
            )
            return
        self.status = status


@dataclass(frozen=True)
class ScanResponseContext:
    """Summary metrics for a finished scan."""

    job_id: str
    language: str
    payload_size: int
    lines_scanned: int
    total_issues: int


@dataclass(frozen=True)
class ScanResult:
    issues: list[Issue]
    context: ScanResponseContext


def content_md5(data: bytes) -> str:
    """Base64 MD5 digest, as sent in the Content-MD5 header."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class ScanSession:
    """Runs one scan end to end. Each instance runs at most once.

    Must be awaited from an event loop that does not serve interactive
    work; blocking payload work is pushed to a worker thread.
    """

    def __init__(
        self,
        config: CodeScanSessionConfig,
        client: ScanServiceClient,
        settings: Settings | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        cfg = settings or Settings()
        self._config = config
        self._client = client
        self._polling_interval = cfg.polling_interval_seconds
        self._on_progress = on_progress
        self._payload: Payload | None = None
        self._started = False
        self._start_time = 0.0
        self.state = SessionState.BUILDING_PAYLOAD
        self.job = ScanJob()
        self.upload_ids: dict[ArtifactType, str] = {}

    async def run(self) -> ScanResult:
        """Run every step; raise the first failure."""
        if self._started:
            raise InvalidTransition(self.state, SessionState.BUILDING_PAYLOAD)
        self._started = True
        self._start_time = time.monotonic()
        self._report(StageProgress.RUNNING)
        try:
            payload = await self._build_payload()
            self._payload = payload

            self._advance(SessionState.UPLOADING)
            await self._upload(payload)

            self._advance(SessionState.CREATING_SCAN)
            job_id = await self._create_scan(payload.context.language)

            self._advance(SessionState.POLLING)
            await self._poll(job_id)

            self._advance(SessionState.FETCHING_RESULTS)
            issues = await self._fetch_issues(job_id)

            self._advance(SessionState.DONE)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self._cleanup()

        context = ScanResponseContext(
            job_id=job_id,
            language=payload.context.language,
            payload_size=payload.context.payload_size,
            lines_scanned=payload.context.total_lines,
            total_issues=len(issues),
        )
        logger.info(
            "event=scan_complete job_id=%s issues=%d elapsed_s=%.1f",
            job_id,
            len(issues),
            self._elapsed(),
        )
        return ScanResult(issues=issues, context=context)

    # ── Steps ────────────────────────────────────────────

    async def _build_payload(self) -> Payload:
        timeout = self._config.profile.create_payload_timeout_seconds
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._config.create_payload)
        try:
            payload = await asyncio.wait_for(asyncio.shield(future), timeout)
        except TimeoutError as exc:
            future.add_done_callback(_discard_late_payload)
            raise PayloadBuildTimeout(timeout) from exc

        ctx = payload.context
        logger.debug(
            "event=payload_ready size_kb=%.1f lines=%d files=%d "
            "build_s=%.2f language=%s",
            ctx.payload_size / BYTES_IN_KB,
            ctx.total_lines,
            ctx.total_files,
            ctx.total_time_ms / MILLIS_IN_SECOND,
            ctx.language,
        )
        return payload

    async def _upload(self, payload: Payload) -> None:
        artifacts: list[tuple[ArtifactType, Path]] = [
            (ArtifactType.SOURCE_CODE, payload.src_zip)
        ]
        if payload.build_zip is not None:
            artifacts.append((ArtifactType.BUILT_JARS, payload.build_zip))

        for artifact_type, path in artifacts:
            logger.debug(
                "event=upload_start artifact=%s path=%s", artifact_type, path
            )
            response = await self._upload_artifact(artifact_type, path)
            self.upload_ids[artifact_type] = response.upload_id
            logger.debug(
                "event=upload_complete artifact=%s upload_id=%s "
                "request_id=%s",
                artifact_type,
                response.upload_id,
                response.request_id,
            )

    async def _upload_artifact(
        self, artifact_type: ArtifactType, path: Path
    ) -> CreateUploadUrlResponse:
        try:
            data = await asyncio.to_thread(path.read_bytes)
            md5 = content_md5(data)
            response = await self._client.create_upload_url(
                md5, artifact_type
            )
            await self._client.put_object(
                response.upload_url, data, md5, AES256
            )
        except Exception as exc:
            logger.debug(
                "event=upload_failed artifact=%s error=%s",
                artifact_type,
                exc,
            )
            raise UploadFailed(artifact_type, _short(exc)) from exc
        return response

    async def _create_scan(self, language: str) -> str:
        logger.debug("event=create_scan_start language=%s", language)
        try:
            response = await self._client.create_scan(
                self.job.client_token, language, dict(self.upload_ids)
            )
        except Exception as exc:
            logger.debug("event=create_scan_failed error=%s", exc)
            raise ScanCreationFailed(_short(exc)) from exc

        self.job.job_id = response.job_id
        self.job.observe(response.status)
        logger.debug(
            "event=create_scan_complete job_id=%s status=%s request_id=%s",
            response.job_id,
            response.status,
            response.request_id,
        )
        if response.status == ScanStatus.FAILED:
            raise ScanCreationFailed(
                f"service reported status {response.status} "
                f"for job {response.job_id}"
            )
        return response.job_id

    async def _poll(self, job_id: str) -> None:
        timeout = self._config.profile.overall_job_timeout_seconds
        while self.job.status != ScanStatus.COMPLETED:
            if self._elapsed() >= timeout:
                raise ScanTimeout(job_id, timeout)
            logger.debug(
                "event=poll job_id=%s elapsed_s=%.1f",
                job_id,
                self._elapsed(),
            )
            try:
                response = await self._client.get_scan(job_id)
            except Exception as exc:
                raise ScanFailed(job_id, _short(exc)) from exc
            self.job.observe(response.status)

            if self.job.status == ScanStatus.FAILED:
                raise ScanFailed(job_id, response.error_message or "")
            if self.job.status == ScanStatus.COMPLETED:
                break
            remaining = timeout - self._elapsed()
            await asyncio.sleep(
                max(0.0, min(self._polling_interval, remaining))
            )
        logger.debug("event=scan_job_completed job_id=%s", job_id)

    async def _fetch_issues(self, job_id: str) -> list[Issue]:
        pages: list[str] = []
        next_token: str | None = None
        try:
            while True:
                response = await self._client.list_findings(
                    job_id, FINDINGS_SCHEMA, next_token
                )
                pages.append(response.code_scan_findings)
                next_token = response.next_token
                if not next_token:
                    break
            logger.debug(
                "event=findings_fetched job_id=%s pages=%d",
                job_id,
                len(pages),
            )
            return await asyncio.to_thread(
                map_to_issues, pages, self._config.project_root
            )
        except Exception as exc:
            raise ScanFailed(job_id, _short(exc)) from exc

    # ── State & cleanup ──────────────────────────────────

    def _advance(self, target: SessionState) -> None:
        self._report(StageProgress.DONE)
        self.state = transition(self.state, target)
        self._report(
            StageProgress.DONE
            if target == SessionState.DONE
            else StageProgress.RUNNING
        )

    def _fail(self, exc: Exception) -> None:
        failed_in = self.state
        if failed_in == SessionState.DONE:
            # Only a progress callback can raise after the last step.
            logger.debug("event=progress_callback_failed error=%s", exc)
            return
        self.state = transition(self.state, SessionState.FAILED)
        logger.debug(
            "event=session_failed state=%s error=%s", failed_in, exc
        )
        message = str(exc) if isinstance(exc, CodeScanError) else _short(exc)
        self._report(StageProgress.ERROR, message)

    def _report(self, status: StageProgress, message: str = "") -> None:
        if self._on_progress:
            self._on_progress(
                StageEvent(
                    state=self.state,
                    status=status,
                    message=message,
                    elapsed_ms=self._elapsed() * MILLIS_IN_SECOND,
                )
            )

    def _elapsed(self) -> float:
        return time.monotonic() - self._start_time

    def _cleanup(self) -> None:
        if self._payload is None:
            return
        for path in self._payload.archives:
            try:
                archive.remove_archive(path)
            except OSError as exc:
                logger.warning(
                    "event=archive_cleanup_failed path=%s error=%s",
                    path,
                    exc,
                )


def _discard_late_payload(future: asyncio.Future[Payload]) -> None:
    """Delete archives produced by a payload build that timed out."""
    if future.cancelled() or future.exception() is not None:
        return
    for path in future.result().archives:
        archive.remove_archive(path)


def _short(exc: BaseException) -> str:
    return (str(exc) or type(exc).__name__)[:ERROR_TRUNCATION_CHARS]
