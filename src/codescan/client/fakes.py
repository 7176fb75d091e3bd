"""In-memory scan service for tests.

No network, no sleeps. Statuses and findings pages are scripted up
front; any step can be told to raise so each session state can be
failed independently.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from codescan.client.schemas import (
    CreateScanResponse,
    CreateUploadUrlResponse,
    GetScanResponse,
    ListFindingsResponse,
)
from codescan.constants import ArtifactType, ScanStatus


@dataclass
class RecordedUpload:
    url: str
    data: bytes
    content_md5: str
    encryption: str


@dataclass
class RecordedScan:
    client_token: str
    language: str
    artifacts: dict[ArtifactType, str]


@dataclass
class FakeScanClient:
    """Scriptable ScanServiceClient.

    ``poll_statuses`` are returned by successive ``get_scan`` calls; the
    last one repeats once the script runs out. ``pages`` are returned by
    successive ``list_findings`` calls, each but the last carrying a
    continuation token.
    """

    create_status: ScanStatus = ScanStatus.CREATED
    poll_statuses: list[ScanStatus] = field(
        default_factory=lambda: [ScanStatus.COMPLETED]
    )
    pages: list[str] = field(default_factory=lambda: ["[]"])
    failures: dict[str, Exception] = field(
        default_factory=lambda: dict[str, Exception]()
    )

    upload_url_requests: list[tuple[str, ArtifactType]] = field(
        default_factory=lambda: list[tuple[str, ArtifactType]]()
    )
    uploads: list[RecordedUpload] = field(
        default_factory=lambda: list[RecordedUpload]()
    )
    scans: list[RecordedScan] = field(
        default_factory=lambda: list[RecordedScan]()
    )
    get_scan_calls: int = 0
    list_findings_tokens: list[str | None] = field(
        default_factory=lambda: list[str | None]()
    )

    async def __aenter__(self) -> FakeScanClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    def fail(self, operation: str, error: Exception) -> FakeScanClient:
        """Make ``operation`` (a protocol method name) raise ``error``."""
        self.failures[operation] = error
        return self

    def _maybe_fail(self, operation: str) -> None:
        error = self.failures.get(operation)
        if error is not None:
            raise error

    async def create_upload_url(
        self, content_md5: str, artifact_type: ArtifactType
    ) -> CreateUploadUrlResponse:
        self._maybe_fail("create_upload_url")
        self.upload_url_requests.append((content_md5, artifact_type))
        upload_id = f"upload-{artifact_type}-{len(self.upload_url_requests)}"
        return CreateUploadUrlResponse(
            upload_url=f"https://uploads.invalid/{upload_id}",
            upload_id=upload_id,
        )

    async def put_object(
        self, url: str, data: bytes, content_md5: str, encryption: str
    ) -> None:
        self._maybe_fail("put_object")
        self.uploads.append(
            RecordedUpload(url, data, content_md5, encryption)
        )

    async def create_scan(
        self,
        client_token: str,
        language: str,
        artifacts: dict[ArtifactType, str],
    ) -> CreateScanResponse:
        self._maybe_fail("create_scan")
        self.scans.append(
            RecordedScan(client_token, language, dict(artifacts))
        )
        return CreateScanResponse(
            job_id=f"job-{uuid.uuid4().hex[:8]}",
            status=self.create_status,
        )

    async def get_scan(self, job_id: str) -> GetScanResponse:
        self._maybe_fail("get_scan")
        index = min(self.get_scan_calls, len(self.poll_statuses) - 1)
        self.get_scan_calls += 1
        return GetScanResponse(status=self.poll_statuses[index])

    async def list_findings(
        self,
        job_id: str,
        schema: str,
        next_token: str | None = None,
    ) -> ListFindingsResponse:
        self._maybe_fail("list_findings")
        self.list_findings_tokens.append(next_token)
        index = int(next_token) if next_token else 0
        has_more = index + 1 < len(self.pages)
        return ListFindingsResponse(
            code_scan_findings=self.pages[index],
            next_token=str(index + 1) if has_more else None,
        )


def findings_page(records: Iterable[dict[str, object]]) -> str:
    """Serialize recommendation records the way the service does."""
    return json.dumps(list(records))
