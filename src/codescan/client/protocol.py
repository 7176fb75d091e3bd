"""Protocol for the remote scan service.

``HttpScanClient`` satisfies it structurally (no inheritance); tests use
``FakeScanClient`` from :mod:`codescan.client.fakes`.
"""

from typing import Protocol

from codescan.client.schemas import (
    CreateScanResponse,
    CreateUploadUrlResponse,
    GetScanResponse,
    ListFindingsResponse,
)
from codescan.constants import ArtifactType


class ScanServiceClient(Protocol):
    async def create_upload_url(
        self, content_md5: str, artifact_type: ArtifactType
    ) -> CreateUploadUrlResponse: ...
    async def put_object(
        self, url: str, data: bytes, content_md5: str, encryption: str
    ) -> None: ...
    async def create_scan(
        self,
        client_token: str,
        language: str,
        artifacts: dict[ArtifactType, str],
    ) -> CreateScanResponse: ...
    async def get_scan(self, job_id: str) -> GetScanResponse: ...
    async def list_findings(
        self,
        job_id: str,
        schema: str,
        next_token: str | None = None,
    ) -> ListFindingsResponse: ...
