"""HTTP client for the scan service with retry and circuit breaking."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from codescan.client.schemas import (
    CreateScanResponse,
    CreateUploadUrlResponse,
    GetScanResponse,
    ListFindingsResponse,
)
from codescan.config import Settings
from codescan.constants import (
    CB_SERVICE_FAILURE_THRESHOLD,
    CB_SERVICE_RECOVERY_TIMEOUT,
    CONTENT_MD5_HEADER,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
    SERVER_SIDE_ENCRYPTION_HEADER,
    ZIP_CONTENT_TYPE,
    ArtifactType,
)
from codescan.resilience.errors import is_retryable

logger = logging.getLogger(__name__)


def _should_retry(error: BaseException) -> bool:
    """Retry transport failures, never an open circuit."""
    if isinstance(error, CircuitBreakerError):
        return False
    return is_retryable(error)


def _counts_as_outage(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Only retryable failures trip the breaker; 4xx responses do not.

    The circuitbreaker library calls this with (thrown_type, thrown_value).
    """
    return is_retryable(thrown_value)


_transport_retry = retry(
    stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
    wait=wait_exponential_jitter(
        initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
    ),
    retry=retry_if_exception(_should_retry),
    reraise=True,
)


class HttpScanClient:
    """Talks to the scan service JSON API and presigned upload URLs.

    Every call is retried on transient, server and timeout errors with
    jittered exponential backoff. Request bodies are built once per
    call, so a retried ``create_scan`` carries the same client token.

    Usage::

        async with HttpScanClient(settings) as client:
            await client.get_scan(job_id)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = settings or Settings()
        self._api_token = cfg.api_token
        self._client = httpx.AsyncClient(
            base_url=cfg.service_url,
            timeout=cfg.request_timeout_seconds,
            transport=transport,
        )
        self._breaker = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=CB_SERVICE_FAILURE_THRESHOLD,
            recovery_timeout=CB_SERVICE_RECOVERY_TIMEOUT,
            expected_exception=_counts_as_outage,
            name="scan_service",
        )

    async def __aenter__(self) -> HttpScanClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Service API ──────────────────────────────────────

    async def create_upload_url(
        self, content_md5: str, artifact_type: ArtifactType
    ) -> CreateUploadUrlResponse:
        data = await self._call_service(
            "POST",
            "/v1/upload-urls",
            json={"contentMd5": content_md5, "artifactType": artifact_type},
        )
        return CreateUploadUrlResponse.model_validate(data)

    async def create_scan(
        self,
        client_token: str,
        language: str,
        artifacts: dict[ArtifactType, str],
    ) -> CreateScanResponse:
        body = {
            "clientToken": client_token,
            "programmingLanguage": {"languageName": language},
            "artifacts": {str(k): v for k, v in artifacts.items()},
        }
        data = await self._call_service("POST", "/v1/scans", json=body)
        return CreateScanResponse.model_validate(data)

    async def get_scan(self, job_id: str) -> GetScanResponse:
        data = await self._call_service("GET", f"/v1/scans/{job_id}")
        return GetScanResponse.model_validate(data)

    async def list_findings(
        self,
        job_id: str,
        schema: str,
        next_token: str | None = None,
    ) -> ListFindingsResponse:
        params = {"codeScanFindingsSchema": schema}
        if next_token:
            params["nextToken"] = next_token
        data = await self._call_service(
            "GET", f"/v1/scans/{job_id}/findings", params=params
        )
        return ListFindingsResponse.model_validate(data)

    # ── Upload ───────────────────────────────────────────

    @_transport_retry
    async def put_object(
        self, url: str, data: bytes, content_md5: str, encryption: str
    ) -> None:
        """PUT an archive to a presigned URL (no service credentials)."""
        response = await self._client.put(
            url,
            content=data,
            headers={
                "Content-Type": ZIP_CONTENT_TYPE,
                CONTENT_MD5_HEADER: content_md5,
                SERVER_SIDE_ENCRYPTION_HEADER: encryption,
            },
        )
        response.raise_for_status()

    # ── Internals ────────────────────────────────────────

    @_transport_retry
    async def _call_service(
        self, method: str, url: str, **kwargs: Any
    ) -> Any:
        breaker = self._breaker
        if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
            raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
        with breaker:  # pyright: ignore[reportUnknownMemberType]
            response = await self._client.request(
                method, url, headers=self._auth_headers(), **kwargs
            )
            response.raise_for_status()
        logger.debug(
            "event=service_call method=%s url=%s status=%d request_id=%s",
            method,
            url,
            response.status_code,
            response.headers.get("x-request-id", ""),
        )
        return response.json()

    def _auth_headers(self) -> dict[str, str]:
        if not self._api_token:
            return {}
        return {"Authorization": f"Bearer {self._api_token}"}
