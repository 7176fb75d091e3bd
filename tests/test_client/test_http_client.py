"""Tests for the HTTP scan client: wire format, retries, breaker."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import TypeAlias

import httpx
import pytest
from circuitbreaker import CircuitBreakerError
from tenacity import wait_none

from codescan.client.http import HttpScanClient
from codescan.config import Settings
from codescan.constants import (
    FINDINGS_SCHEMA,
    ArtifactType,
    ScanStatus,
)

Handler: TypeAlias = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Iterator[None]:
    """Disable tenacity wait time for fast tests."""
    decorated = (HttpScanClient._call_service, HttpScanClient.put_object)
    originals = [f.retry.wait for f in decorated]  # type: ignore[attr-defined]
    for f in decorated:
        f.retry.wait = wait_none()  # type: ignore[attr-defined]
    yield
    for f, wait in zip(decorated, originals, strict=True):
        f.retry.wait = wait  # type: ignore[attr-defined]


@pytest.fixture
def client_settings() -> Settings:
    return Settings(
        _env_file=None,  # pyright: ignore[reportCallIssue]
        service_url="https://scan.invalid",
        api_token="secret-token",
    )


def _client(settings: Settings, handler: Handler) -> HttpScanClient:
    return HttpScanClient(settings, transport=httpx.MockTransport(handler))


class TestWireFormat:
    async def test_create_upload_url(self, client_settings: Settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "uploadUrl": "https://uploads.invalid/abc",
                    "uploadId": "up-1",
                    "requestId": "req-1",
                },
            )

        async with _client(client_settings, handler) as client:
            response = await client.create_upload_url(
                "md5==", ArtifactType.SOURCE_CODE
            )

        assert response.upload_id == "up-1"
        assert response.request_id == "req-1"
        (request,) = seen
        assert request.method == "POST"
        assert request.url.path == "/v1/upload-urls"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert json.loads(request.content) == {
            "contentMd5": "md5==",
            "artifactType": "SourceCode",
        }

    async def test_create_scan_body(self, client_settings: Settings) -> None:
        bodies: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200, json={"jobId": "job-1", "status": "Created"}
            )

        async with _client(client_settings, handler) as client:
            response = await client.create_scan(
                "token-1",
                "python",
                {ArtifactType.SOURCE_CODE: "up-1"},
            )

        assert response.job_id == "job-1"
        assert response.status is ScanStatus.CREATED
        assert bodies == [
            {
                "clientToken": "token-1",
                "programmingLanguage": {"languageName": "python"},
                "artifacts": {"SourceCode": "up-1"},
            }
        ]

    async def test_get_scan(self, client_settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/scans/job-9"
            return httpx.Response(
                200,
                json={"status": "Failed", "errorMessage": "bad payload"},
            )

        async with _client(client_settings, handler) as client:
            response = await client.get_scan("job-9")

        assert response.status is ScanStatus.FAILED
        assert response.error_message == "bad payload"

    async def test_list_findings_params(
        self, client_settings: Settings
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"codeScanFindings": "[]", "nextToken": "p2"}
            )

        async with _client(client_settings, handler) as client:
            first = await client.list_findings("job-1", FINDINGS_SCHEMA)
            await client.list_findings(
                "job-1", FINDINGS_SCHEMA, first.next_token
            )

        assert first.next_token == "p2"
        assert "nextToken" not in seen[0].url.params
        assert seen[0].url.params["codeScanFindingsSchema"] == (
            FINDINGS_SCHEMA
        )
        assert seen[1].url.params["nextToken"] == "p2"

    async def test_put_object_headers(
        self, client_settings: Settings
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with _client(client_settings, handler) as client:
            await client.put_object(
                "https://uploads.invalid/abc", b"PK\x03\x04", "md5==", "AES256"
            )

        (request,) = seen
        assert request.method == "PUT"
        assert request.url.host == "uploads.invalid"
        assert request.content == b"PK\x03\x04"
        assert request.headers["Content-Type"] == "application/zip"
        assert request.headers["Content-MD5"] == "md5=="
        assert request.headers["x-amz-server-side-encryption"] == "AES256"
        assert "Authorization" not in request.headers

    async def test_no_auth_header_without_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "Running"})

        settings = Settings(
            _env_file=None,  # pyright: ignore[reportCallIssue]
            service_url="https://scan.invalid",
        )
        async with _client(settings, handler) as client:
            await client.get_scan("job-1")

        assert "Authorization" not in seen[0].headers


class TestRetries:
    async def test_server_error_retried(
        self, client_settings: Settings
    ) -> None:
        statuses = iter([503, 503, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            status = next(statuses)
            if status != 200:
                return httpx.Response(status)
            return httpx.Response(200, json={"status": "Completed"})

        async with _client(client_settings, handler) as client:
            response = await client.get_scan("job-1")

        assert response.status is ScanStatus.COMPLETED

    async def test_client_error_not_retried(
        self, client_settings: Settings
    ) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(400, json={"message": "bad request"})

        async with _client(client_settings, handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_scan("job-1")

        assert calls == 1

    async def test_retried_create_scan_reuses_client_token(
        self, client_settings: Settings
    ) -> None:
        tokens: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            tokens.append(json.loads(request.content)["clientToken"])
            if len(tokens) == 1:
                return httpx.Response(500)
            return httpx.Response(
                200, json={"jobId": "job-1", "status": "Created"}
            )

        async with _client(client_settings, handler) as client:
            await client.create_scan(
                "token-abc", "java", {ArtifactType.SOURCE_CODE: "up-1"}
            )

        assert tokens == ["token-abc", "token-abc"]

    async def test_upload_transport_error_retried(
        self, client_settings: Settings
    ) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200)

        async with _client(client_settings, handler) as client:
            await client.put_object(
                "https://uploads.invalid/abc", b"data", "md5==", "AES256"
            )

        assert attempts == 2

    async def test_retries_exhausted(self, client_settings: Settings) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(502)

        async with _client(client_settings, handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_scan("job-1")

        assert calls == 3


class TestCircuitBreaker:
    async def test_circuit_opens_after_threshold(
        self, client_settings: Settings
    ) -> None:
        """Five outage failures open the breaker.

        Each call is attempted three times, so the first call fails with
        the HTTP error after three requests and the second trips the
        breaker on its second attempt.
        """
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        async with _client(client_settings, handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_scan("job-1")
            assert calls == 3

            with pytest.raises(CircuitBreakerError):
                await client.get_scan("job-1")
            assert calls == 5

            with pytest.raises(CircuitBreakerError):
                await client.get_scan("job-1")
            assert calls == 5

    async def test_client_errors_do_not_open_circuit(
        self, client_settings: Settings
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with _client(client_settings, handler) as client:
            for _ in range(8):
                with pytest.raises(httpx.HTTPStatusError):
                    await client.get_scan("missing")

    async def test_breakers_are_per_client(
        self, client_settings: Settings
    ) -> None:
        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        def healthy(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "Running"})

        async with _client(client_settings, failing) as client:
            for _ in range(2):
                with pytest.raises(
                    (httpx.HTTPStatusError, CircuitBreakerError)
                ):
                    await client.get_scan("job-1")

        async with _client(client_settings, healthy) as client:
            response = await client.get_scan("job-1")
        assert response.status is ScanStatus.RUNNING
