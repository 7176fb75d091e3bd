"""Shared test fixtures: temporary projects and fast scan settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from codescan.config import Settings
from codescan.payload.project import LocalProject
from codescan.payload.session_config import (
    CodeScanSessionConfig,
    ScanProfile,
)


def write_lines(root: Path, rel: str, count: int) -> Path:
    """Create ``root/rel`` holding ``count`` numbered lines."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"line_{i} = {i}\n" for i in range(count)))
    return path


def finding_path(path: Path) -> str:
    """Path as the scan service reports it (no leading separator)."""
    return str(path).lstrip("/")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # pyright: ignore[reportCallIssue]
        payload_limit_bytes=1_000_000,
        polling_interval_seconds=0.001,
        overall_job_timeout_seconds=5,
        create_payload_timeout_seconds=5,
    )


@pytest.fixture
def sample_root(tmp_path: Path) -> Path:
    """src/a.py (50 lines), src/b.py (30 lines), vendor/c.py (ignored)."""
    root = tmp_path / "sample"
    write_lines(root, "src/a.py", 50)
    write_lines(root, "src/b.py", 30)
    write_lines(root, "vendor/c.py", 10)
    return root


@pytest.fixture
def sample_project(sample_root: Path, settings: Settings) -> LocalProject:
    return LocalProject(sample_root, settings)


def make_profile(**overrides: object) -> ScanProfile:
    values: dict[str, object] = {
        "name": "test",
        "payload_limit_bytes": 1_000_000,
        "create_payload_timeout_seconds": 5.0,
        "overall_job_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return ScanProfile(**values)  # type: ignore[arg-type]


@pytest.fixture
def session_config(
    sample_root: Path, sample_project: LocalProject
) -> CodeScanSessionConfig:
    return CodeScanSessionConfig(
        sample_root / "src" / "a.py", sample_project, make_profile()
    )
