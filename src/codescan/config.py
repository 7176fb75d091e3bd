"""Environment-based configuration and language tables."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from codescan.constants import (
    DEFAULT_CREATE_PAYLOAD_TIMEOUT,
    DEFAULT_PAYLOAD_LIMIT_BYTES,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_SCAN_TIMEOUT,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and CODESCAN_* environment variables."""

    # Scan service
    service_url: str = "http://localhost:8080"
    api_token: str = ""
    request_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    # Payload
    payload_limit_bytes: int = DEFAULT_PAYLOAD_LIMIT_BYTES
    create_payload_timeout_seconds: float = DEFAULT_CREATE_PAYLOAD_TIMEOUT
    overall_job_timeout_seconds: float = DEFAULT_SCAN_TIMEOUT
    polling_interval_seconds: float = DEFAULT_POLLING_INTERVAL

    # Traversal
    ignore_file_name: str = ".codescanignore"
    skip_directories: Annotated[list[str], NoDecode] = [
        "vendor",
        ".venv",
        "venv",
        "__pycache__",
        "build",
        "dist",
        "target",
        ".git",
        ".svn",
        ".hg",
        ".idea",
        ".gradle",
    ]
    library_directories: Annotated[list[str], NoDecode] = [
        "node_modules",
        "site-packages",
        "dist-packages",
    ]

    @field_validator(
        "skip_directories", "library_directories", mode="before"
    )
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("payload_limit_bytes")
    @classmethod
    def _validate_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("payload_limit_bytes must be positive")
        return v

    @field_validator("polling_interval_seconds")
    @classmethod
    def _validate_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError(
                "polling_interval_seconds must not be negative"
            )
        if v == 0:
            logger.warning(
                "CODESCAN_POLLING_INTERVAL_SECONDS is 0; "
                "the session will poll without pausing"
            )
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CODESCAN_",
        "extra": "ignore",
    }


# File extension → language tag understood by the scan service
EXTENSION_MAP: dict[str, str] = {
    # Python
    ".py": "python",
    ".pyi": "python",
    ".pyw": "python",
    # JavaScript
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
    # TypeScript
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    # JVM
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    # Go
    ".go": "go",
    # Rust
    ".rs": "rust",
    # C / C++
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".hh": "cpp",
    # C#
    ".cs": "csharp",
    # Ruby
    ".rb": "ruby",
    # PHP
    ".php": "php",
    # Shell
    ".sh": "shell",
    ".bash": "shell",
    ".zsh": "shell",
    # SQL
    ".sql": "sql",
    # Infrastructure as code
    ".tf": "tf",
    ".hcl": "tf",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}

# Exact file names that carry a language regardless of extension
FILENAME_MAP: dict[str, str] = {
    "Dockerfile": "dockerfile",
    "Jenkinsfile": "groovy",
}
