"""Models for the payload data flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class FileManifest:
    """Accumulator owned by a single traversal.

    ``files`` is an insertion-ordered set (dict keys). ``language_counts``
    keeps first-encountered order so ties resolve deterministically.
    """

    files: dict[Path, None] = field(default_factory=lambda: dict[Path, None]())
    total_size: int = 0
    total_lines: int = 0
    language_counts: dict[str, int] = field(
        default_factory=lambda: dict[str, int]()
    )

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def would_exceed(self, size: int, limit: int) -> bool:
        return self.total_size + size > limit

    def add(
        self, path: Path, size: int, lines: int, language: str | None
    ) -> None:
        self.files[path] = None
        self.total_size += size
        self.total_lines += lines
        if language is not None:
            self.language_counts[language] = (
                self.language_counts.get(language, 0) + 1
            )

    def dominant_language(self) -> str | None:
        """Most frequent known language; first encountered wins ties."""
        best: str | None = None
        best_count = 0
        for language, count in self.language_counts.items():
            if count > best_count:
                best, best_count = language, count
        return best


class PayloadMetadata(BaseModel):
    """Frozen result of a payload traversal."""

    model_config = ConfigDict(frozen=True)

    source_files: list[Path] = Field(default_factory=lambda: list[Path]())
    payload_size: int = 0
    lines_scanned: int = 0
    language: str


class PayloadContext(BaseModel):
    """Summary of a packaged payload, produced once per scan attempt."""

    model_config = ConfigDict(frozen=True)

    language: str
    total_lines: int
    total_files: int
    total_time_ms: float
    scanned_files: list[Path] = Field(default_factory=lambda: list[Path]())
    payload_size: int
    src_payload_size: int


class Payload(BaseModel):
    """Packaged archives ready for upload."""

    context: PayloadContext
    src_zip: Path
    build_zip: Path | None = None

    @property
    def archives(self) -> list[Path]:
        return [p for p in (self.src_zip, self.build_zip) if p is not None]
