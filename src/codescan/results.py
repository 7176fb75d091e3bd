"""Map raw findings pages into issues anchored to local files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

logger = logging.getLogger(__name__)


class Description(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str = ""
    markdown: str = ""


class ScanRecommendation(BaseModel):
    """One finding record as emitted by the scan service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_path: str = Field(alias="filePath")
    start_line: int = Field(alias="startLine")
    end_line: int = Field(alias="endLine")
    title: str
    description: Description = Field(default_factory=Description)


_PAGE = TypeAdapter(list[ScanRecommendation])


@dataclass(frozen=True)
class Issue:
    """A finding anchored to a line/column range in a local file.

    ``start_col`` is always 1 and ``end_col`` is the end line's length
    plus one: the service reports lines only.
    """

    file: Path
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    title: str
    description: Description


def parse_recommendations(
    raw_pages: Iterable[str],
) -> list[ScanRecommendation]:
    """Parse every page (a JSON array) in order.

    Raises:
        pydantic.ValidationError: a page is not valid JSON or a record
            misses a required field.
    """
    records: list[ScanRecommendation] = []
    for page in raw_pages:
        if not page.strip():
            continue
        records.extend(_PAGE.validate_json(page))
    return records


def resolve_finding_path(
    file_path: str, project_root: Path | None = None
) -> Path | None:
    """Find the local file a finding refers to.

    The service reports paths without a leading separator. They are
    tried as absolute paths first, then relative to the directory that
    holds the project (archive layout ``<project>/<path>``), then
    relative to the project root.
    """
    candidates = [Path(os.sep, file_path)]
    if project_root is not None:
        candidates.append(project_root.parent / file_path)
        candidates.append(project_root / file_path)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def map_to_issues(
    raw_pages: Iterable[str], project_root: Path | None = None
) -> list[Issue]:
    """Convert findings pages into issues, preserving input order.

    Findings whose file does not resolve, or whose end line lies past
    the end of the file, are dropped. No deduplication is done.
    """
    issues: list[Issue] = []
    line_cache: dict[Path, list[str]] = {}
    for rec in parse_recommendations(raw_pages):
        file = resolve_finding_path(rec.file_path, project_root)
        if file is None:
            logger.debug(
                "event=finding_dropped reason=unresolved path=%s",
                rec.file_path,
            )
            continue

        lines = line_cache.get(file)
        if lines is None:
            lines = _document_lines(file)
            line_cache[file] = lines
        if not 1 <= rec.end_line <= len(lines):
            logger.debug(
                "event=finding_dropped reason=line_out_of_range "
                "path=%s end_line=%d",
                file,
                rec.end_line,
            )
            continue

        issues.append(
            Issue(
                file=file,
                start_line=rec.start_line,
                start_col=1,
                end_line=rec.end_line,
                end_col=len(lines[rec.end_line - 1]) + 1,
                title=rec.title,
                description=rec.description,
            )
        )
    return issues


def _document_lines(path: Path) -> list[str]:
    """Split a file into lines the way an editor document does.

    Separators are normalized to ``\\n`` and a trailing newline yields
    a final empty line.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("event=finding_file_unreadable path=%s error=%s", path, exc)
        return []
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
