"""Map files to the language tags the scan service understands."""

from __future__ import annotations

from pathlib import Path

from codescan.config import EXTENSION_MAP, FILENAME_MAP


def detect_language(path: Path) -> str | None:
    """Return the language tag for ``path``, or ``None`` if unknown.

    Exact file names (``Dockerfile``) win over extensions; extension
    lookup is case-insensitive.

    Examples:
        >>> detect_language(Path("src/app.py"))
        'python'
        >>> detect_language(Path("logo.png")) is None
        True
    """
    if path.name in FILENAME_MAP:
        return FILENAME_MAP[path.name]
    return EXTENSION_MAP.get(path.suffix.lower())
