"""Tests for language detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from codescan.payload.language import detect_language


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("app.py", "python"),
        ("Main.JAVA", "java"),
        ("index.tsx", "tsx"),
        ("template.yml", "yaml"),
        ("Dockerfile", "dockerfile"),
    ],
)
def test_known_languages(name: str, expected: str) -> None:
    assert detect_language(Path("src") / name) == expected


def test_unknown_extension_is_none() -> None:
    assert detect_language(Path("logo.png")) is None


def test_no_extension_is_none() -> None:
    assert detect_language(Path("LICENSE")) is None
