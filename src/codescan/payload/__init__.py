"""Payload construction: select project files and package them."""

from codescan.payload.schemas import (
    FileManifest,
    Payload,
    PayloadContext,
    PayloadMetadata,
)

__all__ = [
    "FileManifest",
    "Payload",
    "PayloadContext",
    "PayloadMetadata",
]
