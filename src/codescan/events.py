"""Event types for scan session progress reporting."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from codescan.constants import STAGE_LABELS, SessionState, StageProgress


@dataclass(frozen=True)
class StageEvent:
    """Typed event emitted on every session state change."""

    state: SessionState
    status: StageProgress
    message: str = ""
    elapsed_ms: float = 0.0

    @property
    def label(self) -> str:
        """User-friendly display label from STAGE_LABELS."""
        return STAGE_LABELS[self.state]


ProgressCallback: TypeAlias = Callable[[StageEvent], None]
