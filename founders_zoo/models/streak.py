from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

StreakKind = Literal["positive", "negative"]


@dataclass(frozen=True)
class DayCompletionSummary:
    """
    One day's completion record. Which measure is set depends on the
    classification policy in use: missed blocks, or completion percentage.
    """

    date: str
    missing_blocks: Optional[int] = None
    completion_pct: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DayCompletionSummary":
        """Build from a client payload; accepts camelCase or snake_case keys."""
        missing = data.get("missingBlocks", data.get("missing_blocks"))
        pct = data.get("completionPct", data.get("completion_pct"))
        return cls(date=data.get("date"), missing_blocks=missing, completion_pct=pct)


@dataclass(frozen=True)
class PlayerStreak:
    kind: StreakKind
    length: int
    misses_on_latest: int

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "length": self.length,
            "missesOnLatest": self.misses_on_latest,
        }
