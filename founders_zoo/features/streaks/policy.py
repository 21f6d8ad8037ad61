"""
Day classification policies.

Two policies are in use across clients and both stay selectable:

- ``misses``: a day is positive when at most N blocks were missed; other
  days are negative and can form their own streak.
- ``completion``: a day qualifies when its completion percentage reaches the
  threshold. There is no negative streak; a non-qualifying latest day means
  no streak at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol

from founders_zoo.core.config import settings
from founders_zoo.core.errors import ValidationError
from founders_zoo.models.streak import DayCompletionSummary, StreakKind

MAX_MISSES_FOR_POSITIVE = 2
MIN_COMPLETION_PCT = 0.75


class DayPolicy(Protocol):
    name: ClassVar[str]
    tracks_negative: ClassVar[bool]

    def classify(self, record: DayCompletionSummary) -> StreakKind: ...

    def misses_on_latest(self, record: DayCompletionSummary) -> int: ...


@dataclass(frozen=True)
class MissesPolicy:
    name: ClassVar[str] = "misses"
    tracks_negative: ClassVar[bool] = True

    max_misses: int = MAX_MISSES_FOR_POSITIVE

    def classify(self, record: DayCompletionSummary) -> StreakKind:
        # A record without a miss count cannot qualify
        if record.missing_blocks is None:
            return "negative"
        return "positive" if record.missing_blocks <= self.max_misses else "negative"

    def misses_on_latest(self, record: DayCompletionSummary) -> int:
        return record.missing_blocks or 0


@dataclass(frozen=True)
class CompletionPolicy:
    name: ClassVar[str] = "completion"
    tracks_negative: ClassVar[bool] = False

    min_completion_pct: float = MIN_COMPLETION_PCT

    def classify(self, record: DayCompletionSummary) -> StreakKind:
        if record.completion_pct is None:
            return "negative"
        return "positive" if record.completion_pct >= self.min_completion_pct else "negative"

    def misses_on_latest(self, record: DayCompletionSummary) -> int:
        return 0


def get_policy(name: Optional[str] = None) -> DayPolicy:
    """Build the named policy with thresholds from settings."""
    name = name or settings.STREAK_POLICY
    if name == MissesPolicy.name:
        return MissesPolicy(max_misses=settings.STREAK_MAX_MISSES_FOR_POSITIVE)
    if name == CompletionPolicy.name:
        return CompletionPolicy(min_completion_pct=settings.STREAK_MIN_COMPLETION_PCT)
    raise ValidationError(f"Unknown streak policy: {name}")
