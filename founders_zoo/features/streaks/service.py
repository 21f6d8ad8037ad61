from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from founders_zoo.core.metrics import streak_calculations_total
from founders_zoo.features.streaks.dates import day_diff, parse_day
from founders_zoo.features.streaks.policy import DayPolicy, MissesPolicy, get_policy
from founders_zoo.models.streak import DayCompletionSummary, PlayerStreak

logger = logging.getLogger("founders_zoo")


def calculate_streak(
    records: Iterable[DayCompletionSummary],
    policy: Optional[DayPolicy] = None,
) -> Optional[PlayerStreak]:
    """
    Current streak anchored at the most recent valid day, or None.

    Records with unparsable dates are dropped. The run extends backward
    while each day is exactly one calendar day older than the last accepted
    one and shares the latest day's classification. Dates are taken at face
    value; nothing is bounded against the current time.
    """
    policy = policy or MissesPolicy()

    normalized: List[Tuple[datetime, DayCompletionSummary]] = []
    for record in records:
        day = parse_day(record.date)
        if day is None:
            continue
        normalized.append((day, record))

    if not normalized:
        return None

    # Stable: same-day records keep their input order
    normalized.sort(key=lambda entry: entry[0], reverse=True)

    first_day, first = normalized[0]
    target_kind = policy.classify(first)
    if target_kind == "negative" and not policy.tracks_negative:
        return None

    length = 0
    previous_day: Optional[datetime] = None
    for day, record in normalized:
        if policy.classify(record) != target_kind:
            break
        if previous_day is not None and day_diff(previous_day, day) != 1:
            break
        length += 1
        previous_day = day

    return PlayerStreak(
        kind=target_kind,
        length=length,
        misses_on_latest=policy.misses_on_latest(first),
    )


class StreakService:
    """Streak calculation bound to a configured classification policy."""

    def __init__(self, policy: Optional[DayPolicy] = None):
        self._policy = policy

    @property
    def policy(self) -> DayPolicy:
        return self._policy or get_policy()

    def calculate(
        self,
        records: Iterable[DayCompletionSummary],
        policy_name: Optional[str] = None,
    ) -> Optional[PlayerStreak]:
        policy = get_policy(policy_name) if policy_name else self.policy
        streak = calculate_streak(records, policy)
        streak_calculations_total.inc(labels={"policy": policy.name})
        logger.debug(f"[streaks] policy={policy.name} result={streak}")
        return streak


# Singleton service used by routes
streak_service = StreakService()
