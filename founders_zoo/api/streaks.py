from __future__ import annotations

from typing import Any, List, Literal, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from founders_zoo.features.streaks.service import streak_service
from founders_zoo.models.streak import DayCompletionSummary

router = APIRouter()


class DayCompletionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left untyped: malformed or missing dates are dropped, not rejected
    date: Any = None
    missing_blocks: Optional[int] = Field(None, ge=0, alias="missingBlocks")
    completion_pct: Optional[float] = Field(None, ge=0.0, le=1.0, alias="completionPct")


class StreakRequest(BaseModel):
    records: List[DayCompletionIn] = Field(default_factory=list)
    policy: Optional[Literal["misses", "completion"]] = None


@router.post("/v1/streaks/calculate")
def calculate_current_streak(body: StreakRequest):
    """Return the current streak for a set of day records (or null)."""
    records = [
        DayCompletionSummary(
            date=record.date,
            missing_blocks=record.missing_blocks,
            completion_pct=record.completion_pct,
        )
        for record in body.records
    ]
    streak = streak_service.calculate(records, policy_name=body.policy)
    return {"streak": streak.to_dict() if streak else None}
