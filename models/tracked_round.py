from datetime import date as date_type, datetime
from pydantic import Field, field_validator
from typing import List, Optional

from .base import BaseGolfModel
from .hole_score import HoleScore
from .round import Round, RoundSource, parse_round_date


class TrackedRound(BaseGolfModel):
    """A round the user logged after playing with one of their strategies."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    analysis_id: Optional[str] = None
    course_name: Optional[str] = None
    date: Optional[date_type] = None
    score: Optional[int] = Field(None, ge=18, le=200)
    fairways_hit: Optional[int] = Field(None, ge=0, le=18)
    greens_in_regulation: Optional[int] = Field(None, ge=0, le=18)
    putts: Optional[int] = Field(None, ge=0, le=100)
    penalties: Optional[int] = Field(None, ge=0, le=50)
    notes: Optional[str] = None
    hole_scores: List[HoleScore] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v):
        return parse_round_date(v)

    def to_round(self) -> Round:
        """View this entry as a Round for the stats calculator."""
        return Round(
            id=self.id,
            date=self.date,
            course_name=self.course_name,
            total_score=self.score,
            fairways_hit=self.fairways_hit,
            greens_in_regulation=self.greens_in_regulation,
            putts=self.putts,
            penalties=self.penalties,
            hole_scores=self.hole_scores,
            holes_played=len(self.hole_scores) or None,
            source=RoundSource.MANUAL,
        )
