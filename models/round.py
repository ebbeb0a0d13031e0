from datetime import date as date_type, datetime
from enum import Enum
from pydantic import Field, field_validator
from typing import List, Optional

from .base import BaseGolfModel
from .hole_score import HoleScore


class RoundSource(str, Enum):
    """Where a round's data came from."""
    GHIN = "ghin"
    SCORECARD = "scorecard"
    MANUAL = "manual"


def parse_round_date(value) -> Optional[date_type]:
    """Parse the date formats seen on GHIN records and scorecards, None on failure."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    text = str(value).strip()
    candidates = (("%Y-%m-%d", text[:10]), ("%m/%d/%Y", text), ("%m/%d/%y", text))
    for fmt, candidate in candidates:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


class Round(BaseGolfModel):
    """One played round, as fetched from GHIN or read off a scorecard."""
    id: Optional[str] = None
    date: Optional[date_type] = None
    course_name: Optional[str] = None
    total_score: Optional[int] = Field(None, ge=18, le=200)
    course_rating: Optional[float] = Field(None, ge=25.0, le=85.0)
    slope_rating: Optional[int] = Field(None, ge=55, le=155)
    differential: Optional[float] = None
    tees: Optional[str] = None
    holes_played: Optional[int] = Field(None, ge=1, le=18)
    source: RoundSource = RoundSource.MANUAL

    # Optional round-level stats, as reported by the source
    fairways_hit: Optional[int] = Field(None, ge=0, le=18)
    greens_in_regulation: Optional[int] = Field(None, ge=0, le=18)
    putts: Optional[int] = Field(None, ge=0, le=100)
    penalties: Optional[int] = Field(None, ge=0, le=50)

    hole_scores: List[HoleScore] = Field(default_factory=list)

    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v):
        return parse_round_date(v)

    def has_hole_detail(self) -> bool:
        """True when at least one hole carries a score."""
        return any(hs.score is not None for hs in self.hole_scores)

    def calculate_total_score(self) -> Optional[int]:
        """Total score - uses the reported value or sums hole scores."""
        if self.total_score is not None:
            return self.total_score
        scores = [hs.score for hs in self.hole_scores if hs.score is not None]
        return sum(scores) if scores else None

    def get_total_penalties(self) -> Optional[int]:
        """Penalty strokes for the round, None when never recorded."""
        recorded = [hs.penalties for hs in self.hole_scores if hs.penalties is not None]
        if recorded:
            return sum(recorded)
        return self.penalties

    def get_hole_score(self, hole_number: int) -> Optional[HoleScore]:
        """Get the score for a specific hole number."""
        for hs in self.hole_scores:
            if hs.hole_number == hole_number:
                return hs
        return None
