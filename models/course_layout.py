from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class LayoutSource(str, Enum):
    """Provenance of a course layout."""
    COURSE_DATABASE = "course_database"
    SCORE_HISTORY = "score_history"


class LayoutHole(BaseModel):
    hole: int = Field(..., ge=1, le=18)
    par: Optional[int] = None
    yardage: Optional[int] = None
    average_score: Optional[float] = None
    rounds_played: int = 0


class CourseLayout(BaseModel):
    """Hole-by-hole layout of one course."""
    course_name: Optional[str] = None
    source: LayoutSource
    holes: List[LayoutHole] = Field(default_factory=list)
    total_par: Optional[int] = None
    total_yardage: Optional[int] = None
    holes_with_par: int = 0
    holes_with_yardage: int = 0

    @property
    def is_authoritative(self) -> bool:
        return self.source == LayoutSource.COURSE_DATABASE
