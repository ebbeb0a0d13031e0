from enum import Enum
from pydantic import Field, model_validator
from typing import Optional

from .base import BaseGolfModel


class FairwayResult(str, Enum):
    """Tee shot outcome on a par 4 or par 5."""
    HIT = "hit"
    LEFT = "left"
    RIGHT = "right"
    SHORT = "short"


class GreenMiss(str, Enum):
    """Where the approach finished when the green was missed."""
    SHORT = "short"
    LONG = "long"
    LEFT = "left"
    RIGHT = "right"


class HoleScore(BaseGolfModel):
    """A player's result on a single hole of a round."""
    hole_number: int = Field(..., ge=1, le=18)
    par: Optional[int] = Field(None, ge=3, le=5)
    yardage: Optional[int] = Field(None, ge=0, le=700)
    score: Optional[int] = Field(None, ge=1, le=20)
    fairway: Optional[FairwayResult] = None
    green_in_regulation: Optional[bool] = None
    green_miss: Optional[GreenMiss] = None
    putts: Optional[int] = Field(None, ge=0, le=10)
    penalties: Optional[int] = Field(None, ge=0, le=10)  # None = not recorded
    sand_shots: Optional[int] = Field(None, ge=0, le=10)
    sand_save: Optional[bool] = None

    @model_validator(mode='after')
    def validate_score_consistency(self):
        # Putts cannot exceed strokes
        if self.putts is not None and self.score is not None:
            if self.putts > self.score:
                raise ValueError(f"Putts ({self.putts}) cannot exceed score ({self.score})")
        return self

    def to_par(self) -> Optional[int]:
        """Score relative to par (+2, -1, etc.)."""
        if self.score is None or self.par is None:
            return None
        return self.score - self.par

    def get_score_type(self) -> Optional[str]:
        """Name for this score (eagle, birdie, par, bogey, ...)."""
        relative = self.to_par()
        if relative is None:
            return None
        if relative <= -2:
            return "eagle"
        if relative >= 4:
            return "worse"
        return {
            -1: "birdie",
            0: "par",
            1: "bogey",
            2: "double",
            3: "triple",
        }[relative]
