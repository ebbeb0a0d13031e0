"""Golfer input, LLM analysis output, and their persisted forms."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Union

from .course_layout import CourseLayout
from .round import Round
from .stats import AggregateStats


# ================================================================
# Request side
# ================================================================

class GolferProfile(BaseModel):
    """Self-reported profile submitted with an analysis request."""
    name: str = Field(..., min_length=1)
    handicap: float = Field(..., ge=-10, le=54)
    home_course: str = Field(..., min_length=1)
    miss_pattern: str = Field(..., min_length=1)
    miss_description: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)


class AnalysisRequest(BaseModel):
    """Everything the prompt is assembled from. Lives for one request."""
    profile: GolferProfile
    rounds: List[Round] = Field(default_factory=list)
    course_layout: Optional[CourseLayout] = None
    stats: Optional[AggregateStats] = None


# ================================================================
# LLM response side (camelCase on the wire)
# ================================================================

class CamelModel(BaseModel):
    """LLM JSON uses camelCase keys; unknown keys are kept as-is."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )


HoleRef = Union[int, str]


class AnalysisSummary(CamelModel):
    current_handicap: Optional[Union[float, str]] = None
    target_handicap: Optional[Union[float, str]] = None
    potential_stroke_drop: Optional[Union[float, str]] = None
    key_insight: str


class ParTypeAdvice(CamelModel):
    average_to_par: Optional[float] = None
    approach: Optional[str] = None
    target: Optional[str] = None


class ParStrategy(CamelModel):
    par3: Optional[ParTypeAdvice] = None
    par4: Optional[ParTypeAdvice] = None
    par5: Optional[ParTypeAdvice] = None


class TroubleHole(CamelModel):
    type: Optional[str] = None
    specific_holes: Optional[List[HoleRef]] = None
    average_score: Optional[float] = None
    problem: Optional[str] = None
    strategy: Optional[str] = None
    acceptable_score: Optional[str] = None
    club_recommendation: Optional[str] = None


class StrengthHole(CamelModel):
    type: Optional[str] = None
    specific_holes: Optional[List[HoleRef]] = None
    opportunity: Optional[str] = None
    strategy: Optional[str] = None
    target_score: Optional[str] = None


class TrafficLightPlan(CamelModel):
    red_light_holes: List[HoleRef] = Field(default_factory=list)
    yellow_light_holes: List[HoleRef] = Field(default_factory=list)
    green_light_holes: List[HoleRef] = Field(default_factory=list)
    overall_approach: Optional[str] = None


class HolePlan(CamelModel):
    hole: int
    par: Optional[int] = None
    yardage: Optional[int] = None
    light: Optional[str] = None
    tee_club: Optional[str] = None
    strategy: Optional[str] = None
    target_score: Optional[str] = None


class Drill(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    reps: Optional[str] = None
    why: Optional[str] = None


class PracticeSession(CamelModel):
    session: Optional[str] = None
    duration: Optional[str] = None
    focus: Optional[str] = None
    drills: List[Drill] = Field(default_factory=list)


class PracticePlan(CamelModel):
    weekly_schedule: List[PracticeSession] = Field(default_factory=list)
    pre_round_routine: List[str] = Field(default_factory=list)
    practice_round_focus: List[str] = Field(default_factory=list)


class MentalGame(CamelModel):
    pre_shot: Optional[str] = None
    recovery: Optional[str] = None
    mantras: List[str] = Field(default_factory=list)


class TargetStats(CamelModel):
    fairways_hit: Optional[str] = None
    penalties_per_round: Optional[str] = None
    gir: Optional[str] = None
    up_and_down: Optional[str] = None
    putts_per_round: Optional[str] = None


class HandicapPath(CamelModel):
    current_benchmark: Optional[str] = None
    next_benchmark: Optional[str] = None
    biggest_gaps: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    timeline: Optional[str] = None


class WeekPlan(CamelModel):
    week: Optional[int] = None
    focus: Optional[str] = None
    goals: List[str] = Field(default_factory=list)


class AnalysisResult(CamelModel):
    """Structured coaching analysis returned by the language model."""
    summary: AnalysisSummary
    par_strategy: Optional[ParStrategy] = None
    scoring_breakdown: Dict[str, Any] = Field(default_factory=dict)
    trouble_holes: List[TroubleHole] = Field(default_factory=list)
    strength_holes: List[StrengthHole] = Field(default_factory=list)
    course_strategy: Optional[TrafficLightPlan] = None
    hole_by_hole: List[HolePlan] = Field(default_factory=list)
    practice_plan: Optional[PracticePlan] = None
    mental_game: Optional[MentalGame] = None
    target_stats: Optional[TargetStats] = None
    handicap_path: Optional[HandicapPath] = None
    thirty_day_plan: List[WeekPlan] = Field(default_factory=list)
    extracted_scores: Optional[Dict[str, Any]] = None

    def to_document(self) -> Dict[str, Any]:
        """JSON document as stored and returned to clients."""
        return self.model_dump(mode="json", by_alias=True)


class KeyHole(CamelModel):
    number: Optional[int] = None
    par: Optional[int] = None
    yardage: Optional[str] = None
    strategy: Optional[str] = None
    danger: Optional[str] = None


class StrategyTip(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None


class ScoringTargets(CamelModel):
    great: Optional[int] = None
    solid: Optional[int] = None
    max: Optional[int] = None


class CourseStrategyResult(CamelModel):
    """Course-specific game plan returned by the language model."""
    course_name: Optional[str] = None
    tees: Optional[str] = None
    overview: str
    key_holes: List[KeyHole] = Field(default_factory=list)
    general_strategy: List[StrategyTip] = Field(default_factory=list)
    scoring_targets: Optional[ScoringTargets] = None
    pre_round_checklist: List[str] = Field(default_factory=list)


# ================================================================
# Persisted records
# ================================================================

class AnalysisRecord(BaseModel):
    """A saved analysis owned by one user."""
    id: Optional[str] = None
    user_id: str
    name: Optional[str] = None
    handicap: Optional[float] = None
    home_course: Optional[str] = None
    miss_pattern: Optional[str] = None
    analysis: Dict[str, Any]
    created_at: Optional[datetime] = None


class CourseStrategyRecord(BaseModel):
    """A saved course strategy owned by one user."""
    id: Optional[str] = None
    user_id: str
    course_name: str
    tees: Optional[str] = None
    strategy: Dict[str, Any]
    created_at: Optional[datetime] = None
