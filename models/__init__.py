from .base import BaseGolfModel
from .hole_score import FairwayResult, GreenMiss, HoleScore
from .round import Round, RoundSource
from .stats import AggregateStats
from .course_layout import CourseLayout, LayoutHole, LayoutSource
from .user import SubscriptionStatus, User
from .tracked_round import TrackedRound
from .analysis import (
    AnalysisRecord,
    AnalysisRequest,
    AnalysisResult,
    CourseStrategyRecord,
    CourseStrategyResult,
    GolferProfile,
)

__all__ = [
    "BaseGolfModel",
    "FairwayResult",
    "GreenMiss",
    "HoleScore",
    "Round",
    "RoundSource",
    "AggregateStats",
    "CourseLayout",
    "LayoutHole",
    "LayoutSource",
    "SubscriptionStatus",
    "User",
    "TrackedRound",
    "AnalysisRecord",
    "AnalysisRequest",
    "AnalysisResult",
    "CourseStrategyRecord",
    "CourseStrategyResult",
    "GolferProfile",
]
