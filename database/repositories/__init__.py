from .user_repo import UserRepositoryDB
from .analysis_repo import AnalysisRepositoryDB
from .round_repo import RoundRepositoryDB
from .course_strategy_repo import CourseStrategyRepositoryDB

__all__ = [
    "UserRepositoryDB",
    "AnalysisRepositoryDB",
    "RoundRepositoryDB",
    "CourseStrategyRepositoryDB",
]
