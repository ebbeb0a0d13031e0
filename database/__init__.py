from database.connection import DatabasePool, db
from database.db_manager import DatabaseManager
from database.repositories import (
    AnalysisRepositoryDB,
    CourseStrategyRepositoryDB,
    RoundRepositoryDB,
    UserRepositoryDB,
)
from database.exceptions import (
    DatabaseError,
    DuplicateError,
    InsufficientCreditsError,
    IntegrityError,
    NotFoundError,
)

__all__ = [
    "DatabasePool",
    "db",
    "DatabaseManager",
    "UserRepositoryDB",
    "AnalysisRepositoryDB",
    "RoundRepositoryDB",
    "CourseStrategyRepositoryDB",
    "DatabaseError",
    "NotFoundError",
    "DuplicateError",
    "IntegrityError",
    "InsufficientCreditsError",
]
