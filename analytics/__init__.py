from .course_layout import extract_course_layout, layout_from_course_data
from .stats import (
    calculate_aggregate_stats,
    find_birdie_holes,
    find_trouble_holes,
    score_trend,
)

__all__ = [
    "calculate_aggregate_stats",
    "find_trouble_holes",
    "find_birdie_holes",
    "score_trend",
    "extract_course_layout",
    "layout_from_course_data",
]
