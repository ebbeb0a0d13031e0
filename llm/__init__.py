from .client import AnalysisParseError, LLMError, LLMServiceError, parse_llm_json
from .prompts import (
    build_analysis_prompt,
    build_course_strategy_prompt,
    build_round_extraction_prompt,
)
from .round_extractor import extract_rounds_from_images
from .analyzer import analyze_golf_game, build_analysis_request
from .course_strategy import generate_course_strategy

__all__ = [
    "LLMError",
    "LLMServiceError",
    "AnalysisParseError",
    "parse_llm_json",
    "build_analysis_prompt",
    "build_course_strategy_prompt",
    "build_round_extraction_prompt",
    "extract_rounds_from_images",
    "analyze_golf_game",
    "build_analysis_request",
    "generate_course_strategy",
]
