import logging
from typing import Optional

from google import genai

from models import CourseStrategyResult
from llm.client import call_gemini_async, create_client, image_part, parse_llm_json
from llm.prompts import build_course_strategy_prompt
from llm.round_extractor import ImageUpload

logger = logging.getLogger(__name__)


async def generate_course_strategy(
    course_name: str,
    *,
    tees: Optional[str] = None,
    notes: Optional[str] = None,
    handicap: Optional[float] = None,
    miss_pattern: Optional[str] = None,
    scorecard: Optional[ImageUpload] = None,
    client: Optional[genai.Client] = None,
) -> CourseStrategyResult:
    """Ask the model for a game plan at one course, optionally with its scorecard."""
    client = client or create_client()
    prompt = build_course_strategy_prompt(
        course_name,
        tees=tees,
        notes=notes,
        handicap=handicap,
        miss_pattern=miss_pattern,
        has_scorecard=scorecard is not None,
    )
    parts = [image_part(*scorecard)] if scorecard is not None else []

    logger.info("Generating course strategy for %s", course_name)
    text = await call_gemini_async(client, prompt, parts=parts)
    strategy = parse_llm_json(text, CourseStrategyResult)
    if not strategy.course_name:
        strategy.course_name = course_name
    if tees and not strategy.tees:
        strategy.tees = tees
    return strategy
