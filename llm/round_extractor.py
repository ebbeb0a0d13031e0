"""Read played rounds off scorecard photos."""

import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from google import genai

from config import get_settings
from models import FairwayResult, HoleScore, Round, RoundSource
from models.base import first_error
from llm.client import LLMError, call_gemini_async, create_client, image_part, parse_llm_json
from llm.prompts import (
    RawExtractedHole,
    RawExtractedRound,
    RawRoundExtraction,
    build_round_extraction_prompt,
)

logger = logging.getLogger(__name__)

# (bytes, mime type) for one uploaded image
ImageUpload = Tuple[bytes, str]

_FAIRWAY_ALIASES = {
    "hit": FairwayResult.HIT,
    "yes": FairwayResult.HIT,
    "y": FairwayResult.HIT,
    "left": FairwayResult.LEFT,
    "l": FairwayResult.LEFT,
    "right": FairwayResult.RIGHT,
    "r": FairwayResult.RIGHT,
    "short": FairwayResult.SHORT,
}


def _parse_fairway(value: Optional[str]) -> Optional[FairwayResult]:
    if not value:
        return None
    return _FAIRWAY_ALIASES.get(value.strip().lower())


def _build_hole_score(raw: RawExtractedHole) -> Optional[HoleScore]:
    if raw.hole is None:
        return None
    try:
        return HoleScore(
            hole_number=raw.hole,
            par=raw.par,
            yardage=raw.yardage,
            score=raw.score,
            putts=raw.putts,
            fairway=_parse_fairway(raw.fairway),
            green_in_regulation=raw.green_in_regulation,
            penalties=raw.penalties,
        )
    except ValidationError as e:
        logger.info("Skipping unreadable hole %s: %s", raw.hole, first_error(e))
        return None


def _build_round(raw: RawExtractedRound, default_course: Optional[str]) -> Optional[Round]:
    holes = [hs for hs in (_build_hole_score(h) for h in raw.holes) if hs is not None]
    try:
        round_obj = Round(
            date=raw.date,
            course_name=raw.course or default_course,
            total_score=raw.total_score,
            tees=raw.tees,
            holes_played=len(holes) or None,
            source=RoundSource.SCORECARD,
            hole_scores=holes,
        )
    except ValidationError as e:
        logger.info("Skipping unreadable round: %s", first_error(e))
        return None
    if round_obj.calculate_total_score() is None:
        return None
    return round_obj


def rounds_from_extraction(
    raw: RawRoundExtraction,
    default_course: Optional[str] = None,
) -> List[Round]:
    """Convert raw extraction output to Rounds, dropping anything unusable."""
    rounds = []
    for raw_round in raw.rounds:
        round_obj = _build_round(raw_round, default_course)
        if round_obj is not None:
            rounds.append(round_obj)
    return rounds


async def extract_rounds_from_images(
    images: Sequence[ImageUpload],
    course_name: Optional[str] = None,
    client: Optional[genai.Client] = None,
) -> List[Round]:
    """
    Extract rounds from scorecard images with one model call.

    Extraction is best effort: any failure is logged and yields an empty
    list so the analysis can continue on the golfer's profile alone.
    """
    if not images:
        return []
    try:
        client = client or create_client()
        parts = [image_part(data, mime_type) for data, mime_type in images]
        text = await call_gemini_async(
            client,
            build_round_extraction_prompt(course_name),
            parts=parts,
            model=get_settings().gemini_model_fast,
            response_schema=RawRoundExtraction,
        )
        raw = parse_llm_json(text, RawRoundExtraction)
    except (LLMError, EnvironmentError) as e:
        logger.warning("Scorecard extraction failed, continuing without scores: %s", e)
        return []

    rounds = rounds_from_extraction(raw, course_name)
    logger.info("Extracted %d round(s) from %d image(s)", len(rounds), len(images))
    return rounds
