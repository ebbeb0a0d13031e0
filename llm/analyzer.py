import logging
from typing import List, Optional, Sequence

from google import genai

from analytics import calculate_aggregate_stats, extract_course_layout
from models import AnalysisRequest, AnalysisResult, CourseLayout, GolferProfile, Round
from llm.client import call_gemini_async, create_client, parse_llm_json
from llm.prompts import build_analysis_prompt
from llm.round_extractor import ImageUpload, extract_rounds_from_images

logger = logging.getLogger(__name__)


def _home_course_rounds(rounds: Sequence[Round], home_course: str) -> List[Round]:
    wanted = home_course.strip().lower()
    return [r for r in rounds if (r.course_name or "").strip().lower() == wanted]


def build_analysis_request(
    profile: GolferProfile,
    rounds: Sequence[Round],
    course_layout: Optional[CourseLayout] = None,
) -> AnalysisRequest:
    """
    Derive stats and a course layout from the rounds and bundle them with the profile.

    A supplied (authoritative) layout wins over one reconstructed from history.
    The reconstructed layout uses home-course rounds when there are any,
    otherwise the rounds of the most-played course.
    """
    rounds = list(rounds)
    stats = calculate_aggregate_stats(rounds)

    layout = course_layout if course_layout is not None and course_layout.holes else None
    if layout is None and rounds:
        home_rounds = _home_course_rounds(rounds, profile.home_course)
        if home_rounds:
            layout = extract_course_layout(home_rounds, profile.home_course)
        else:
            layout = extract_course_layout(rounds)

    return AnalysisRequest(profile=profile, rounds=rounds, course_layout=layout, stats=stats)


async def analyze_golf_game(
    profile: GolferProfile,
    *,
    images: Sequence[ImageUpload] = (),
    ghin_rounds: Optional[Sequence[Round]] = None,
    course_layout: Optional[CourseLayout] = None,
    client: Optional[genai.Client] = None,
) -> AnalysisResult:
    """
    Run the full analysis pipeline for one golfer.

    GHIN rounds, when supplied, take precedence and the images are not read.
    Otherwise the images go through scorecard extraction, which degrades to
    no rounds on failure. Raises LLMServiceError or AnalysisParseError when
    the analysis call itself fails.
    """
    client = client or create_client()

    if ghin_rounds:
        rounds = list(ghin_rounds)
        source = "ghin"
    elif images:
        rounds = await extract_rounds_from_images(images, profile.home_course, client=client)
        source = "scorecard"
    else:
        rounds = []
        source = None

    request = build_analysis_request(profile, rounds, course_layout)
    logger.info(
        "Analyzing %s: %d round(s) from %s, layout=%s",
        profile.name,
        len(rounds),
        source or "profile only",
        request.course_layout.source.value if request.course_layout else "none",
    )

    prompt = build_analysis_prompt(request)
    text = await call_gemini_async(client, prompt)
    result = parse_llm_json(text, AnalysisResult)

    result.extracted_scores = {
        "source": source,
        "rounds": [r.model_dump(mode="json", exclude_none=True) for r in rounds],
    }
    return result
