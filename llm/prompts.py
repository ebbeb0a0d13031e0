import json
from pydantic import BaseModel, Field
from typing import List, NamedTuple, Optional

from models.analysis import AnalysisRequest, GolferProfile
from models.course_layout import CourseLayout
from models.stats import AggregateStats


# ================================================================
# Shared constants
# ================================================================

MISS_PATTERNS = {
    "slice": "Slice / fade that runs away to the right",
    "hook": "Hook / draw that turns over to the left",
    "both": "Two-way miss - can go either direction",
    "straight_short": "Straight but short - contact/distance issues",
}


class HandicapBenchmark(NamedTuple):
    handicap: int
    fairways_pct: int
    gir_pct: int
    putts_per_round: float
    up_and_down_pct: int
    penalties_per_round: float


# Typical stat lines by handicap level, best player first
HANDICAP_BENCHMARKS = (
    HandicapBenchmark(0, 62, 67, 29.5, 55, 0.3),
    HandicapBenchmark(5, 52, 50, 30.8, 42, 0.7),
    HandicapBenchmark(10, 44, 33, 31.9, 32, 1.2),
    HandicapBenchmark(15, 35, 22, 33.0, 24, 1.8),
    HandicapBenchmark(20, 30, 14, 34.2, 17, 2.5),
    HandicapBenchmark(25, 25, 8, 35.5, 12, 3.2),
    HandicapBenchmark(30, 20, 4, 36.8, 8, 4.0),
)


def describe_miss_pattern(pattern: str) -> str:
    """Readable description of a miss pattern code; free text passes through."""
    return MISS_PATTERNS.get(pattern, pattern)


def format_benchmark(benchmark: HandicapBenchmark) -> str:
    return (
        f"{benchmark.handicap}-handicap: {benchmark.fairways_pct}% fairways, "
        f"{benchmark.gir_pct}% GIR, {benchmark.putts_per_round:.1f} putts/round, "
        f"{benchmark.up_and_down_pct}% up-and-down, "
        f"{benchmark.penalties_per_round:.1f} penalties/round"
    )


def find_benchmarks(handicap: float) -> tuple:
    """
    Return (current, next) benchmark rows for a handicap.

    Current is the nearest level, ties going to the lower handicap. Next is
    the level below it, or None for a scratch golfer.
    """
    current_index = min(
        range(len(HANDICAP_BENCHMARKS)),
        key=lambda i: (abs(HANDICAP_BENCHMARKS[i].handicap - handicap), HANDICAP_BENCHMARKS[i].handicap),
    )
    current = HANDICAP_BENCHMARKS[current_index]
    next_row = HANDICAP_BENCHMARKS[current_index - 1] if current_index > 0 else None
    return current, next_row


def _fmt_number(value: float) -> str:
    return f"{value:g}"


def _fmt_pct(value: Optional[int]) -> str:
    return f"{value}%" if value is not None else "n/a"


def _fmt_signed(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value:+.2f}"


# ================================================================
# Analysis prompt sections
# ================================================================

_ANALYST_PREAMBLE = (
    "You are an expert golf coach and course strategist. Analyze this golfer's "
    "game and create a comprehensive, personalized improvement strategy."
)


def _profile_section(profile: GolferProfile) -> str:
    lines = [
        "## GOLFER PROFILE",
        f"- Name: {profile.name}",
        f"- Current Handicap: {_fmt_number(profile.handicap)}",
        f"- Home Course: {profile.home_course}",
        f"- Primary Miss Pattern: {describe_miss_pattern(profile.miss_pattern)}",
    ]
    if profile.miss_description:
        lines.append(f"- Additional Context: {profile.miss_description}")
    strengths = ", ".join(profile.strengths) if profile.strengths else "None specified"
    lines.append(f"- Self-Reported Strengths: {strengths}")
    return "\n".join(lines)


def _layout_section(layout: CourseLayout) -> str:
    if layout.is_authoritative:
        label = "official course data, pars and yardages are authoritative"
    else:
        label = "reconstructed from the golfer's score history, pars and yardages as last recorded"
    lines = [f"## COURSE LAYOUT: {layout.course_name or 'Home course'} ({label})"]
    for hole in layout.holes:
        parts = [f"par {hole.par}" if hole.par is not None else "par unknown"]
        if hole.yardage is not None:
            parts.append(f"{hole.yardage} yds")
        if hole.average_score is not None:
            parts.append(f"avg score {hole.average_score:.2f} over {hole.rounds_played} rounds")
        lines.append(f"- Hole {hole.hole}: {', '.join(parts)}")
    if layout.total_par is not None:
        lines.append(f"Total par ({layout.holes_with_par} holes known): {layout.total_par}")
    if layout.total_yardage is not None:
        lines.append(f"Total yardage ({layout.holes_with_yardage} holes known): {layout.total_yardage}")
    return "\n".join(lines)


def _analytics_section(stats: AggregateStats) -> str:
    lines = [
        "## PERFORMANCE ANALYTICS (measured from score data)",
        f"- Rounds analyzed: {stats.rounds_analyzed} "
        f"({stats.rounds_with_hole_data} with hole-by-hole detail, {stats.holes_analyzed} holes)",
    ]
    if stats.average_score is not None:
        lines.append(f"- Average score: {stats.average_score:.2f}")
    if stats.average_differential is not None:
        lines.append(f"- Average differential: {stats.average_differential:.2f}")

    played_pars = [p for p in stats.par_performance.values() if p.holes_played]
    if played_pars:
        lines.append("### Scoring by par type")
        for perf in played_pars:
            lines.append(
                f"- Par {perf.par}: {perf.holes_played} holes, avg {perf.average_score:.2f} "
                f"({_fmt_signed(perf.average_to_par)}), GIR {_fmt_pct(perf.gir_pct)}, "
                f"birdies-or-better {perf.eagles + perf.birdies}, pars {perf.pars}, "
                f"bogeys {perf.bogeys}, doubles-or-worse {perf.doubles + perf.triples + perf.worse}"
            )

    dist = stats.scoring_distribution
    if dist.holes:
        shares = ", ".join(f"{name} {_fmt_pct(pct)}" for name, pct in dist.percentages.items())
        lines.append(f"### Scoring distribution ({dist.holes} holes)")
        lines.append(f"- {shares}")

    if stats.fairways.attempts or stats.approach.gir_attempts:
        lines.append("### Ball striking")
    if stats.fairways.attempts:
        lines.append(
            f"- Fairways: {stats.fairways.hits}/{stats.fairways.attempts} "
            f"({_fmt_pct(stats.fairways.fairway_pct)})"
        )
        if stats.fairways.misses:
            misses = ", ".join(f"{d} {_fmt_pct(p)}" for d, p in stats.fairways.miss_pct.items())
            lines.append(f"- Fairway misses ({stats.fairways.misses}): {misses}")
    if stats.approach.gir_attempts:
        lines.append(
            f"- Greens in regulation: {stats.approach.gir_hits}/{stats.approach.gir_attempts} "
            f"({_fmt_pct(stats.approach.gir_pct)})"
        )
        by_par = ", ".join(f"par {par} {_fmt_pct(p)}" for par, p in stats.approach.gir_pct_by_par.items())
        lines.append(f"- GIR by par: {by_par}")
        if stats.approach.green_misses:
            misses = ", ".join(f"{d} {_fmt_pct(p)}" for d, p in stats.approach.green_miss_pct.items())
            lines.append(f"- Green misses ({stats.approach.green_misses}): {misses}")

    short = stats.short_game
    if short.putts_per_gir is not None or short.putts_per_missed_gir is not None or short.up_and_down_attempts:
        lines.append("### Short game")
        if short.putts_per_gir is not None:
            lines.append(f"- Putts per GIR: {short.putts_per_gir:.2f}")
        if short.putts_per_missed_gir is not None:
            lines.append(f"- Putts per missed GIR: {short.putts_per_missed_gir:.2f}")
        if short.up_and_down_attempts:
            lines.append(
                f"- Up-and-down: {short.up_and_down_successes}/{short.up_and_down_attempts} "
                f"({_fmt_pct(short.up_and_down_pct)})"
            )
        if short.sand_attempts:
            lines.append(
                f"- Sand saves: {short.sand_saves}/{short.sand_attempts} ({_fmt_pct(short.sand_save_pct)})"
            )

    penalties = stats.penalties
    if penalties.rounds_with_penalty_data:
        lines.append("### Penalties")
        lines.append(
            f"- {penalties.total_penalties} penalty strokes over {penalties.rounds_with_penalty_data} rounds "
            f"({penalties.average_per_round:.2f} per round)"
        )
        if penalties.worst_holes:
            worst = ", ".join(f"hole {h.hole} ({h.penalties})" for h in penalties.worst_holes)
            lines.append(f"- Most penalties: {worst}")

    if stats.trouble_holes:
        lines.append("### Trouble holes (average over par)")
        for hole in stats.trouble_holes:
            lines.append(f"- Hole {hole.hole} (par {hole.par}): {_fmt_signed(hole.average_to_par)} over {hole.rounds} rounds")
    if stats.birdie_holes:
        lines.append("### Scoring opportunities (par 4/5 holes played near par)")
        for hole in stats.birdie_holes:
            lines.append(f"- Hole {hole.hole} (par {hole.par}): {_fmt_signed(hole.average_to_par)} over {hole.rounds} rounds")
    return "\n".join(lines)


_NO_ANALYTICS_PLACEHOLDER = """## PERFORMANCE ANALYTICS
No measured performance data is available. Base the analysis on the golfer's
self-reported miss pattern, handicap and strengths."""


def _rounds_section(request: AnalysisRequest) -> str:
    payload = [
        r.model_dump(mode="json", exclude_none=True, exclude_defaults=True)
        for r in request.rounds
    ]
    return "## ROUND DATA\n" + json.dumps({"rounds": payload}, indent=2)


def _benchmark_section(handicap: float) -> str:
    current, next_row = find_benchmarks(handicap)
    lines = ["## HANDICAP BENCHMARKS (typical stats by handicap level)"]
    lines.extend(f"- {format_benchmark(b)}" for b in HANDICAP_BENCHMARKS)
    lines.append(f"Golfer's current benchmark: {format_benchmark(current)}")
    if next_row is not None:
        lines.append(f"Next benchmark to reach: {format_benchmark(next_row)}")
    else:
        lines.append("Next benchmark to reach: already at the scratch benchmark")
    return "\n".join(lines)


_ANALYSIS_JSON_SCHEMA = """{
  "summary": {
    "currentHandicap": number,
    "targetHandicap": number (realistic 12-month goal),
    "potentialStrokeDrop": number,
    "keyInsight": "One sentence summary of biggest opportunity"
  },
  "parStrategy": {
    "par3": {"averageToPar": number or null, "approach": "How to play par 3s", "target": "Target score"},
    "par4": {"averageToPar": number or null, "approach": "How to play par 4s", "target": "Target score"},
    "par5": {"averageToPar": number or null, "approach": "How to play par 5s", "target": "Target score"}
  },
  "scoringBreakdown": {
    "strokesLostOffTee": "Where strokes are lost off the tee",
    "strokesLostApproach": "Where strokes are lost on approach",
    "strokesLostShortGame": "Where strokes are lost around the green",
    "strokesLostPutting": "Where strokes are lost on the green"
  },
  "troubleHoles": [
    {
      "type": "Category of hole (e.g., 'Long Par 4s over 400 yards')",
      "specificHoles": [hole numbers if score data available, else null],
      "averageScore": number or null,
      "problem": "Why this hole type hurts them based on their miss pattern",
      "strategy": "Specific tactical advice",
      "acceptableScore": "Bogey" or "Par" etc,
      "clubRecommendation": "What to hit off the tee"
    }
  ],
  "strengthHoles": [
    {
      "type": "Category of hole",
      "specificHoles": [hole numbers or null],
      "opportunity": "Why they can score here",
      "strategy": "How to attack",
      "targetScore": "Par" or "Birdie"
    }
  ],
  "courseStrategy": {
    "redLightHoles": [hole numbers or general advice],
    "yellowLightHoles": [hole numbers or general advice],
    "greenLightHoles": [hole numbers or general advice],
    "overallApproach": "2-3 sentence philosophy for the round"
  },
  "holeByHole": [
    {
      "hole": 1,
      "par": 4,
      "yardage": 385,
      "light": "red" | "yellow" | "green",
      "teeClub": "Club off the tee",
      "strategy": "How to play the hole",
      "targetScore": "Par"
    }
  ],
  "practicePlan": {
    "weeklySchedule": [
      {
        "session": "Session name",
        "duration": "45 min",
        "focus": "What skill this addresses",
        "drills": [
          {
            "name": "Drill name",
            "description": "How to do it",
            "reps": "10 balls",
            "why": "Why this helps their specific issue"
          }
        ]
      }
    ],
    "preRoundRoutine": ["Step 1...", "Step 2..."],
    "practiceRoundFocus": ["Thing to track/work on during practice rounds"]
  },
  "mentalGame": {
    "preShot": "Key thought before trouble shots",
    "recovery": "What to think after a bad shot",
    "mantras": ["List of 3-4 personalized mantras"]
  },
  "targetStats": {
    "fairwaysHit": "40%",
    "penaltiesPerRound": "< 2",
    "gir": "25%",
    "upAndDown": "35%",
    "puttsPerRound": "32"
  },
  "handicapPath": {
    "currentBenchmark": "Benchmark row for the current handicap",
    "nextBenchmark": "Benchmark row for the next level",
    "biggestGaps": ["Stats furthest from the next benchmark"],
    "steps": ["Concrete steps to close each gap"],
    "timeline": "Realistic timeline"
  },
  "thirtyDayPlan": [
    {
      "week": 1,
      "focus": "Main focus area",
      "goals": ["Specific measurable goals"]
    }
  ]
}"""


def _policy_section(request: AnalysisRequest) -> str:
    has_layout = request.course_layout is not None and bool(request.course_layout.holes)
    rules = [
        f"Be specific to their miss pattern ({request.profile.miss_pattern}). A slicer needs different advice than a hooker.",
        "When measured analytics conflict with the self-reported profile, trust the measured data.",
        "Reference specific holes by number only when score data or the course layout supports it.",
    ]
    if has_layout:
        rules.append("Use the course layout for holeByHole: one entry per hole, with the listed par and yardage.")
    else:
        rules.append("No course layout is available: return an empty holeByHole list and do not invent pars.")
    rules.extend([
        "Ground handicapPath in the benchmark table: compare the golfer's stats to the current and next benchmark rows.",
        "Practice drills should directly address their biggest measured weaknesses and miss pattern.",
        "Be encouraging but realistic about the improvement timeline.",
    ])
    numbered = "\n".join(f"{i}. {rule}" for i, rule in enumerate(rules, start=1))
    return "Important guidelines:\n" + numbered


def build_analysis_prompt(request: AnalysisRequest) -> str:
    """
    Assemble the coaching analysis prompt.

    Output depends only on the request, so identical requests produce
    identical prompts.
    """
    sections = [_ANALYST_PREAMBLE, _profile_section(request.profile)]

    if request.course_layout is not None and request.course_layout.holes:
        sections.append(_layout_section(request.course_layout))

    if request.stats is not None and request.stats.has_data():
        sections.append(_analytics_section(request.stats))
    else:
        sections.append(_NO_ANALYTICS_PLACEHOLDER)

    if request.rounds:
        sections.append(_rounds_section(request))

    sections.append(_benchmark_section(request.profile.handicap))
    sections.append(
        "## YOUR TASK\n"
        "Analyze this golfer's game and return a JSON object with the following structure. "
        "Be specific and actionable. Tailor everything to their miss pattern and strengths.\n\n"
        + _ANALYSIS_JSON_SCHEMA
    )
    sections.append(_policy_section(request))
    sections.append("Return ONLY the JSON object, no other text.")
    return "\n\n".join(sections)


# ================================================================
# Scorecard round extraction
# ================================================================

_ROUND_EXTRACTION_JSON_SCHEMA = """{
  "rounds": [
    {
      "date": "YYYY-MM-DD or null",
      "course": "Course Name or null",
      "total_score": 85,
      "tees": "Tee name or null",
      "holes": [
        {"hole": 1, "par": 4, "yardage": 385, "score": 5, "putts": 2,
         "fairway": "hit" | "left" | "right" | "short" | null,
         "green_in_regulation": true, "penalties": 0}
      ]
    }
  ]
}"""


def build_round_extraction_prompt(course_name: Optional[str] = None) -> str:
    """Prompt for reading one or more rounds off scorecard images."""
    course_line = (
        f'You are analyzing golf scorecard images for a course called "{course_name}".'
        if course_name else "You are analyzing golf scorecard images."
    )
    return f"""{course_line}

Extract the hole-by-hole data from each scorecard image. Each image is usually one round.
For each round, provide the date (if visible), the total score, and for each hole: hole number,
par, yardage (if shown), and score. Include putts, fairway result, green in regulation and
penalty strokes only when the golfer marked them on the card.

Return a JSON object with this exact structure. Use null for any value you cannot read.
Do NOT guess values you cannot see -- use null instead.
{_ROUND_EXTRACTION_JSON_SCHEMA}

Only return valid JSON, no other text."""


class RawExtractedHole(BaseModel):
    hole: Optional[int] = None
    par: Optional[int] = None
    yardage: Optional[int] = None
    score: Optional[int] = None
    putts: Optional[int] = None
    fairway: Optional[str] = None
    green_in_regulation: Optional[bool] = None
    penalties: Optional[int] = None


class RawExtractedRound(BaseModel):
    date: Optional[str] = None
    course: Optional[str] = None
    total_score: Optional[int] = None
    tees: Optional[str] = None
    holes: List[RawExtractedHole] = Field(default_factory=list)


class RawRoundExtraction(BaseModel):
    rounds: List[RawExtractedRound] = Field(default_factory=list)


# ================================================================
# Course strategy
# ================================================================

_COURSE_STRATEGY_JSON_SCHEMA = """{
  "courseName": "Course Name",
  "tees": "Tees being played",
  "overview": "Course overview paragraph",
  "keyHoles": [
    {
      "number": 7,
      "par": 4,
      "yardage": "420",
      "strategy": "Strategy for this hole",
      "danger": "What to avoid"
    }
  ],
  "generalStrategy": [
    {"title": "Strategy Title", "description": "Detailed description"}
  ],
  "scoringTargets": {"great": 82, "solid": 88, "max": 95},
  "preRoundChecklist": ["Item 1", "Item 2"]
}"""

DEFAULT_STRATEGY_HANDICAP = 15
DEFAULT_STRATEGY_MISS = "slice"


def build_course_strategy_prompt(
    course_name: str,
    tees: Optional[str] = None,
    notes: Optional[str] = None,
    handicap: Optional[float] = None,
    miss_pattern: Optional[str] = None,
    has_scorecard: bool = False,
) -> str:
    """Prompt for a pre-round game plan at a specific course."""
    tee_text = f" from the {tees}" if tees else ""
    handicap_text = _fmt_number(handicap) if handicap is not None else str(DEFAULT_STRATEGY_HANDICAP)
    miss_text = describe_miss_pattern(miss_pattern or DEFAULT_STRATEGY_MISS)

    lines = [
        f"I'm about to play {course_name}{tee_text}.",
        "",
        f"My handicap is {handicap_text} and my typical miss is: {miss_text}.",
    ]
    if notes:
        lines.extend(["", f"Additional notes: {notes}"])
    if has_scorecard:
        lines.extend(["", "I've also uploaded a scorecard image which shows the hole-by-hole details."])
    lines.extend([
        "",
        "Please provide a course strategy for me. Use what you know about this course and give me:",
        "",
        "1. A brief overview of the course (style, difficulty, notable features)",
        "2. The 3-5 most important holes I should know about, with specific strategy for each",
        "3. 4-5 general strategy tips for playing this course given my handicap and miss pattern",
        "4. Realistic scoring targets (great round, solid round, what to stay under)",
        "5. A pre-round checklist of things to remember",
        "",
        "Format your response as JSON with this structure:",
        _COURSE_STRATEGY_JSON_SCHEMA,
    ])
    return "\n".join(lines)
