from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models.course_layout import CourseLayout, LayoutHole, LayoutSource
from models.round import Round


@dataclass
class _HoleObservation:
    par: Optional[int] = None
    yardage: Optional[int] = None
    scores: List[int] = field(default_factory=list)


def _normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def _chronological(rounds: Iterable[Round]) -> List[Round]:
    # Undated rounds keep their input order ahead of dated ones
    return sorted(rounds, key=lambda r: (r.date is not None, r.date or date_type.min))


def _most_played_course(rounds: List[Round]) -> Optional[str]:
    """Normalized name of the course with the most rounds, ties to the most recently played."""
    if not rounds:
        return None
    counts = Counter(_normalize_name(r.course_name) for r in rounds)
    last_played = {_normalize_name(r.course_name): i for i, r in enumerate(_chronological(rounds))}
    return max(counts, key=lambda name: (counts[name], last_played[name]))


def _build_layout(
    course_name: Optional[str],
    source: LayoutSource,
    observations: Mapping[int, _HoleObservation],
) -> CourseLayout:
    holes: List[LayoutHole] = []
    for number in sorted(observations):
        obs = observations[number]
        average = round(sum(obs.scores) / len(obs.scores), 2) if obs.scores else None
        holes.append(
            LayoutHole(
                hole=number,
                par=obs.par,
                yardage=obs.yardage,
                average_score=average,
                rounds_played=len(obs.scores),
            )
        )

    pars = [h.par for h in holes if h.par is not None]
    yardages = [h.yardage for h in holes if h.yardage is not None]
    return CourseLayout(
        course_name=course_name,
        source=source,
        holes=holes,
        total_par=sum(pars) if pars else None,
        total_yardage=sum(yardages) if yardages else None,
        holes_with_par=len(pars),
        holes_with_yardage=len(yardages),
    )


def _with_pars(layout: CourseLayout) -> Optional[CourseLayout]:
    # A layout without a single par gives the hole plan nothing to work from
    return layout if layout.holes_with_par else None


def extract_course_layout(
    rounds: Iterable[Round],
    course_name: Optional[str] = None,
) -> Optional[CourseLayout]:
    """
    Reconstruct a course layout from score history.

    Rounds are filtered by course name (case-insensitive). Without a name the
    most-played course is used, so holes from different courses never mix.
    The rounds are replayed oldest first so the most recent non-null par and
    yardage win. Returns None when no matching round has hole-by-hole detail
    or when no hole carries a par.
    """
    detailed = [r for r in rounds if r.has_hole_detail()]
    wanted = _normalize_name(course_name) or _most_played_course(detailed)
    selected = _chronological(r for r in detailed if _normalize_name(r.course_name) == wanted)
    if not selected:
        return None

    observations: Dict[int, _HoleObservation] = defaultdict(_HoleObservation)
    for round_obj in selected:
        for hole in round_obj.hole_scores:
            obs = observations[hole.hole_number]
            if hole.par is not None:
                obs.par = hole.par
            if hole.yardage is not None:
                obs.yardage = hole.yardage
            if hole.score is not None:
                obs.scores.append(hole.score)

    name = course_name or selected[-1].course_name
    return _with_pars(_build_layout(name, LayoutSource.SCORE_HISTORY, observations))


def layout_from_course_data(
    course_name: Optional[str],
    holes: Optional[Iterable[Mapping[str, Any]]],
) -> Optional[CourseLayout]:
    """Build an authoritative layout from course tee data (number/par/yardage per hole)."""
    observations: Dict[int, _HoleObservation] = {}
    for entry in holes or []:
        number = entry.get("number") or entry.get("hole_number") or entry.get("hole")
        try:
            number = int(number)
        except (TypeError, ValueError):
            continue
        if not 1 <= number <= 18:
            continue
        observations[number] = _HoleObservation(
            par=_as_int(entry.get("par")),
            yardage=_as_int(entry.get("yardage") or entry.get("length")),
        )

    if not observations:
        return None
    return _with_pars(_build_layout(course_name, LayoutSource.COURSE_DATABASE, observations))


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
