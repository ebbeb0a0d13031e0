from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Any, Dict, Iterable, List, Optional, Sequence

from models.hole_score import FairwayResult, GreenMiss, HoleScore
from models.round import Round
from models.stats import (
    AggregateStats,
    ApproachStats,
    FairwayStats,
    HoleAverage,
    ParTypePerformance,
    PenaltyHole,
    PenaltyStats,
    ScoringDistribution,
    ShortGameStats,
)

PAR_TYPES = (3, 4, 5)

# Mean over-par above which a hole is a trouble hole, and below which a
# par 4/5 counts as a birdie opportunity.
TROUBLE_HOLE_THRESHOLD = 0.5
BIRDIE_HOLE_THRESHOLD = 0.3

WORST_PENALTY_HOLES = 3

SCORE_TYPE_FIELDS = ("eagles", "birdies", "pars", "bogeys", "doubles", "triples", "worse")

FAIRWAY_MISS_DIRECTIONS = (FairwayResult.LEFT, FairwayResult.RIGHT, FairwayResult.SHORT)
GREEN_MISS_DIRECTIONS = (GreenMiss.SHORT, GreenMiss.LONG, GreenMiss.LEFT, GreenMiss.RIGHT)


def _score_type_field(to_par: int) -> str:
    if to_par <= -2:
        return "eagles"
    if to_par == -1:
        return "birdies"
    if to_par == 0:
        return "pars"
    if to_par == 1:
        return "bogeys"
    if to_par == 2:
        return "doubles"
    if to_par == 3:
        return "triples"
    return "worse"


def _pct(part: int, whole: int) -> Optional[int]:
    """Integer percentage (half-up), None when there is nothing to divide by."""
    if not whole:
        return None
    return math.floor(part * 100.0 / whole + 0.5)


def _split_pct(counts: Dict[Any, int]) -> Dict[Any, Optional[int]]:
    """
    Whole-number shares of a total that never add up to more than 100.

    Every share is floored, then the leftover points go to the largest
    remainders (ties to the earlier key).
    """
    total = sum(counts.values())
    if not total:
        return dict.fromkeys(counts)
    shares = {key: count * 100 // total for key, count in counts.items()}
    leftover = 100 - sum(shares.values())
    by_remainder = sorted(
        counts, key=lambda key: -(counts[key] * 100 % total)
    )
    for key in by_remainder[:leftover]:
        if counts[key] * 100 % total:
            shares[key] += 1
    return shares


def _mean(total: float, count: int, places: int = 2) -> Optional[float]:
    if not count:
        return None
    return round(total / count, places)


@dataclass
class _HoleBucket:
    """Running over-par total for one hole number."""
    over_par_total: int = 0
    count: int = 0
    par: Optional[int] = None

    def add(self, to_par: int, par: int) -> None:
        self.over_par_total += to_par
        self.count += 1
        self.par = par

    def average(self) -> float:
        return round(self.over_par_total / self.count, 2)


@dataclass
class _ParBucket:
    score_total: int = 0
    count: int = 0
    gir_attempts: int = 0
    gir_hits: int = 0
    score_types: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(SCORE_TYPE_FIELDS, 0))


@dataclass
class _Accumulator:
    """Mutable tallies filled in one pass over every hole."""
    holes_scored: int = 0
    by_hole: Dict[int, _HoleBucket] = field(default_factory=lambda: defaultdict(_HoleBucket))
    by_course: Dict[str, Dict[int, _HoleBucket]] = field(
        default_factory=lambda: defaultdict(lambda: defaultdict(_HoleBucket))
    )
    by_par: Dict[int, _ParBucket] = field(default_factory=lambda: {p: _ParBucket() for p in PAR_TYPES})
    score_types: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(SCORE_TYPE_FIELDS, 0))
    gir_attempts: int = 0
    gir_hits: int = 0
    fairway_attempts: int = 0
    fairway_hits: int = 0
    fairway_misses: Dict[FairwayResult, int] = field(
        default_factory=lambda: dict.fromkeys(FAIRWAY_MISS_DIRECTIONS, 0)
    )
    green_misses: Dict[GreenMiss, int] = field(default_factory=lambda: dict.fromkeys(GREEN_MISS_DIRECTIONS, 0))
    putts_on_gir: int = 0
    gir_putt_holes: int = 0
    putts_off_gir: int = 0
    missed_gir_putt_holes: int = 0
    up_down_attempts: int = 0
    up_down_successes: int = 0
    sand_attempts: int = 0
    sand_saves: int = 0
    penalties_by_hole: Dict[int, int] = field(default_factory=lambda: defaultdict(int))

    def add_hole(self, hole: HoleScore, course_key: Optional[str]) -> None:
        # Direction counters do not depend on the score
        if hole.fairway is not None:
            self.fairway_attempts += 1
            if hole.fairway == FairwayResult.HIT:
                self.fairway_hits += 1
            else:
                self.fairway_misses[hole.fairway] += 1
        if hole.green_miss is not None and hole.green_in_regulation is not True:
            self.green_misses[hole.green_miss] += 1
        if hole.penalties:
            self.penalties_by_hole[hole.hole_number] += hole.penalties

        if hole.score is None:
            return
        self.holes_scored += 1

        if hole.green_in_regulation is not None:
            self.gir_attempts += 1
            if hole.green_in_regulation:
                self.gir_hits += 1
            if hole.putts is not None:
                if hole.green_in_regulation:
                    self.putts_on_gir += hole.putts
                    self.gir_putt_holes += 1
                else:
                    self.putts_off_gir += hole.putts
                    self.missed_gir_putt_holes += 1

        to_par = hole.to_par()
        if hole.sand_shots:
            self.sand_attempts += 1
            if hole.sand_save is not None:
                saved = hole.sand_save
            else:
                saved = to_par is not None and to_par <= 0
            if saved:
                self.sand_saves += 1

        if to_par is None:
            return

        score_type = _score_type_field(to_par)
        self.score_types[score_type] += 1
        self.by_hole[hole.hole_number].add(to_par, hole.par)
        if course_key:
            self.by_course[course_key][hole.hole_number].add(to_par, hole.par)

        if hole.par in self.by_par:
            bucket = self.by_par[hole.par]
            bucket.score_total += hole.score
            bucket.count += 1
            bucket.score_types[score_type] += 1
            if hole.green_in_regulation is not None:
                bucket.gir_attempts += 1
                if hole.green_in_regulation:
                    bucket.gir_hits += 1

        if hole.green_in_regulation is False:
            self.up_down_attempts += 1
            if to_par <= 0:
                self.up_down_successes += 1


def _rounds_with_hole_detail(rounds: Iterable[Round]) -> List[Round]:
    return [r for r in rounds if r.has_hole_detail()]


def _par_performance(acc: _Accumulator) -> Dict[str, ParTypePerformance]:
    performance: Dict[str, ParTypePerformance] = {}
    for par, bucket in acc.by_par.items():
        average_score = _mean(bucket.score_total, bucket.count)
        performance[str(par)] = ParTypePerformance(
            par=par,
            holes_played=bucket.count,
            average_score=average_score,
            average_to_par=round(average_score - par, 2) if average_score is not None else None,
            gir_attempts=bucket.gir_attempts,
            gir_hits=bucket.gir_hits,
            gir_pct=_pct(bucket.gir_hits, bucket.gir_attempts),
            **bucket.score_types,
        )
    return performance


def _scoring_distribution(acc: _Accumulator) -> ScoringDistribution:
    total = sum(acc.score_types.values())
    return ScoringDistribution(
        holes=total,
        percentages=_split_pct(acc.score_types),
        **acc.score_types,
    )


def _approach(acc: _Accumulator) -> ApproachStats:
    total_misses = sum(acc.green_misses.values())
    return ApproachStats(
        gir_attempts=acc.gir_attempts,
        gir_hits=acc.gir_hits,
        gir_pct=_pct(acc.gir_hits, acc.gir_attempts),
        gir_pct_by_par={
            str(par): _pct(bucket.gir_hits, bucket.gir_attempts)
            for par, bucket in acc.by_par.items()
        },
        green_misses=total_misses,
        green_miss_pct={
            direction.value: pct for direction, pct in _split_pct(acc.green_misses).items()
        },
    )


def _fairways(acc: _Accumulator) -> FairwayStats:
    total_misses = sum(acc.fairway_misses.values())
    return FairwayStats(
        attempts=acc.fairway_attempts,
        hits=acc.fairway_hits,
        fairway_pct=_pct(acc.fairway_hits, acc.fairway_attempts),
        misses=total_misses,
        miss_pct={
            direction.value: pct for direction, pct in _split_pct(acc.fairway_misses).items()
        },
    )


def _short_game(acc: _Accumulator) -> ShortGameStats:
    return ShortGameStats(
        putts_per_gir=_mean(acc.putts_on_gir, acc.gir_putt_holes),
        putts_per_missed_gir=_mean(acc.putts_off_gir, acc.missed_gir_putt_holes),
        up_and_down_attempts=acc.up_down_attempts,
        up_and_down_successes=acc.up_down_successes,
        up_and_down_pct=_pct(acc.up_down_successes, acc.up_down_attempts),
        sand_attempts=acc.sand_attempts,
        sand_saves=acc.sand_saves,
        sand_save_pct=_pct(acc.sand_saves, acc.sand_attempts),
    )


def _penalties(rounds: Sequence[Round], acc: _Accumulator) -> PenaltyStats:
    per_round = [r.get_total_penalties() for r in rounds]
    known = [p for p in per_round if p is not None]
    worst = sorted(
        (item for item in acc.penalties_by_hole.items() if item[1] > 0),
        key=lambda item: (-item[1], item[0]),
    )[:WORST_PENALTY_HOLES]
    return PenaltyStats(
        total_penalties=sum(known),
        rounds_with_penalty_data=len(known),
        average_per_round=_mean(sum(known), len(known)),
        worst_holes=[PenaltyHole(hole=hole, penalties=count) for hole, count in worst],
    )


def _hole_averages(buckets: Dict[int, _HoleBucket]) -> List[HoleAverage]:
    return [
        HoleAverage(hole=number, par=bucket.par, average_to_par=bucket.average(), rounds=bucket.count)
        for number, bucket in sorted(buckets.items())
        if bucket.count
    ]


def find_trouble_holes(averages: Iterable[HoleAverage]) -> List[HoleAverage]:
    """Holes averaging worse than the trouble threshold, worst first."""
    trouble = [h for h in averages if h.average_to_par > TROUBLE_HOLE_THRESHOLD]
    return sorted(trouble, key=lambda h: (-h.average_to_par, h.hole))


def find_birdie_holes(averages: Iterable[HoleAverage]) -> List[HoleAverage]:
    """Par 4s and 5s averaging better than the birdie threshold, best first."""
    candidates = [
        h for h in averages
        if h.par in (4, 5) and h.average_to_par < BIRDIE_HOLE_THRESHOLD
    ]
    return sorted(candidates, key=lambda h: (h.average_to_par, h.hole))


def calculate_aggregate_stats(rounds: Sequence[Round]) -> AggregateStats:
    """
    Derive scoring, approach, short-game and penalty metrics from rounds.

    Round-level averages use every round; everything hole-derived uses only
    rounds that carry hole-by-hole scores. A metric whose sample is empty is
    None rather than 0.
    """
    rounds = list(rounds)
    totals = [r.calculate_total_score() for r in rounds]
    totals = [t for t in totals if t is not None]
    differentials = [r.differential for r in rounds if r.differential is not None]

    detailed = _rounds_with_hole_detail(rounds)
    acc = _Accumulator()
    for round_obj in detailed:
        course_key = round_obj.course_name.strip() if round_obj.course_name else None
        for hole in round_obj.hole_scores:
            acc.add_hole(hole, course_key)

    hole_averages = _hole_averages(acc.by_hole)

    return AggregateStats(
        rounds_analyzed=len(rounds),
        rounds_with_hole_data=len(detailed),
        holes_analyzed=acc.holes_scored,
        average_score=_mean(sum(totals), len(totals)),
        average_differential=_mean(sum(differentials), len(differentials)),
        par_performance=_par_performance(acc),
        scoring_distribution=_scoring_distribution(acc),
        approach=_approach(acc),
        fairways=_fairways(acc),
        short_game=_short_game(acc),
        penalties=_penalties(rounds, acc),
        trouble_holes=find_trouble_holes(hole_averages),
        birdie_holes=find_birdie_holes(hole_averages),
        course_hole_averages={
            course: _hole_averages(buckets)
            for course, buckets in sorted(acc.by_course.items())
        },
    )


def score_trend(rounds: Iterable[Round]) -> List[Dict[str, Any]]:
    """Return total score trend data by round, oldest first."""
    ordered = sorted(rounds, key=lambda r: (r.date is None, r.date or date_type.min))
    results: List[Dict[str, Any]] = []
    for index, round_obj in enumerate(ordered, start=1):
        results.append(
            {
                "round_index": index,
                "round_id": round_obj.id,
                "date": round_obj.date.isoformat() if round_obj.date else None,
                "course_name": round_obj.course_name,
                "total_score": round_obj.calculate_total_score(),
                "putts": round_obj.putts,
                "penalties": round_obj.get_total_penalties(),
            }
        )
    return results
