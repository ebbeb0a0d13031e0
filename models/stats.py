from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class ScoreCounts(BaseModel):
    """Holes bucketed by score relative to par."""
    eagles: int = 0
    birdies: int = 0
    pars: int = 0
    bogeys: int = 0
    doubles: int = 0
    triples: int = 0
    worse: int = 0

    @property
    def total(self) -> int:
        return (self.eagles + self.birdies + self.pars + self.bogeys
                + self.doubles + self.triples + self.worse)


class ParTypePerformance(ScoreCounts):
    """Scoring on all par 3s, par 4s or par 5s."""
    par: int
    holes_played: int = 0
    average_score: Optional[float] = None
    average_to_par: Optional[float] = None
    gir_attempts: int = 0
    gir_hits: int = 0
    gir_pct: Optional[int] = None


class ScoringDistribution(ScoreCounts):
    """Score-type counts plus their share of all scored holes (integer %)."""
    holes: int = 0
    percentages: Dict[str, Optional[int]] = Field(default_factory=dict)


class ApproachStats(BaseModel):
    gir_attempts: int = 0
    gir_hits: int = 0
    gir_pct: Optional[int] = None
    gir_pct_by_par: Dict[str, Optional[int]] = Field(default_factory=dict)
    green_misses: int = 0
    green_miss_pct: Dict[str, Optional[int]] = Field(default_factory=dict)


class FairwayStats(BaseModel):
    attempts: int = 0
    hits: int = 0
    fairway_pct: Optional[int] = None
    misses: int = 0
    miss_pct: Dict[str, Optional[int]] = Field(default_factory=dict)


class ShortGameStats(BaseModel):
    putts_per_gir: Optional[float] = None
    putts_per_missed_gir: Optional[float] = None
    up_and_down_attempts: int = 0
    up_and_down_successes: int = 0
    up_and_down_pct: Optional[int] = None
    sand_attempts: int = 0
    sand_saves: int = 0
    sand_save_pct: Optional[int] = None


class PenaltyHole(BaseModel):
    hole: int
    penalties: int


class PenaltyStats(BaseModel):
    total_penalties: int = 0
    rounds_with_penalty_data: int = 0
    average_per_round: Optional[float] = None
    worst_holes: List[PenaltyHole] = Field(default_factory=list)


class HoleAverage(BaseModel):
    """Mean result on one hole number across rounds."""
    hole: int
    par: Optional[int] = None
    average_to_par: float
    rounds: int


class AggregateStats(BaseModel):
    """Derived performance metrics over a set of rounds."""
    rounds_analyzed: int = 0
    rounds_with_hole_data: int = 0
    holes_analyzed: int = 0
    average_score: Optional[float] = None
    average_differential: Optional[float] = None
    par_performance: Dict[str, ParTypePerformance] = Field(default_factory=dict)
    scoring_distribution: ScoringDistribution = Field(default_factory=ScoringDistribution)
    approach: ApproachStats = Field(default_factory=ApproachStats)
    fairways: FairwayStats = Field(default_factory=FairwayStats)
    short_game: ShortGameStats = Field(default_factory=ShortGameStats)
    penalties: PenaltyStats = Field(default_factory=PenaltyStats)
    trouble_holes: List[HoleAverage] = Field(default_factory=list)
    birdie_holes: List[HoleAverage] = Field(default_factory=list)
    course_hole_averages: Dict[str, List[HoleAverage]] = Field(default_factory=dict)

    def has_data(self) -> bool:
        """True when at least one sub-metric was measured."""
        return bool(
            self.average_score is not None
            or self.average_differential is not None
            or self.holes_analyzed
            or self.approach.gir_attempts
            or self.fairways.attempts
            or self.short_game.up_and_down_attempts
            or self.short_game.putts_per_gir is not None
            or self.short_game.putts_per_missed_gir is not None
            or self.penalties.rounds_with_penalty_data
        )
