# admitgroup/services/probability.py
"""
Admission probability and aggressive / balanced / safe banding for one
candidate against one group's historical statistics.

Pure and stateless: safe to call concurrently against shared statistics.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from admitgroup.config.config import settings
from admitgroup.domain.models import (
    Category, ClassificationResult, ExclusionReason, GroupStatistics, Trend,
)


@dataclass(frozen=True)
class ClassifierParams:
    rank_boost: float = 1.2
    rank_penalty: float = 0.8
    aggressive_below: float = 0.35
    safe_from: float = 0.90
    insufficient_data_probability: float = 0.5
    exclude_margin_below: int = -20
    exclude_margin_above: int = 15
    implausible_probability: float = 0.05
    implausible_margin: int = -15
    low_confidence_below: int = 60

    @classmethod
    def from_settings(cls) -> "ClassifierParams":
        return cls(
            rank_boost=settings.rank_boost,
            rank_penalty=settings.rank_penalty,
            aggressive_below=settings.aggressive_below,
            safe_from=settings.safe_from,
            insufficient_data_probability=settings.insufficient_data_probability,
            exclude_margin_below=settings.exclude_margin_below,
            exclude_margin_above=settings.exclude_margin_above,
            implausible_probability=settings.implausible_probability,
            implausible_margin=settings.implausible_margin,
            low_confidence_below=settings.low_confidence_below,
        )


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _plan_change_rate(stats: GroupStatistics) -> Optional[float]:
    """Latest vs previous selected year's plan count, None when unknown."""
    if len(stats.records) < 2:
        return None
    latest, previous = stats.records[0].plan_count, stats.records[1].plan_count
    if not latest or not previous:
        return None
    return (latest - previous) / previous


def confidence_score(stats: GroupStatistics, score_gap: float, rank_gap: Optional[float]) -> int:
    """
    0..100 trust in a classification, independent of the probability.

    −40 for a single year, −20 for two; −30 for volatility above 10 points,
    −15 above 5; −10 when score and rank point in different directions;
    −10 when the plan count moved by more than 30% year over year.
    """
    confidence = 100
    if stats.years_available < 2:
        confidence -= 40
    elif stats.years_available < 3:
        confidence -= 20

    volatility = stats.score_volatility or 0.0
    if volatility > 10:
        confidence -= 30
    elif volatility > 5:
        confidence -= 15

    if rank_gap is not None:
        consistent = (score_gap > 0 and rank_gap > 0) or (score_gap < 0 and rank_gap < 0)
        if not consistent:
            confidence -= 10

    change = _plan_change_rate(stats)
    if change is not None and abs(change) > 0.3:
        confidence -= 10

    return max(0, min(100, confidence))


def categorize(probability: float, params: ClassifierParams) -> Category:
    # left-closed / right-open bands
    if probability < params.aggressive_below:
        return Category.AGGRESSIVE
    if probability < params.safe_from:
        return Category.BALANCED
    return Category.SAFE


def _exclusion(probability: float, category: Category, margin: int,
               params: ClassifierParams) -> Optional[ExclusionReason]:
    if margin <= params.exclude_margin_below:
        return ExclusionReason.TOO_FAR_BELOW_AVERAGE
    if margin >= params.exclude_margin_above and category == Category.SAFE:
        return ExclusionReason.TOO_CONSERVATIVE
    if probability < params.implausible_probability and margin <= params.implausible_margin:
        return ExclusionReason.STATISTICALLY_IMPLAUSIBLE
    return None


def classify(
        candidate_score: float,
        candidate_rank: Optional[int],
        stats: GroupStatistics,
        params: Optional[ClassifierParams] = None,
) -> ClassificationResult:
    params = params or ClassifierParams.from_settings()

    # 1) no history → neutral default, never an error
    if stats.years_available == 0 or stats.avg_min_score is None:
        return ClassificationResult(
            probability=params.insufficient_data_probability,
            category=Category.BALANCED,
            safety_margin=None,
            trend=Trend.UNKNOWN if stats.years_available == 0 else stats.trend,
            excluded=False,
            insufficient_data=True,
            confidence=0,
        )

    # 2) share of selected years whose cutoff the candidate clears
    cleared = sum(
        1 for r in stats.records
        if r.min_score is not None and candidate_score >= r.min_score
    )
    base_probability = cleared / stats.years_available

    # 3) rank factor
    rank_factor = 1.0
    gap: Optional[float] = None
    rank_gap: Optional[int] = None
    if candidate_rank is not None and stats.avg_min_rank is not None:
        gap = stats.avg_min_rank - candidate_rank  # > 0: candidate ranks better
        rank_factor = params.rank_boost if gap > 0 else params.rank_penalty
        rank_gap = _round_half_up(gap)

    # 4) clamp, rounded so float error cannot push a value below a band edge
    probability = max(0.0, min(1.0, round(base_probability * rank_factor, 9)))

    # 5) band, 6) margin
    category = categorize(probability, params)
    score_gap = candidate_score - stats.avg_min_score
    margin = _round_half_up(score_gap)

    # 7) exclusion flag only, probability / category stay as computed
    reason = _exclusion(probability, category, margin, params)

    return ClassificationResult(
        probability=probability,
        category=category,
        safety_margin=margin,
        trend=stats.trend,
        excluded=reason is not None,
        exclusion_reason=reason,
        rank_gap=rank_gap,
        confidence=confidence_score(stats, score_gap, gap),
    )


def classify_many(
        candidate_score: float,
        candidate_rank: Optional[int],
        stats_by_group: Mapping[str, GroupStatistics],
        params: Optional[ClassifierParams] = None,
) -> Dict[str, ClassificationResult]:
    params = params or ClassifierParams.from_settings()
    return {
        gid: classify(candidate_score, candidate_rank, stats, params)
        for gid, stats in stats_by_group.items()
    }


def describe_result(result: ClassificationResult, params: Optional[ClassifierParams] = None) -> List[str]:
    """Short human-readable reasons for a classification."""
    params = params or ClassifierParams.from_settings()
    if result.insufficient_data:
        return ["No linked admission history for this group, probability is a neutral default"]

    reasons: List[str] = []
    gap = result.safety_margin or 0
    if gap > 10:
        reasons.append(f"Score is {gap} points above the recent average cutoff")
    elif gap > 0:
        reasons.append(f"Score is slightly above the recent average cutoff (+{gap})")
    elif gap > -5:
        reasons.append(f"Score is close to the recent average cutoff ({gap:+d})")
    else:
        reasons.append(f"Score is {abs(gap)} points below the recent average cutoff")

    if result.rank_gap is not None and result.rank_gap > 500:
        reasons.append(f"Rank is about {result.rank_gap} places ahead of the historical lowest rank")
    elif result.rank_gap is not None and result.rank_gap < -500:
        reasons.append(f"Rank is about {abs(result.rank_gap)} places behind the historical lowest rank")

    pct = round(result.probability * 100)
    if result.category == Category.SAFE:
        reasons.append(f"High admission probability ({pct}%)")
    elif result.category == Category.BALANCED:
        reasons.append(f"Reasonable admission probability ({pct}%)")
    else:
        reasons.append(f"Low admission probability ({pct}%), a reach choice")

    if result.trend == Trend.RISING:
        reasons.append("Cutoffs have been rising")
    elif result.trend == Trend.FALLING:
        reasons.append("Cutoffs have been falling")

    if result.excluded and result.exclusion_reason is not None:
        reasons.append(f"Filtered: {result.exclusion_reason.value}")

    if result.confidence < params.low_confidence_below:
        reasons.append(f"Low confidence ({result.confidence}%): short or volatile history")
    return reasons
