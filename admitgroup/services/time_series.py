# admitgroup/services/time_series.py
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

import numpy as np

from admitgroup.config.config import settings
from admitgroup.config.logger import logger
from admitgroup.domain.models import GroupStatistics, ScoreRecord, Trend


def _trend(latest: Optional[int], earliest: Optional[int], tolerance: float) -> Trend:
    if latest is None or earliest is None:
        return Trend.STABLE
    diff = latest - earliest
    if diff > tolerance:
        return Trend.RISING
    if diff < -tolerance:
        return Trend.FALLING
    return Trend.STABLE


def _lower_cutoff(rec: ScoreRecord, cur: ScoreRecord) -> bool:
    if rec.min_score is None:
        return False
    return cur.min_score is None or rec.min_score < cur.min_score


def aggregate_history(
        group_id: Optional[str],
        linked_scores: Iterable[ScoreRecord],
        history_years: Optional[int] = None,
        trend_tolerance: Optional[float] = None,
) -> GroupStatistics:
    """
    Statistics over the K most recent linked years of one group.

    • one record per year (lowest min_score), K most recent years, year desc;
      string years are coerced, unparsable ones are skipped with a warning
    • averages only over non-null values; years without min_score still
      count towards years_available
    • trend: latest vs earliest selected year having a min_score
    • no linked years → years_available=0, averages None, trend unknown
    """
    k = settings.history_years if history_years is None else history_years
    tol = settings.trend_tolerance if trend_tolerance is None else trend_tolerance

    # one observation per year: the group line is its lowest cutoff
    per_year: dict[int, ScoreRecord] = {}
    for rec in linked_scores:
        try:
            year = int(rec.year)
        except (TypeError, ValueError):
            logger.warning("Score record id=%s skipped: year %r is not a number", rec.id, rec.year)
            continue
        if year != rec.year:
            rec = replace(rec, year=year)
        cur = per_year.get(year)
        if cur is None or _lower_cutoff(rec, cur):
            per_year[year] = rec
    selected = [per_year[y] for y in sorted(per_year, reverse=True)[:max(0, k)]]

    if not selected:
        return GroupStatistics(group_id=group_id, records=[], years_available=0, trend=Trend.UNKNOWN)

    scores = np.array([r.min_score for r in selected if r.min_score is not None], dtype=float)
    ranks = np.array([r.min_rank for r in selected if r.min_rank is not None], dtype=float)

    with_score = [r for r in selected if r.min_score is not None]
    latest = with_score[0].min_score if with_score else None
    earliest = with_score[-1].min_score if with_score else None

    return GroupStatistics(
        group_id=group_id,
        records=selected,
        years_available=len(selected),
        avg_min_score=float(scores.mean()) if scores.size else None,
        avg_min_rank=float(ranks.mean()) if ranks.size else None,
        trend=_trend(latest, earliest, tol),
        score_volatility=float(scores.std()) if scores.size else None,
        latest_year=selected[0].year,
        latest_min_score=latest,
    )
