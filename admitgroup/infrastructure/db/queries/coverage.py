# admitgroup/infrastructure/db/queries/coverage.py

from typing import Dict, List, Tuple

from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from admitgroup.infrastructure.db.models import (
    AdmissionGroupModel,
    QuotaRecordModel,
    ScoreRecordModel,
)


def total_groups(session: Session) -> int:
    return session.query(func.count()).select_from(AdmissionGroupModel).scalar() or 0


def quota_link_counts(session: Session, year: int | None = None) -> Tuple[int, int]:
    """
    (total, linked) quota records, optionally for one year.
    """
    q = session.query(
        func.count(QuotaRecordModel.id),
        func.count(QuotaRecordModel.group_id),
    )
    if year is not None:
        q = q.filter(QuotaRecordModel.year == year)
    total, linked = q.one()
    return total or 0, linked or 0


def score_link_counts(session: Session) -> Tuple[int, int]:
    """
    (total, linked) historical score records.
    """
    total, linked = session.query(
        func.count(ScoreRecordModel.id),
        func.count(ScoreRecordModel.group_id),
    ).one()
    return total or 0, linked or 0


def score_coverage_by_year(session: Session) -> List[Tuple[int, int, int]]:
    """
    [(year, total, linked), ...] sorted by year desc.
    """
    q = (
        session.query(
            ScoreRecordModel.year,
            func.count(ScoreRecordModel.id),
            func.count(ScoreRecordModel.group_id),
        )
        .group_by(ScoreRecordModel.year)
        .order_by(desc(ScoreRecordModel.year))
    )
    return [(int(y), int(t), int(l)) for y, t, l in q.all()]


def unresolved_reason_counts(session: Session) -> Dict[str, int]:
    """
    {reason: count} over score records the linker left unresolved.
    """
    q = (
        session.query(ScoreRecordModel.unresolved_reason, func.count().label("cnt"))
        .filter(ScoreRecordModel.unresolved_reason.isnot(None))
        .group_by(ScoreRecordModel.unresolved_reason)
        .order_by(desc("cnt"))
    )
    return {reason: cnt for reason, cnt in q.all()}


def match_strategy_counts(session: Session) -> Dict[str, int]:
    q = (
        session.query(ScoreRecordModel.match_strategy, func.count().label("cnt"))
        .filter(ScoreRecordModel.match_strategy.isnot(None))
        .group_by(ScoreRecordModel.match_strategy)
    )
    return {strategy: cnt for strategy, cnt in q.all()}
