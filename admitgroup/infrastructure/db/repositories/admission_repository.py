# repositories/admission_repository.py
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admitgroup.config.logger import logger
from admitgroup.domain.models import (
    AdmissionGroup, GroupKey, MatchStrategy, QuotaRecord, ScoreRecord, UnresolvedRecord,
)
from admitgroup.infrastructure.db.models import AdmissionGroupModel, QuotaRecordModel, ScoreRecordModel


class AdmissionRepository:
    def __init__(self, session: Session):
        self._session = session

    # ——— MAPPERS ——————————————————————————————————————————————
    @staticmethod
    def _to_group_model(g: AdmissionGroup) -> AdmissionGroupModel:
        return AdmissionGroupModel(
            id=g.id,
            college_code=g.college_code,
            college_name=g.college_name,
            group_code=g.normalized_group_code,
            group_code_raw=g.raw_group_code,
            group_name=g.group_name,
            province=g.province,
            subject_track=g.subject_track,
        )

    @staticmethod
    def _to_group_domain(m: AdmissionGroupModel) -> AdmissionGroup:
        return AdmissionGroup(
            id=m.id,
            college_code=m.college_code,
            college_name=m.college_name,
            normalized_group_code=m.group_code,
            raw_group_code=m.group_code_raw,
            province=m.province,
            subject_track=m.subject_track,
            group_name=m.group_name,
        )

    @staticmethod
    def _to_quota_model(q: QuotaRecord) -> QuotaRecordModel:
        return QuotaRecordModel(
            id=q.id,
            year=q.year,
            province=q.province,
            subject_track=q.subject_track,
            college_code=q.college_code,
            college_name=q.college_name,
            group_code_raw=q.group_code_raw,
            group_name=q.group_name,
            major_code=q.major_code,
            major_name=q.major_name,
            plan_count=q.plan_count or 0,
            tuition=q.tuition,
            group_id=q.group_id,
        )

    @staticmethod
    def _to_quota_domain(m: QuotaRecordModel) -> QuotaRecord:
        return QuotaRecord(
            year=m.year,
            province=m.province,
            subject_track=m.subject_track,
            college_code=m.college_code,
            college_name=m.college_name,
            group_code_raw=m.group_code_raw,
            major_code=m.major_code,
            major_name=m.major_name,
            plan_count=m.plan_count or 0,
            group_name=m.group_name,
            tuition=m.tuition,
            id=m.id,
            group_id=m.group_id,
        )

    @staticmethod
    def _to_score_model(s: ScoreRecord) -> ScoreRecordModel:
        return ScoreRecordModel(
            id=s.id,
            year=s.year,
            province=s.province,
            subject_track=s.subject_track,
            college_code=s.college_code,
            college_name=s.college_name,
            major_name=s.major_name,
            group_code_raw=s.group_code_raw,
            alt_group_label=s.alt_group_label,
            min_score=s.min_score,
            min_rank=s.min_rank,
            avg_score=s.avg_score,
            max_score=s.max_score,
            max_rank=s.max_rank,
            plan_count=s.plan_count,
            group_id=s.group_id,
            match_strategy=s.match_strategy.value if s.match_strategy else None,
        )

    @staticmethod
    def _to_score_domain(m: ScoreRecordModel) -> ScoreRecord:
        return ScoreRecord(
            year=m.year,
            province=m.province,
            subject_track=m.subject_track,
            college_code=m.college_code,
            group_code_raw=m.group_code_raw,
            alt_group_label=m.alt_group_label,
            min_score=m.min_score,
            min_rank=m.min_rank,
            avg_score=m.avg_score,
            max_score=m.max_score,
            max_rank=m.max_rank,
            plan_count=m.plan_count,
            college_name=m.college_name,
            major_name=m.major_name,
            id=m.id,
            group_id=m.group_id,
            match_strategy=MatchStrategy(m.match_strategy) if m.match_strategy else None,
        )

    def _insert(self, model):
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    # ——— IMPORT ——————————————————————————————————————————————
    def add_quota_records_bulk(self, records: Iterable[QuotaRecord]) -> int:
        objs = [self._to_quota_model(r) for r in records]
        self._session.add_all(objs)
        self._session.flush()
        return len(objs)

    def add_score_records_bulk(self, records: Iterable[ScoreRecord]) -> int:
        objs = [self._to_score_model(r) for r in records]
        self._session.add_all(objs)
        self._session.flush()
        return len(objs)

    # ——— READ ——————————————————————————————————————————————
    def get_quota_records(self, year: int) -> List[QuotaRecord]:
        rows = (
            self._session.query(QuotaRecordModel)
            .filter_by(year=year)
            .order_by(QuotaRecordModel.id.asc())
            .all()
        )
        return [self._to_quota_domain(m) for m in rows]

    def get_all_score_records(self) -> List[ScoreRecord]:
        rows = self._session.query(ScoreRecordModel).order_by(ScoreRecordModel.id.asc()).all()
        return [self._to_score_domain(m) for m in rows]

    def get_all_groups(self) -> List[AdmissionGroup]:
        rows = self._session.query(AdmissionGroupModel).all()
        return [self._to_group_domain(m) for m in rows]

    def find_group(self, college_code: str, group_code: str, province: str,
                   subject_track: str) -> Optional[AdmissionGroup]:
        """group_code must already be normalized."""
        m = (
            self._session.query(AdmissionGroupModel)
            .filter_by(college_code=college_code, group_code=group_code,
                       province=province, subject_track=subject_track)
            .one_or_none()
        )
        return self._to_group_domain(m) if m else None

    def get_group_by_id(self, group_id: str) -> Optional[AdmissionGroup]:
        m = self._session.get(AdmissionGroupModel, group_id)
        return self._to_group_domain(m) if m else None

    def get_groups_by_college(self, college_code: str, province: str, subject_track: str) -> List[AdmissionGroup]:
        rows = (
            self._session.query(AdmissionGroupModel)
            .filter_by(college_code=college_code, province=province, subject_track=subject_track)
            .order_by(AdmissionGroupModel.group_code.asc())
            .all()
        )
        return [self._to_group_domain(m) for m in rows]

    def get_quota_records_by_group(self, group_id: str, year: Optional[int] = None) -> List[QuotaRecord]:
        q = self._session.query(QuotaRecordModel).filter_by(group_id=group_id)
        if year is not None:
            q = q.filter_by(year=year)
        rows = q.order_by(QuotaRecordModel.year.desc(), QuotaRecordModel.id.asc()).all()
        return [self._to_quota_domain(m) for m in rows]

    def get_score_records_by_group(self, group_id: str) -> List[ScoreRecord]:
        rows = (
            self._session.query(ScoreRecordModel)
            .filter_by(group_id=group_id)
            .order_by(ScoreRecordModel.year.desc(), ScoreRecordModel.id.asc())
            .all()
        )
        return [self._to_score_domain(m) for m in rows]

    def get_score_records_by_groups(self, group_ids: Sequence[str]) -> Dict[str, List[ScoreRecord]]:
        """
        {group_id: [ScoreRecord]} only for the requested groups (empty list if none).
        """
        out: Dict[str, List[ScoreRecord]] = {gid: [] for gid in group_ids}
        if not group_ids:
            return out
        rows = (
            self._session.query(ScoreRecordModel)
            .filter(ScoreRecordModel.group_id.in_(list(group_ids)))
            .order_by(ScoreRecordModel.year.desc())
            .all()
        )
        for m in rows:
            out[m.group_id].append(self._to_score_domain(m))
        return out

    def get_score_records_df(self) -> "pd.DataFrame":
        """
        DataFrame:
            id | year | college_code | group_id | match_strategy | unresolved_reason
        Used by the coverage report.
        """
        rows = self._session.execute(
            select(
                ScoreRecordModel.id,
                ScoreRecordModel.year,
                ScoreRecordModel.college_code,
                ScoreRecordModel.group_id,
                ScoreRecordModel.match_strategy,
                ScoreRecordModel.unresolved_reason,
            )
        ).all()
        return pd.DataFrame(
            rows, columns=["id", "year", "college_code", "group_id", "match_strategy", "unresolved_reason"]
        )

    # ——— GROUP UPSERT ——————————————————————————————————————————————
    def upsert_groups(self, groups: Iterable[AdmissionGroup]) -> Dict[GroupKey, str]:
        """
        INSERT … ON CONFLICT DO NOTHING, then read back the ids.
        Returns {GroupKey: persisted id}; if a concurrent run created the same
        key first, its id is returned and wins.
        """
        items = list(groups)
        if not items:
            return {}

        rows = [
            {col.name: getattr(self._to_group_model(g), col.name) for col in AdmissionGroupModel.__table__.columns}
            for g in items
        ]
        # no conflict target: an already stored id or key is skipped either way
        stmt = self._insert(AdmissionGroupModel).values(rows).on_conflict_do_nothing()
        self._session.execute(stmt)

        colleges = {g.college_code for g in items}
        persisted = (
            self._session.query(AdmissionGroupModel)
            .filter(AdmissionGroupModel.college_code.in_(list(colleges)))
            .all()
        )
        wanted = {g.key for g in items}
        out: Dict[GroupKey, str] = {}
        for m in persisted:
            key = GroupKey(m.college_code, m.group_code, m.province, m.subject_track)
            if key in wanted:
                out[key] = m.id
        return out

    # ——— FK UPDATES ——————————————————————————————————————————————
    def _bulk_update(self, model, rows: List[dict]) -> Tuple[int, int]:
        """
        UPDATE by primary key for all rows in one SAVEPOINT; if that fails,
        retry row by row so one bad row only costs itself.
        Returns (updated, failed).
        """
        if not rows:
            return 0, 0
        try:
            with self._session.begin_nested():
                self._session.execute(update(model), rows)
            return len(rows), 0
        except SQLAlchemyError as e:
            logger.warning("Bulk update of %s failed (%s), retrying row by row", model.__tablename__, e)

        updated, failed = 0, 0
        for row in rows:
            try:
                with self._session.begin_nested():
                    self._session.execute(update(model), [row])
                updated += 1
            except SQLAlchemyError as e:
                failed += 1
                logger.warning("✕ %s id=%s not updated: %s", model.__tablename__, row.get("id"), e)
        return updated, failed

    def set_quota_group_ids(self, group_ids: Dict[int, str]) -> Tuple[int, int]:
        rows = [{"id": qid, "group_id": gid} for qid, gid in group_ids.items()]
        return self._bulk_update(QuotaRecordModel, rows)

    def set_score_links(self, linked: Iterable[ScoreRecord],
                        unresolved: Iterable[UnresolvedRecord]) -> Tuple[int, int]:
        """
        Linked rows get group_id + match_strategy; unresolved rows get their
        reason and a cleared group_id, so reruns converge.
        """
        rows: List[dict] = []
        for s in linked:
            if s.id is None:
                continue
            rows.append({
                "id": s.id,
                "group_id": s.group_id,
                "match_strategy": s.match_strategy.value if s.match_strategy else None,
                "unresolved_reason": None,
            })
        for u in unresolved:
            if u.record.id is None:
                continue
            rows.append({
                "id": u.record.id,
                "group_id": None,
                "match_strategy": None,
                "unresolved_reason": u.reason.value,
            })
        return self._bulk_update(ScoreRecordModel, rows)

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
