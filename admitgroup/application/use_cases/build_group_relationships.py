from __future__ import annotations

from dataclasses import replace
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from admitgroup.config.config import settings
from admitgroup.config.logger import logger
from admitgroup.domain.models import BatchReport, GroupIndex, GroupResolution
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository
from admitgroup.services.group_registry import resolve_groups
from admitgroup.services.history_linker import link_history


class BuildGroupRelationshipsUseCase:
    """
    Full group build for one quota cycle:
        1. resolve canonical groups from the cycle's quota records
        2. upsert groups by natural key (reruns reuse ids)
        3. back-fill group_id on quota records
        4. link every historical score record and write group_id / reason

    Per-record write failures are counted, not raised.
    One commit at the end of the run; a transaction-level error rolls back.
    """

    def __init__(self, repo: AdmissionRepository, year: Optional[int] = None,
                 parallelism: Optional[int] = None):
        self._repo = repo
        self._year = settings.current_year if year is None else year
        self._parallelism = settings.linker_parallelism if parallelism is None else parallelism

    def execute(self) -> BatchReport:
        logger.info("=== Building admission groups for %d ===", self._year)
        report = BatchReport()
        try:
            # 1) registry
            quotas = self._repo.get_quota_records(self._year)
            existing = self._repo.get_all_groups()
            logger.info("Input: %d quota records, %d existing groups", len(quotas), len(existing))
            resolution = resolve_groups(quotas, existing_groups=existing)
            report.rejected = len(resolution.rejected)

            # 2) persist groups, adopt ids of rows another run created first
            persisted = self._repo.upsert_groups(resolution.groups)
            id_map = {
                g.id: persisted[g.key]
                for g in resolution.groups
                if g.key in persisted and persisted[g.key] != g.id
            }
            if id_map:
                logger.warning("%d groups already created concurrently, adopting their ids", len(id_map))
            report.reused = resolution.reused + len(id_map)
            report.created = resolution.created - len(id_map)
            index = self._remapped_index(resolution, id_map) if id_map else resolution.index
            logger.info("Groups: created %d, reused %d", report.created, report.reused)

            # 3) quota → group
            quota_links: Dict[int, str] = {
                qid: id_map.get(gid, gid) for qid, gid in resolution.quota_group_ids.items()
            }
            upd, failed = self._repo.set_quota_group_ids(quota_links)
            report.updated += upd
            report.failed += failed
            logger.info("Quota records linked: %d (failed %d)", upd, failed)

            # 4) history → group
            scores = self._repo.get_all_score_records()
            logger.info("Linking %d historical score records…", len(scores))
            link = link_history(index, scores, parallelism=self._parallelism)
            upd, failed = self._repo.set_score_links(link.linked, link.unresolved)
            report.updated += upd
            report.failed += failed
            report.linked = len(link.linked)
            report.unresolved = len(link.unresolved)
            report.by_strategy = {k.value: v for k, v in link.by_strategy.items()}

            self._repo.commit()
        except SQLAlchemyError as db_err:
            logger.exception("Transaction error, rolling back: %s", db_err)
            self._repo.rollback()
            raise

        logger.info(
            "✅ Done: created=%d reused=%d updated=%d failed=%d unresolved=%d rejected=%d (coverage %.1f%%)",
            report.created, report.reused, report.updated, report.failed,
            report.unresolved, report.rejected, report.coverage * 100,
        )
        return report

    @staticmethod
    def _remapped_index(resolution: GroupResolution, id_map: Dict[str, str]) -> GroupIndex:
        return GroupIndex(
            replace(g, id=id_map[g.id]) if g.id in id_map else g
            for g in resolution.index.groups()
        ).freeze()
