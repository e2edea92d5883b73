from __future__ import annotations

from typing import List, Optional

from admitgroup.config.config import settings
from admitgroup.domain.models import CollegeGroupSummary
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository
from admitgroup.services.time_series import aggregate_history


class ListCollegeGroupsUseCase:
    """
    All groups of one college for a province / subject track, each with its
    quota totals for the cycle and a short history summary.
    """

    def __init__(self, repo: AdmissionRepository, year: Optional[int] = None):
        self._repo = repo
        self._year = settings.current_year if year is None else year

    def execute(self, college_code: str, province: str, subject_track: str) -> List[CollegeGroupSummary]:
        groups = self._repo.get_groups_by_college(college_code, province, subject_track)
        history = self._repo.get_score_records_by_groups([g.id for g in groups])

        out: List[CollegeGroupSummary] = []
        for g in groups:
            quotas = self._repo.get_quota_records_by_group(g.id, year=self._year)
            stats = aggregate_history(g.id, history[g.id])
            out.append(CollegeGroupSummary(
                group=g,
                major_count=len(quotas),
                total_plan_count=sum(q.plan_count or 0 for q in quotas),
                years_available=stats.years_available,
                avg_min_score=stats.avg_min_score,
                avg_min_rank=stats.avg_min_rank,
            ))
        return out
