from __future__ import annotations

from typing import Optional

from admitgroup.domain.models import AdmissionGroup, GroupDetail
from admitgroup.domain.normalization import normalize_group_code
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository
from admitgroup.services.time_series import aggregate_history


class GetGroupDetailUseCase:
    """
    Read-only composite view of one group: the group, its quota records,
    its linked score history (year desc) and the statistics over it.
    None when the group does not exist.
    """

    def __init__(self, repo: AdmissionRepository, history_years: Optional[int] = None):
        self._repo = repo
        self._history_years = history_years

    def execute(self, college_code: str, group_code: str, province: str,
                subject_track: str) -> GroupDetail | None:
        group = self._repo.find_group(college_code, normalize_group_code(group_code), province, subject_track)
        if group is None:
            return None
        return self._detail(group)

    def execute_by_id(self, group_id: str) -> GroupDetail | None:
        group = self._repo.get_group_by_id(group_id)
        if group is None:
            return None
        return self._detail(group)

    def _detail(self, group: AdmissionGroup) -> GroupDetail:
        quotas = self._repo.get_quota_records_by_group(group.id)
        scores = self._repo.get_score_records_by_group(group.id)
        stats = aggregate_history(group.id, scores, history_years=self._history_years)

        # plan totals refer to the latest cycle the group has quotas for
        latest = max((q.year for q in quotas), default=None)
        current = [q for q in quotas if q.year == latest]
        return GroupDetail(
            group=group,
            quota_records=quotas,
            score_records=scores,
            statistics=stats,
            total_plan_count=sum(q.plan_count or 0 for q in current),
            major_count=len({q.major_code or q.major_name for q in current}),
        )
