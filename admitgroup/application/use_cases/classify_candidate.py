from __future__ import annotations

from typing import Dict, Iterable, Optional

from admitgroup.config.logger import logger
from admitgroup.domain.models import ClassificationResult
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository
from admitgroup.services.probability import ClassifierParams, classify, classify_many
from admitgroup.services.time_series import aggregate_history


class ClassifyCandidateUseCase:
    """
    Candidate score / rank against a stored group's history.

    Unknown group id → None. A group without linked history is not an error:
    the classifier returns its insufficient-data default.
    """

    def __init__(self, repo: AdmissionRepository, params: Optional[ClassifierParams] = None,
                 history_years: Optional[int] = None):
        self._repo = repo
        self._params = params or ClassifierParams.from_settings()
        self._history_years = history_years

    def execute(self, candidate_score: float, candidate_rank: Optional[int],
                group_id: str) -> ClassificationResult | None:
        if self._repo.get_group_by_id(group_id) is None:
            logger.debug("classify: group %s not found", group_id)
            return None
        scores = self._repo.get_score_records_by_group(group_id)
        stats = aggregate_history(group_id, scores, history_years=self._history_years)
        return classify(candidate_score, candidate_rank, stats, self._params)

    def execute_many(self, candidate_score: float, candidate_rank: Optional[int],
                     group_ids: Iterable[str]) -> Dict[str, ClassificationResult]:
        """
        {group_id: result} for every existing group; unknown ids are left out.
        """
        known = [gid for gid in dict.fromkeys(group_ids) if self._repo.get_group_by_id(gid) is not None]
        history = self._repo.get_score_records_by_groups(known)
        stats = {
            gid: aggregate_history(gid, history[gid], history_years=self._history_years)
            for gid in known
        }
        return classify_many(candidate_score, candidate_rank, stats, self._params)
