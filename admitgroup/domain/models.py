from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"
    UNKNOWN = "unknown"


class Category(str, Enum):
    """Probability band: how a candidate should prioritise a group."""
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    SAFE = "safe"


class MatchStrategy(str, Enum):
    PRIMARY_GROUP_CODE = "primary-group-code"
    ALTERNATE_GROUP_LABEL = "alternate-group-label"


class InvalidReason(str, Enum):
    MISSING_COLLEGE_CODE = "missing-college-code"
    MISSING_PROVINCE = "missing-province"


class UnresolvedReason(str, Enum):
    MISSING_COLLEGE_CODE = "missing-college-code"
    MISSING_GROUP_IDENTIFIER = "missing-group-identifier"
    NO_MATCHING_GROUP = "no-matching-group"
    MALFORMED_RECORD = "malformed-record"


class ExclusionReason(str, Enum):
    TOO_FAR_BELOW_AVERAGE = "too-far-below-average"
    TOO_CONSERVATIVE = "too-conservative"
    STATISTICALLY_IMPLAUSIBLE = "statistically-implausible"


class GroupKey(NamedTuple):
    """
    Natural key of an admission group.
    group_code is always the normalized form.
    """
    college_code: str
    group_code: str
    province: str
    subject_track: str


@dataclass(frozen=True)
class QuotaRecord:
    """
    One major's admission quota in the current cycle.
    Many quota records share one group (same college + normalized group code
    + province + subject track).
    """
    year: int
    province: Optional[str]
    subject_track: Optional[str]
    college_code: Optional[str]
    college_name: Optional[str]
    group_code_raw: Optional[str]
    major_code: Optional[str]
    major_name: Optional[str]
    plan_count: int = 0
    group_name: Optional[str] = None
    tuition: Optional[int] = None
    id: Optional[int] = None  # storage PK, None until persisted
    group_id: Optional[str] = None  # FK → AdmissionGroup.id


@dataclass(frozen=True)
class ScoreRecord:
    """
    A prior-year cutoff observation.
    group_code_raw and alt_group_label are filled by different importers and
    are frequently empty, differently punctuated, or both.
    """
    year: int
    province: Optional[str]
    subject_track: Optional[str]
    college_code: Optional[str] = None
    group_code_raw: Optional[str] = None
    alt_group_label: Optional[str] = None
    min_score: Optional[int] = None
    min_rank: Optional[int] = None
    avg_score: Optional[int] = None
    max_score: Optional[int] = None
    max_rank: Optional[int] = None
    plan_count: Optional[int] = None
    college_name: Optional[str] = None
    major_name: Optional[str] = None
    id: Optional[int] = None
    group_id: Optional[str] = None
    match_strategy: Optional[MatchStrategy] = None


@dataclass(frozen=True)
class AdmissionGroup:
    id: str
    college_code: str
    college_name: Optional[str]
    normalized_group_code: str
    raw_group_code: Optional[str]
    province: str
    subject_track: str
    group_name: Optional[str] = None

    @property
    def key(self) -> GroupKey:
        return GroupKey(self.college_code, self.normalized_group_code, self.province, self.subject_track)


class GroupIndex:
    """
    Read-only lookup {GroupKey: AdmissionGroup}.
    Built once by the registry, frozen before linking starts.
    """

    def __init__(self, groups: Iterable[AdmissionGroup] = ()):
        self._by_key: Dict[GroupKey, AdmissionGroup] = {}
        self._by_id: Dict[str, AdmissionGroup] = {}
        self._frozen = False
        for g in groups:
            self.add(g)

    def add(self, group: AdmissionGroup) -> AdmissionGroup:
        """
        Register a group, first one per key wins.
        Returns the group stored under the key.
        """
        if self._frozen:
            raise RuntimeError("GroupIndex is frozen")
        existing = self._by_key.get(group.key)
        if existing is not None:
            return existing
        self._by_key[group.key] = group
        self._by_id[group.id] = group
        return group

    def freeze(self) -> "GroupIndex":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, key: GroupKey) -> Optional[AdmissionGroup]:
        return self._by_key.get(key)

    def get_by_id(self, group_id: str) -> Optional[AdmissionGroup]:
        return self._by_id.get(group_id)

    def groups(self) -> List[AdmissionGroup]:
        return list(self._by_key.values())

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)


@dataclass(frozen=True)
class InvalidRecord:
    record: QuotaRecord
    reason: InvalidReason


@dataclass(frozen=True)
class UnresolvedRecord:
    record: ScoreRecord
    reason: UnresolvedReason
    detail: str = ""


@dataclass(frozen=True)
class GroupStatistics:
    """
    Summary of up to K most recent linked years of one group.
    yearsAvailable == 0 is a valid state: all averages are None.
    """
    group_id: Optional[str]
    records: List[ScoreRecord]  # year desc
    years_available: int
    avg_min_score: Optional[float] = None
    avg_min_rank: Optional[float] = None
    trend: Trend = Trend.UNKNOWN
    score_volatility: Optional[float] = None
    latest_year: Optional[int] = None
    latest_min_score: Optional[int] = None


@dataclass(frozen=True)
class ClassificationResult:
    probability: float  # 0..1
    category: Category
    safety_margin: Optional[int]  # candidate score − avgMinScore
    trend: Trend
    excluded: bool = False
    exclusion_reason: Optional[ExclusionReason] = None
    rank_gap: Optional[int] = None  # avgMinRank − candidate rank, > 0 is better
    insufficient_data: bool = False
    confidence: int = 100  # 0..100, how far the history can be trusted


# ────────── batch outcomes ─────────────────────────────────────────────
@dataclass
class GroupResolution:
    """Output of the registry builder for one quota cycle."""
    groups: List[AdmissionGroup]
    rejected: List[InvalidRecord]
    index: GroupIndex  # frozen
    quotas_by_group: Dict[str, List[QuotaRecord]] = field(default_factory=dict)
    created: int = 0
    reused: int = 0

    @property
    def quota_group_ids(self) -> Dict[int, str]:
        """{quota record id: group id} for persisted quota records."""
        return {
            q.id: gid
            for gid, quotas in self.quotas_by_group.items()
            for q in quotas
            if q.id is not None
        }


@dataclass
class LinkReport:
    linked: List[ScoreRecord]
    unresolved: List[UnresolvedRecord]
    by_strategy: Dict[MatchStrategy, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.linked) + len(self.unresolved)

    @property
    def coverage(self) -> float:
        return len(self.linked) / self.total if self.total else 0.0


@dataclass
class BatchReport:
    """
    Counts of one build run. Persistence is per record, not all-or-nothing.
    """
    created: int = 0
    reused: int = 0
    updated: int = 0
    failed: int = 0
    unresolved: int = 0
    rejected: int = 0
    linked: int = 0
    by_strategy: Dict[str, int] = field(default_factory=dict)

    @property
    def coverage(self) -> float:
        total = self.linked + self.unresolved
        return self.linked / total if total else 0.0


@dataclass(frozen=True)
class GroupDetail:
    group: AdmissionGroup
    quota_records: List[QuotaRecord]
    score_records: List[ScoreRecord]  # year desc
    statistics: GroupStatistics
    total_plan_count: int = 0
    major_count: int = 0


@dataclass(frozen=True)
class CollegeGroupSummary:
    group: AdmissionGroup
    major_count: int
    total_plan_count: int
    years_available: int
    avg_min_score: Optional[float]
    avg_min_rank: Optional[float]
