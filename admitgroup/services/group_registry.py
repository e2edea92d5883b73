# admitgroup/services/group_registry.py
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from admitgroup.config.logger import logger
from admitgroup.domain.models import (
    AdmissionGroup, GroupIndex, GroupResolution, InvalidReason, InvalidRecord, QuotaRecord,
)
from admitgroup.domain.normalization import make_group_key


def _new_group_id() -> str:
    return str(uuid.uuid4())


def _invalid_reason(rec: QuotaRecord) -> Optional[InvalidReason]:
    if not rec.college_code:
        return InvalidReason.MISSING_COLLEGE_CODE
    if not rec.province:
        return InvalidReason.MISSING_PROVINCE
    return None


def resolve_groups(
        quota_records: Iterable[QuotaRecord],
        existing_groups: Iterable[AdmissionGroup] = (),
        id_factory: Callable[[], str] = _new_group_id,
) -> GroupResolution:
    """
    Build canonical AdmissionGroups from the quota records of one cycle.

    • key = (college_code, normalize(group_code_raw), province, subject_track)
    • one group per key; college_name / raw code / group_name come from the
      first quota record seen in the bucket
    • an existing group with the same key is reused with its id, so reruns
      never duplicate groups and previously linked rows keep their FK
    • records without college_code or province are rejected, never coerced

    Returns the groups of this cycle, the rejected records, a frozen index and
    {group_id: [QuotaRecord]} with group_id filled in on every record.
    """
    index = GroupIndex(existing_groups)
    preexisting = {g.id for g in index.groups()}

    rejected: List[InvalidRecord] = []
    quotas_by_group: Dict[str, List[QuotaRecord]] = {}
    cycle_groups: Dict[str, AdmissionGroup] = {}
    created = 0

    for rec in quota_records:
        reason = _invalid_reason(rec)
        if reason is not None:
            rejected.append(InvalidRecord(record=rec, reason=reason))
            continue

        key = make_group_key(rec.college_code, rec.group_code_raw, rec.province, rec.subject_track or "")
        group = index.get(key)
        if group is None:
            group = index.add(AdmissionGroup(
                id=id_factory(),
                college_code=key.college_code,
                college_name=rec.college_name,
                normalized_group_code=key.group_code,
                raw_group_code=rec.group_code_raw,
                province=key.province,
                subject_track=key.subject_track,
                group_name=rec.group_name,
            ))
            created += 1

        cycle_groups.setdefault(group.id, group)
        quotas_by_group.setdefault(group.id, []).append(_with_group(rec, group.id))

    reused = sum(1 for gid in cycle_groups if gid in preexisting)
    logger.info(
        "Group registry: %d groups in cycle (created %d, reused %d), %d quota records rejected",
        len(cycle_groups), created, reused, len(rejected),
    )
    if rejected:
        logger.debug("Rejected quota sample: %s", rejected[0])

    return GroupResolution(
        groups=list(cycle_groups.values()),
        rejected=rejected,
        index=index.freeze(),
        quotas_by_group=quotas_by_group,
        created=created,
        reused=reused,
    )


def _with_group(rec: QuotaRecord, group_id: str) -> QuotaRecord:
    if rec.group_id == group_id:
        return rec
    # frozen dataclass → copy with FK
    return replace(rec, group_id=group_id)
