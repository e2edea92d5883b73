# admitgroup/services/history_linker.py
from __future__ import annotations

import math
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from admitgroup.config.config import settings
from admitgroup.config.logger import logger
from admitgroup.domain.models import (
    AdmissionGroup, GroupIndex, LinkReport, MatchStrategy, ScoreRecord, UnresolvedReason, UnresolvedRecord,
)
from admitgroup.domain.normalization import make_group_key, normalize_group_code

# (linked record, None) | (None, unresolved)
Outcome = Tuple[Optional[ScoreRecord], Optional[UnresolvedRecord]]


@dataclass(frozen=True)
class LinkStrategy:
    name: MatchStrategy
    field: Callable[[ScoreRecord], Optional[str]]

    def resolve(self, index: GroupIndex, rec: ScoreRecord) -> Optional[str]:
        code = normalize_group_code(self.field(rec))
        if not code:
            return None
        group = index.get(make_group_key(rec.college_code, code, rec.province or "", rec.subject_track or ""))
        return group.id if group else None


def _primary_code(rec: ScoreRecord) -> Optional[str]:
    return rec.group_code_raw


def _alternate_label(rec: ScoreRecord) -> Optional[str]:
    return rec.alt_group_label


# Order matters: first success wins. There is no college-only fallback,
# it would merge cutoffs of different groups of one college.
STRATEGIES: Tuple[LinkStrategy, ...] = (
    LinkStrategy(MatchStrategy.PRIMARY_GROUP_CODE, _primary_code),
    LinkStrategy(MatchStrategy.ALTERNATE_GROUP_LABEL, _alternate_label),
)


def link_record(index: GroupIndex, rec: ScoreRecord) -> Outcome:
    """
    Resolve one score record. Never raises: a record that cannot be processed
    comes back unresolved with reason malformed-record.
    """
    try:
        year = int(rec.year)
        if not rec.college_code:
            return None, UnresolvedRecord(rec, UnresolvedReason.MISSING_COLLEGE_CODE)

        if not any(normalize_group_code(s.field(rec)) for s in STRATEGIES):
            return None, UnresolvedRecord(rec, UnresolvedReason.MISSING_GROUP_IDENTIFIER)

        for strategy in STRATEGIES:
            group_id = strategy.resolve(index, rec)
            if group_id is not None:
                return replace(rec, year=year, group_id=group_id, match_strategy=strategy.name), None

        return None, UnresolvedRecord(rec, UnresolvedReason.NO_MATCHING_GROUP)
    except (TypeError, ValueError) as e:
        return None, UnresolvedRecord(rec, UnresolvedReason.MALFORMED_RECORD, detail=str(e))


def _link_sequential(index: GroupIndex, records: List[ScoreRecord], progress_every: int = 0) -> List[Outcome]:
    out: List[Outcome] = []
    for i, rec in enumerate(records, start=1):
        out.append(link_record(index, rec))
        if progress_every and i % progress_every == 0:
            logger.debug("… linked %d / %d score records", i, len(records))
    return out


def _chunkify(seq: List[ScoreRecord], n_chunks: int) -> List[List[ScoreRecord]]:
    n = max(1, n_chunks)
    size = max(1, math.ceil(len(seq) / n))
    return [seq[i: i + size] for i in range(0, len(seq), size)]


def _worker_link_chunk(index: GroupIndex, chunk: List[ScoreRecord]) -> List[Outcome]:
    return _link_sequential(index, chunk)


def link_history(
        index: GroupIndex | Iterable[AdmissionGroup],
        score_records: Iterable[ScoreRecord],
        parallelism: int = 1,
        progress_every: Optional[int] = None,
        sample_limit: Optional[int] = None,
) -> LinkReport:
    """
    Link every score record to a group of the (frozen) index; a plain
    collection of groups is indexed and frozen first.

    Each record ends either linked (group_id + match_strategy set) or
    unresolved with a reason; linked + unresolved == input size.

    parallelism > 1 shards the records over a process pool; the index is
    read-only, so shards share nothing mutable. Output order equals input order.
    """
    if not isinstance(index, GroupIndex):
        index = GroupIndex(index).freeze()
    if not index.frozen:
        raise RuntimeError("GroupIndex must be frozen before linking")

    records = list(score_records)
    every = settings.progress_every if progress_every is None else progress_every
    limit = settings.unresolved_sample_limit if sample_limit is None else sample_limit
    started = time.perf_counter()

    n = max(1, int(parallelism))
    if n == 1 or len(records) <= 1:
        outcomes = _link_sequential(index, records, every)
    else:
        chunks = _chunkify(records, n)
        logger.info("Parallel linking: %d processes, %d score records", len(chunks), len(records))
        by_chunk: Dict[int, List[Outcome]] = {}
        with ProcessPoolExecutor(max_workers=len(chunks)) as pool:
            futures = {pool.submit(_worker_link_chunk, index, chunk): i for i, chunk in enumerate(chunks)}
            for fut in as_completed(futures):
                by_chunk[futures[fut]] = fut.result()
        outcomes = [o for i in range(len(chunks)) for o in by_chunk[i]]

    linked: List[ScoreRecord] = []
    unresolved: List[UnresolvedRecord] = []
    by_strategy: Dict[MatchStrategy, int] = {s.name: 0 for s in STRATEGIES}
    for rec, miss in outcomes:
        if rec is not None:
            linked.append(rec)
            by_strategy[rec.match_strategy] += 1
        else:
            unresolved.append(miss)

    report = LinkReport(linked=linked, unresolved=unresolved, by_strategy=by_strategy)
    elapsed = time.perf_counter() - started
    logger.info(
        "History linking done in %.2f s: %d linked (%.1f%%), %d unresolved; by strategy: %s",
        elapsed, len(linked), report.coverage * 100, len(unresolved),
        ", ".join(f"{k.value}={v}" for k, v in by_strategy.items()),
    )
    for miss in unresolved[:limit]:
        r = miss.record
        logger.warning(
            "  unresolved [%s] %s (%s) group_code=%r alt_label=%r year=%r",
            miss.reason.value, r.college_name, r.college_code, r.group_code_raw, r.alt_group_label, r.year,
        )
    return report
