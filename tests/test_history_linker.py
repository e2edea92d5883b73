import pytest

from admitgroup.domain.models import GroupIndex, MatchStrategy, UnresolvedReason
from admitgroup.services.group_registry import resolve_groups
from admitgroup.services.history_linker import link_history, link_record

from conftest import make_quota, make_score


@pytest.fixture
def index():
    quotas = [
        make_quota(college_code="C1", group_code="(01)", province="JS"),
        make_quota(college_code="C1", group_code="(02)", province="JS"),
    ]
    return resolve_groups(quotas, id_factory=iter(["g01", "g02"]).__next__).index


def test_plain_code_links_to_parenthesized_group(index):
    rec, miss = link_record(index, make_score(2024, 600, college_code="C1", group_code="01", province="JS"))
    assert miss is None
    assert rec.group_id == "g01"
    assert rec.match_strategy == MatchStrategy.PRIMARY_GROUP_CODE


def test_alternate_label_used_when_group_code_empty(index):
    rec, miss = link_record(
        index, make_score(2024, 600, college_code="C1", group_code="", alt_label="(02)", province="JS")
    )
    assert miss is None
    assert rec.group_id == "g02"
    assert rec.match_strategy == MatchStrategy.ALTERNATE_GROUP_LABEL


def test_alternate_label_used_when_primary_code_finds_nothing(index):
    rec, _ = link_record(
        index, make_score(2024, 600, college_code="C1", group_code="99", alt_label="（01）", province="JS")
    )
    assert rec.group_id == "g01"
    assert rec.match_strategy == MatchStrategy.ALTERNATE_GROUP_LABEL


def test_primary_code_wins_over_alternate_label(index):
    rec, _ = link_record(
        index, make_score(2024, 600, college_code="C1", group_code="(01)", alt_label="02", province="JS")
    )
    assert rec.group_id == "g01"


def test_both_identifiers_empty_is_unresolved(index):
    rec, miss = link_record(index, make_score(2024, 600, college_code="C1", group_code="", province="JS"))
    assert rec is None
    assert miss.reason == UnresolvedReason.MISSING_GROUP_IDENTIFIER


def test_parentheses_only_identifier_counts_as_missing(index):
    _, miss = link_record(index, make_score(2024, 600, college_code="C1", group_code="( )", province="JS"))
    assert miss.reason == UnresolvedReason.MISSING_GROUP_IDENTIFIER


def test_missing_college_code_is_unresolved(index):
    _, miss = link_record(index, make_score(2024, 600, college_code=None, group_code="01", province="JS"))
    assert miss.reason == UnresolvedReason.MISSING_COLLEGE_CODE


def test_unknown_group_is_unresolved(index):
    _, miss = link_record(index, make_score(2024, 600, college_code="C1", group_code="05", province="JS"))
    assert miss.reason == UnresolvedReason.NO_MATCHING_GROUP


def test_other_province_or_track_does_not_match(index):
    _, miss = link_record(index, make_score(2024, 600, college_code="C1", group_code="01", province="ZJ"))
    assert miss.reason == UnresolvedReason.NO_MATCHING_GROUP
    _, miss = link_record(
        index, make_score(2024, 600, college_code="C1", group_code="01", province="JS", subject_track="history")
    )
    assert miss.reason == UnresolvedReason.NO_MATCHING_GROUP


def test_malformed_year_is_reported_not_raised(index):
    rec, miss = link_record(index, make_score("n/a", 600, college_code="C1", group_code="01", province="JS"))
    assert rec is None
    assert miss.reason == UnresolvedReason.MALFORMED_RECORD
    assert miss.detail


def test_string_year_is_coerced(index):
    rec, _ = link_record(index, make_score("2023", 600, college_code="C1", group_code="01", province="JS"))
    assert rec.year == 2023


def test_every_record_is_accounted_for(index):
    scores = [
        make_score(2024, 600, college_code="C1", group_code="01", province="JS", id=1),
        make_score(2024, 600, college_code="C1", alt_label="(02)", province="JS", id=2),
        make_score(2024, 600, college_code="C1", province="JS", id=3),
        make_score(2024, 600, college_code="C9", group_code="01", province="JS", id=4),
        make_score(2023, 590, college_code="C1", group_code="（01）", province="JS", id=5),
    ]
    report = link_history(index, scores, progress_every=0, sample_limit=0)

    assert report.total == len(scores)
    assert len(report.linked) == 3
    assert len(report.unresolved) == 2
    assert [r.id for r in report.linked] == [1, 2, 5]
    assert [u.record.id for u in report.unresolved] == [3, 4]
    assert report.by_strategy == {
        MatchStrategy.PRIMARY_GROUP_CODE: 2,
        MatchStrategy.ALTERNATE_GROUP_LABEL: 1,
    }
    assert report.coverage == pytest.approx(0.6)


def test_empty_input_gives_empty_report(index):
    report = link_history(index, [])
    assert report.total == 0
    assert report.coverage == 0.0


def test_unfrozen_index_is_refused():
    with pytest.raises(RuntimeError):
        link_history(GroupIndex(), [])


def test_frozen_index_rejects_additions(index):
    group = index.groups()[0]
    with pytest.raises(RuntimeError):
        index.add(group)


def test_plain_group_list_is_indexed():
    res = resolve_groups([make_quota(college_code="C1", group_code="(01)", province="JS")])
    report = link_history(res.groups, [make_score(2024, 600, college_code="C1", group_code="01", province="JS")])
    assert len(report.linked) == 1
    assert report.linked[0].group_id == res.groups[0].id


def test_parallel_linking_matches_sequential(index):
    scores = [
        make_score(2020 + i % 5, 600, college_code="C1", group_code=["01", "", "05"][i % 3],
                   alt_label="(02)" if i % 2 else None, province="JS", id=i)
        for i in range(30)
    ]
    sequential = link_history(index, scores, parallelism=1)
    parallel = link_history(index, scores, parallelism=3)

    assert [r.id for r in parallel.linked] == [r.id for r in sequential.linked]
    assert [(u.record.id, u.reason) for u in parallel.unresolved] == [
        (u.record.id, u.reason) for u in sequential.unresolved
    ]
    assert parallel.by_strategy == sequential.by_strategy
