from admitgroup.application.use_cases.build_group_relationships import BuildGroupRelationshipsUseCase
from coverage_report import coverage_table

from conftest import make_quota, make_score


def test_coverage_table_counts_status_per_year(repo):
    kw = dict(college_code="C1", province="JS", subject_track="physics")
    repo.add_quota_records_bulk([make_quota(group_code="(01)", **kw)])
    repo.add_score_records_bulk([
        make_score(2024, 600, group_code="01", **kw),
        make_score(2024, 590, **kw),
        make_score(2023, 610, group_code="05", **kw),
    ])
    repo.commit()
    BuildGroupRelationshipsUseCase(repo, year=2025, parallelism=1).execute()

    # imported after the build, not linked yet
    repo.add_score_records_bulk([make_score(2023, 605, group_code="01", **kw)])

    table = coverage_table(repo.get_score_records_df())

    assert list(table.index) == [2024, 2023]
    assert list(table.columns) == ["linked", "missing-group-identifier", "no-matching-group", "pending"]
    assert table.loc[2024].tolist() == [1, 1, 0, 0]
    assert table.loc[2023].tolist() == [0, 0, 1, 1]


def test_coverage_table_of_empty_frame(repo):
    assert coverage_table(repo.get_score_records_df()).empty
