import pytest

from admitgroup.domain.models import Trend
from admitgroup.services.time_series import aggregate_history

from conftest import make_score


def test_takes_k_most_recent_years_in_descending_order():
    scores = [make_score(y, 600 + (y - 2018)) for y in range(2018, 2025)]
    stats = aggregate_history("g", scores, history_years=5, trend_tolerance=2)

    assert stats.years_available == 5
    assert [r.year for r in stats.records] == [2024, 2023, 2022, 2021, 2020]
    assert stats.avg_min_score == pytest.approx(sum(range(602, 607)) / 5)
    assert stats.latest_year == 2024
    assert stats.latest_min_score == 606


def test_fewer_years_than_k():
    stats = aggregate_history("g", [make_score(2024, 600), make_score(2023, 610)], history_years=5)
    assert stats.years_available == 2


def test_year_without_min_score_counts_but_is_not_averaged():
    scores = [make_score(2024, None, 12000), make_score(2023, 600, 10000), make_score(2022, 610, None)]
    stats = aggregate_history("g", scores, history_years=5, trend_tolerance=2)

    assert stats.years_available == 3
    assert stats.avg_min_score == pytest.approx(605.0)
    assert stats.avg_min_rank == pytest.approx(11000.0)
    assert stats.latest_min_score == 600


def test_duplicate_year_keeps_lowest_cutoff():
    scores = [make_score(2024, 620), make_score(2024, 605), make_score(2024, None)]
    stats = aggregate_history("g", scores, history_years=5)

    assert stats.years_available == 1
    assert stats.records[0].min_score == 605


@pytest.mark.parametrize("latest, earliest, expected", [
    (610, 600, Trend.RISING),
    (600, 610, Trend.FALLING),
    (602, 600, Trend.STABLE),
    (598, 600, Trend.STABLE),
    (603, 600, Trend.RISING),
])
def test_trend_against_tolerance(latest, earliest, expected):
    scores = [make_score(2024, latest), make_score(2023, 605), make_score(2022, earliest)]
    stats = aggregate_history("g", scores, history_years=5, trend_tolerance=2)
    assert stats.trend == expected


def test_single_scored_year_is_stable():
    stats = aggregate_history("g", [make_score(2024, 600)], history_years=5, trend_tolerance=2)
    assert stats.trend == Trend.STABLE
    assert stats.score_volatility == pytest.approx(0.0)


def test_no_history_is_a_valid_state():
    stats = aggregate_history("g", [], history_years=5)

    assert stats.years_available == 0
    assert stats.records == []
    assert stats.avg_min_score is None
    assert stats.avg_min_rank is None
    assert stats.trend == Trend.UNKNOWN
    assert stats.latest_year is None


def test_only_null_scores_has_no_average():
    stats = aggregate_history("g", [make_score(2024, None), make_score(2023, None)], history_years=5)
    assert stats.years_available == 2
    assert stats.avg_min_score is None
    assert stats.trend == Trend.STABLE


def test_string_years_are_coerced():
    stats = aggregate_history("g", [make_score(2024, 600), make_score("2023", 610), make_score("2025", 605)],
                              history_years=5)

    assert [r.year for r in stats.records] == [2025, 2024, 2023]
    assert stats.latest_year == 2025


def test_unparsable_year_is_skipped():
    stats = aggregate_history("g", [make_score(2024, 600), make_score("n/a", 500), make_score(None, 500)],
                              history_years=5)

    assert stats.years_available == 1
    assert stats.avg_min_score == pytest.approx(600.0)
