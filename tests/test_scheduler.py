import logging

import pytest

from comparison_coverage.engine.policy import CoverageInputError, CoveragePolicy, DEFAULT_POLICY
from comparison_coverage.engine.scheduler import (
    CoverageParameters,
    build_coverage_report,
    legacy_reviewer_quota,
    per_reviewer_quota,
    rounded_percent,
    rounded_ratio,
    rounded_tenths,
    total_pairs,
    total_required_comparisons,
)


@pytest.mark.parametrize("n, expected", [(0, 0), (1, 0), (2, 1), (3, 3), (5, 10), (10, 45), (15, 105)])
def test_total_pairs(n, expected):
    assert total_pairs(n) == expected


def test_total_pairs_matches_formula():
    for n in range(0, 60):
        assert total_pairs(n) == n * (n - 1) // 2


def test_total_required_comparisons_defaults_and_override():
    assert total_required_comparisons(5) == 30
    assert total_required_comparisons(5, min_per_pair=1) == 10
    assert total_required_comparisons(5, policy=CoveragePolicy(min_comparisons_per_pair=4)) == 40
    # explicit min_per_pair wins over the policy value
    assert total_required_comparisons(5, min_per_pair=2, policy=CoveragePolicy(min_comparisons_per_pair=4)) == 20


def test_total_required_comparisons_is_monotonic():
    previous = 0
    for n in range(0, 40):
        current = total_required_comparisons(n)
        assert current >= previous
        previous = current
    for k in range(1, 10):
        assert total_required_comparisons(8, min_per_pair=k + 1) >= total_required_comparisons(8, min_per_pair=k)


def test_per_reviewer_quota_floor_and_ceiling():
    # 1 pair * 3 / 10 reviewers rounds up to 1, lifted to the floor
    assert per_reviewer_quota(2, 10) == 5
    assert per_reviewer_quota(5, 5) == 6
    # raw 27 is cut to the ceiling
    assert per_reviewer_quota(10, 5) == 15


def test_per_reviewer_quota_rounds_up():
    # 45 pairs * 3 = 135 over 16 reviewers = 8.4375
    assert per_reviewer_quota(10, 16) == 9


@pytest.mark.parametrize("n, r", [(0, 5), (1, 5), (0, 0), (5, 0), (1, 0)])
def test_per_reviewer_quota_is_zero_without_work(n, r):
    assert per_reviewer_quota(n, r) == 0


def test_per_reviewer_quota_stays_within_bounds():
    for n in range(2, 40):
        for r in range(1, 30):
            quota = per_reviewer_quota(n, r)
            assert DEFAULT_POLICY.min_comparisons_per_reviewer <= quota <= DEFAULT_POLICY.max_comparisons_per_reviewer


def test_per_reviewer_quota_uses_policy_bounds():
    policy = CoveragePolicy(min_comparisons_per_pair=2, min_comparisons_per_reviewer=1, max_comparisons_per_reviewer=100)
    assert per_reviewer_quota(10, 5, policy=policy) == 18
    assert per_reviewer_quota(2, 10, policy=policy) == 1


def test_report_scenario_even_split():
    report = build_coverage_report(5, 5)
    assert report.total_pairs == 10
    assert report.total_required_comparisons == 30
    assert report.per_reviewer_quota == 6
    assert report.total_capacity == 30
    assert report.is_quota_capped is False
    assert report.coverage_deficit is None
    assert not report.has_deficit


def test_report_scenario_capped_with_deficit():
    report = build_coverage_report(10, 5)
    assert report.total_pairs == 45
    assert report.total_required_comparisons == 135
    assert report.per_reviewer_quota == 15
    assert report.total_capacity == 75
    assert report.is_quota_capped is True
    assert report.coverage_deficit.shortfall == 60
    assert report.coverage_deficit.required_comparisons == 135
    assert report.coverage_deficit.available_capacity == 75
    assert report.coverage_deficit.reviewer_count == 5


def test_report_scenario_large_cohort():
    report = build_coverage_report(15, 5)
    assert report.total_pairs == 105
    assert report.total_required_comparisons == 315
    assert report.per_reviewer_quota == 15
    assert report.total_capacity == 75
    assert report.coverage_deficit.shortfall == 240


@pytest.mark.parametrize("n", [0, 1])
@pytest.mark.parametrize("r", [0, 1, 7])
def test_report_without_pairs(n, r):
    report = build_coverage_report(n, r)
    assert report.total_pairs == 0
    assert report.total_required_comparisons == 0
    assert report.per_reviewer_quota == 0
    assert report.total_capacity == 0
    assert report.progress_percent == 0
    assert report.coverage_deficit is None


def test_report_without_reviewers_has_deficit():
    report = build_coverage_report(5, 0)
    assert report.per_reviewer_quota == 0
    assert report.total_capacity == 0
    assert report.coverage_deficit.shortfall == 30
    assert "30 comparisons are required" in report.coverage_deficit.message


def test_report_capped_without_deficit():
    # 135 / 9 reviewers lands exactly on the ceiling
    report = build_coverage_report(10, 9)
    assert report.per_reviewer_quota == 15
    assert report.is_quota_capped is True
    assert report.total_capacity == 135
    assert report.coverage_deficit is None


def test_report_deficit_invariant():
    for n in range(0, 25):
        for r in range(0, 12):
            report = build_coverage_report(n, r)
            assert report.total_required_comparisons == report.total_pairs * report.min_comparisons_per_pair
            assert report.total_capacity == r * report.per_reviewer_quota
            if report.total_capacity < report.total_required_comparisons:
                assert report.coverage_deficit.shortfall == report.total_required_comparisons - report.total_capacity
            else:
                assert report.coverage_deficit is None


def test_report_progress():
    assert build_coverage_report(5, 5, completed_comparisons=0).progress_percent == 0
    assert build_coverage_report(5, 5, completed_comparisons=30).progress_percent == 100
    assert build_coverage_report(5, 5, completed_comparisons=10).progress_percent == 33
    # over-completion is reported as is
    assert build_coverage_report(5, 5, completed_comparisons=45).progress_percent == 150
    # no required comparisons: no division
    assert build_coverage_report(1, 5, completed_comparisons=3).progress_percent == 0


def test_report_progress_rounds_half_up():
    # 1 of 8 required is 12.5%
    report = build_coverage_report(2, 3, completed_comparisons=1, min_per_pair=8)
    assert report.total_required_comparisons == 8
    assert report.progress_percent == 13


def test_report_is_idempotent():
    assert build_coverage_report(12, 7, 20) == build_coverage_report(12, 7, 20)
    assert per_reviewer_quota(12, 7) == per_reviewer_quota(12, 7)


def test_report_logs_deficit(caplog):
    caplog.set_level(logging.INFO, logger="comparison_coverage.engine.scheduler")
    build_coverage_report(10, 5)
    assert any("Coverage deficit" in r.message for r in caplog.records)


def test_report_as_dict():
    row = build_coverage_report(10, 5, completed_comparisons=75).as_dict()
    assert row["coverage_deficit"] == 60
    assert row["progress_percent"] == 56
    assert build_coverage_report(5, 5).as_dict()["coverage_deficit"] is None


@pytest.mark.parametrize(
    "call",
    [
        lambda: total_pairs(-1),
        lambda: total_required_comparisons(-4),
        lambda: per_reviewer_quota(5, -1),
        lambda: build_coverage_report(5, 5, completed_comparisons=-1),
        lambda: build_coverage_report(5, 5, min_per_pair=0),
        lambda: build_coverage_report(2.5, 5),
        lambda: build_coverage_report(True, 5),
    ],
)
def test_invalid_input_is_rejected(call):
    with pytest.raises(CoverageInputError):
        call()


def test_input_error_is_value_error():
    with pytest.raises(ValueError, match="response_count must be non-negative"):
        total_pairs(-3)


def test_parameters_build_report():
    params = CoverageParameters(10, 5)
    assert params.min_comparisons_per_pair == 3
    assert params.report(completed_comparisons=30) == build_coverage_report(10, 5, 30)


def test_parameters_from_policy():
    policy = CoveragePolicy(min_comparisons_per_pair=2)
    params = CoverageParameters.from_policy(6, 3, policy)
    assert params.min_comparisons_per_pair == 2
    assert params.report(policy=policy).total_required_comparisons == 30


@pytest.mark.parametrize("args", [(-1, 5), (5, -1), (5, 5, 0)])
def test_parameters_validate(args):
    with pytest.raises(CoverageInputError):
        CoverageParameters(*args)


@pytest.mark.parametrize("n, expected", [(0, 0), (1, 2), (4, 6), (9, 14), (10, 15), (11, 15), (40, 15)])
def test_legacy_reviewer_quota(n, expected):
    with pytest.deprecated_call():
        assert legacy_reviewer_quota(n) == expected


def test_legacy_reviewer_quota_rejects_negative():
    with pytest.deprecated_call(), pytest.raises(CoverageInputError):
        legacy_reviewer_quota(-1)


def test_rounding_helpers():
    assert rounded_percent(1, 3) == 33
    assert rounded_percent(2, 3) == 67
    assert rounded_percent(1, 0) == 0
    assert rounded_tenths(5, 2) == 2.5
    assert rounded_tenths(1, 3) == 0.3
    assert rounded_tenths(1, 20) == 0.1
    assert rounded_tenths(4, 0) == 0.0


def test_rounded_ratio():
    assert rounded_ratio(12, 5) == 2
    assert rounded_ratio(6, 4) == 2
    assert rounded_ratio(5, 4) == 1
    assert rounded_ratio(3, 0) == 0
