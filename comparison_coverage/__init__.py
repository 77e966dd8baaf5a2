"""
comparison_coverage package

Coverage planning for peer pairwise-comparison sessions:
- how many comparisons every pair of responses needs
- how many comparisons each reviewer is asked to perform
- progress and feasibility reporting for operators

Subpackages:
- engine: policy values, the scheduler, and completion metrics
- cli: typer command line front-end
"""
from .engine.policy import (
    CoverageInputError,
    CoveragePolicy,
    DEFAULT_POLICY,
    PolicyError,
    load_policy,
)
from .engine.scheduler import (
    CoverageDeficit,
    CoverageParameters,
    CoverageReport,
    build_coverage_report,
    legacy_reviewer_quota,
    per_reviewer_quota,
    total_pairs,
    total_required_comparisons,
)

__all__ = [
    "CoverageDeficit",
    "CoverageInputError",
    "CoverageParameters",
    "CoveragePolicy",
    "CoverageReport",
    "DEFAULT_POLICY",
    "PolicyError",
    "build_coverage_report",
    "legacy_reviewer_quota",
    "load_policy",
    "per_reviewer_quota",
    "total_pairs",
    "total_required_comparisons",
]
