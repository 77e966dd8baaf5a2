"""
Coverage scheduler: comparison targets for a pairwise peer-review session.

Every function here is a pure function of its arguments. Thresholds come from
a CoveragePolicy passed per call; DEFAULT_POLICY holds the documented defaults
(3 reviewers per pair, 5 to 15 comparisons per reviewer).
"""
import logging
import warnings
from dataclasses import dataclass
from numbers import Integral
from typing import Any, Dict, Optional

from .policy import CoverageInputError, CoveragePolicy, DEFAULT_POLICY, MIN_COMPARISONS_PER_PAIR

logger = logging.getLogger(__name__)

LEGACY_QUOTA_CAP = 15


def require_count(name: str, value: Any) -> int:
    """Validate a non-negative integer count, returning it as int."""
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise CoverageInputError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise CoverageInputError(f"{name} must be non-negative, got {value}")
    return int(value)


def _resolve_min_per_pair(min_per_pair: Optional[int], policy: CoveragePolicy) -> int:
    if min_per_pair is None:
        return policy.min_comparisons_per_pair
    value = require_count("min_per_pair", min_per_pair)
    if value < 1:
        raise CoverageInputError(f"min_per_pair must be at least 1, got {value}")
    return value


def rounded_percent(part: int, whole: int) -> int:
    """100 * part / whole rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def rounded_ratio(part: int, whole: int) -> int:
    """part / whole rounded half up to an integer; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (2 * part + whole) // (2 * whole)


def rounded_tenths(part: int, whole: int) -> float:
    """part / whole rounded half up to one decimal; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return ((20 * part + whole) // (2 * whole)) / 10


@dataclass(frozen=True)
class CoverageDeficit:
    """Shortfall between the comparisons coverage needs and what the cohort can do."""
    shortfall: int
    required_comparisons: int
    available_capacity: int
    reviewer_count: int

    @property
    def message(self) -> str:
        return (
            f"{self.required_comparisons} comparisons are required but {self.reviewer_count} "
            f"reviewer(s) can complete only {self.available_capacity} at the current quota "
            f"({self.shortfall} short). Recruit more reviewers or lower min_per_pair."
        )


@dataclass(frozen=True)
class CoverageReport:
    response_count: int
    reviewer_count: int
    min_comparisons_per_pair: int
    completed_comparisons: int
    total_pairs: int
    total_required_comparisons: int
    per_reviewer_quota: int
    total_capacity: int
    is_quota_capped: bool
    progress_percent: int
    coverage_deficit: Optional[CoverageDeficit] = None

    @property
    def has_deficit(self) -> bool:
        return self.coverage_deficit is not None

    def as_dict(self) -> Dict[str, Any]:
        """Flat mapping with the deficit reduced to its shortfall (None when covered)."""
        return {
            "response_count": self.response_count,
            "reviewer_count": self.reviewer_count,
            "min_comparisons_per_pair": self.min_comparisons_per_pair,
            "completed_comparisons": self.completed_comparisons,
            "total_pairs": self.total_pairs,
            "total_required_comparisons": self.total_required_comparisons,
            "per_reviewer_quota": self.per_reviewer_quota,
            "total_capacity": self.total_capacity,
            "is_quota_capped": self.is_quota_capped,
            "progress_percent": self.progress_percent,
            "coverage_deficit": self.coverage_deficit.shortfall if self.coverage_deficit else None,
        }


def total_pairs(response_count: int) -> int:
    """Number of unordered pairs among response_count responses."""
    n = require_count("response_count", response_count)
    if n <= 1:
        return 0
    return n * (n - 1) // 2


def total_required_comparisons(
    response_count: int,
    min_per_pair: Optional[int] = None,
    policy: CoveragePolicy = DEFAULT_POLICY,
) -> int:
    """Comparisons needed so that every pair is seen by min_per_pair reviewers."""
    return total_pairs(response_count) * _resolve_min_per_pair(min_per_pair, policy)


def per_reviewer_quota(
    response_count: int,
    reviewer_count: int,
    min_per_pair: Optional[int] = None,
    policy: CoveragePolicy = DEFAULT_POLICY,
) -> int:
    """
    Comparisons each reviewer is asked to complete.

    The even share of the required total is rounded up, then clamped to the
    policy's reviewer floor and ceiling. Returns 0 when there is nothing to
    compare or nobody to compare it.

    Args:
        response_count (int): Number of responses in the session.
        reviewer_count (int): Number of reviewers in the cohort.
        min_per_pair (int, optional): Override for the policy's reviewers-per-pair minimum.
        policy (CoveragePolicy): Threshold set to apply.

    Returns:
        int: The clamped quota, or 0 when no work exists.
    """
    required = total_required_comparisons(response_count, min_per_pair, policy)
    reviewers = require_count("reviewer_count", reviewer_count)
    if response_count <= 1 or reviewers == 0:
        return 0
    raw = -(-required // reviewers)
    quota = max(policy.min_comparisons_per_reviewer, min(raw, policy.max_comparisons_per_reviewer))
    logger.debug(
        f"Quota for {response_count} responses / {reviewers} reviewers: raw={raw}, clamped={quota} "
        f"(policy '{policy.name}')"
    )
    return quota


def build_coverage_report(
    response_count: int,
    reviewer_count: int,
    completed_comparisons: int = 0,
    min_per_pair: Optional[int] = None,
    policy: CoveragePolicy = DEFAULT_POLICY,
) -> CoverageReport:
    """
    Compose pair totals, quota, capacity and progress into a CoverageReport.

    Insufficient capacity is reported through coverage_deficit and never raised.
    progress_percent is not clamped: completed counts above the required total
    give values over 100.

    Raises:
        CoverageInputError: If a count is negative or not an integer.
    """
    min_pairs = _resolve_min_per_pair(min_per_pair, policy)
    completed = require_count("completed_comparisons", completed_comparisons)
    reviewers = require_count("reviewer_count", reviewer_count)

    pairs = total_pairs(response_count)
    required = pairs * min_pairs
    quota = per_reviewer_quota(response_count, reviewers, min_pairs, policy)
    capacity = reviewers * quota

    deficit = None
    if capacity < required:
        deficit = CoverageDeficit(
            shortfall=required - capacity,
            required_comparisons=required,
            available_capacity=capacity,
            reviewer_count=reviewers,
        )
        logger.info(f"Coverage deficit: {deficit.message}")

    return CoverageReport(
        response_count=int(response_count),
        reviewer_count=reviewers,
        min_comparisons_per_pair=min_pairs,
        completed_comparisons=completed,
        total_pairs=pairs,
        total_required_comparisons=required,
        per_reviewer_quota=quota,
        total_capacity=capacity,
        is_quota_capped=quota == policy.max_comparisons_per_reviewer,
        progress_percent=rounded_percent(completed, required),
        coverage_deficit=deficit,
    )


@dataclass(frozen=True)
class CoverageParameters:
    response_count: int
    reviewer_count: int
    min_comparisons_per_pair: int = MIN_COMPARISONS_PER_PAIR

    def __post_init__(self) -> None:
        require_count("response_count", self.response_count)
        require_count("reviewer_count", self.reviewer_count)
        _resolve_min_per_pair(self.min_comparisons_per_pair, DEFAULT_POLICY)

    @classmethod
    def from_policy(cls, response_count: int, reviewer_count: int, policy: CoveragePolicy) -> "CoverageParameters":
        return cls(response_count, reviewer_count, policy.min_comparisons_per_pair)

    def report(self, completed_comparisons: int = 0, policy: CoveragePolicy = DEFAULT_POLICY) -> CoverageReport:
        return build_coverage_report(
            self.response_count,
            self.reviewer_count,
            completed_comparisons=completed_comparisons,
            min_per_pair=self.min_comparisons_per_pair,
            policy=policy,
        )


def legacy_reviewer_quota(response_count: int) -> int:
    """
    Deprecated: use per_reviewer_quota.

    Older sessions sized reviewer work as ceil(response_count * 3 / 2), capped
    at 15. The estimate ignores the reviewer count and gives no per-pair
    coverage guarantee.
    """
    warnings.warn(
        "legacy_reviewer_quota is deprecated; use per_reviewer_quota",
        DeprecationWarning,
        stacklevel=2,
    )
    n = require_count("response_count", response_count)
    return min((n * 3 + 1) // 2, LEGACY_QUOTA_CAP)
