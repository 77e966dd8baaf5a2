import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .policy import CoverageInputError, CoveragePolicy, DEFAULT_POLICY
from .scheduler import (
    build_coverage_report,
    require_count,
    rounded_percent,
    rounded_ratio,
    rounded_tenths,
    total_pairs,
)

logger = logging.getLogger(__name__)

COMPARISON_COLUMNS = ["response_id_1", "response_id_2", "reviewer_id"]
PAIR_COLUMNS = ["response_a", "response_b", "comparisons", "distinct_reviewers", "is_covered"]
REVIEWER_COLUMNS = ["reviewer_id", "completed", "remaining", "total", "progress"]
REPORT_COLUMNS = [
    "response_count",
    "reviewer_count",
    "min_comparisons_per_pair",
    "completed_comparisons",
    "total_pairs",
    "total_required_comparisons",
    "per_reviewer_quota",
    "total_capacity",
    "is_quota_capped",
    "progress_percent",
    "coverage_deficit",
]


def _as_id(value: Any) -> str:
    """Ids compare as text; integral floats from numeric columns (1.0) become '1'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Metrics:
    def __init__(self, policy: CoveragePolicy = DEFAULT_POLICY):
        self.policy = policy

    def _validated(self, df: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in COMPARISON_COLUMNS if c not in df.columns]
        if missing:
            raise CoverageInputError(f"Comparison records are missing columns: {', '.join(missing)}")

        records = df[COMPARISON_COLUMNS].dropna()
        dropped = len(df) - len(records)
        if dropped:
            logger.warning(f"Dropped {dropped} comparison record(s) with empty ids.")
        records = records.assign(**{column: records[column].map(_as_id) for column in COMPARISON_COLUMNS})

        self_pairs = records["response_id_1"] == records["response_id_2"]
        if self_pairs.any():
            first = records.loc[self_pairs, "response_id_1"].iloc[0]
            raise CoverageInputError(f"Response '{first}' is compared with itself")
        return records

    def pair_coverage(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Counts comparisons and distinct reviewers for every observed pair.

        Args:
            df (pd.DataFrame): Completed comparisons with columns
                               response_id_1, response_id_2, reviewer_id.

        Returns:
            pd.DataFrame: One row per unordered pair with comparisons,
                          distinct_reviewers and is_covered.
        """
        if df.empty:
            return pd.DataFrame(columns=PAIR_COLUMNS)

        records = self._validated(df)
        first, second = records["response_id_1"], records["response_id_2"]
        in_order = first <= second
        records = records.assign(
            response_a=first.where(in_order, second),
            response_b=second.where(in_order, first),
        )

        coverage = records.groupby(["response_a", "response_b"]).agg(
            comparisons=("reviewer_id", "size"),
            distinct_reviewers=("reviewer_id", "nunique"),
        ).reset_index()
        coverage["is_covered"] = coverage["distinct_reviewers"] >= self.policy.min_comparisons_per_pair
        return coverage[PAIR_COLUMNS]

    def pair_completion_summary(self, df: pd.DataFrame, response_count: Optional[int] = None) -> Dict[str, Any]:
        """
        Summarises how many pairs have reached the per-pair reviewer minimum.

        When response_count is omitted the pair total is derived from the
        response ids present in the records, so pairs nobody has compared yet
        among unseen responses are not counted.
        """
        coverage = self.pair_coverage(df)
        observed = pd.concat([coverage["response_a"], coverage["response_b"]]).nunique()
        if response_count is None:
            response_count = observed
        elif require_count("response_count", response_count) < observed:
            raise CoverageInputError(
                f"Records mention {observed} distinct responses but response_count is {response_count}"
            )

        pairs = total_pairs(int(response_count))
        completed_pairs = int(coverage["is_covered"].sum())
        comparisons = int(coverage["comparisons"].sum())
        return {
            "response_count": int(response_count),
            "total_comparisons": comparisons,
            "completed_pairs": completed_pairs,
            "total_pairs": pairs,
            "pair_coverage": rounded_percent(completed_pairs, pairs),
            "avg_comparisons_per_pair": rounded_tenths(comparisons, pairs),
            "min_comparisons_per_pair": self.policy.min_comparisons_per_pair,
        }

    def reviewer_roster(self, df: pd.DataFrame, reviewer_ids: Optional[Iterable[Any]] = None) -> List[str]:
        """Listed reviewers in order without repeats, then anyone else found in the records."""
        seen = [] if df.empty else sorted(self._validated(df)["reviewer_id"].unique())
        listed = [] if reviewer_ids is None else [_as_id(r) for r in reviewer_ids]
        return list(dict.fromkeys(listed + seen))

    def completion_summary(
        self,
        df: pd.DataFrame,
        quota: int,
        reviewer_ids: Optional[Iterable[Any]] = None,
        response_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Cohort completion: how many reviewers have reached the quota, and the
        average number of comparisons each response took part in.

        Every comparison involves two responses, so the per-response average is
        2 * comparisons / responses, rounded half up. A cohort with no reviewers
        is never complete.
        """
        pairs = self.pair_completion_summary(df, response_count)
        progress = self.reviewer_progress(df, quota, reviewer_ids)
        total_reviewers = len(progress)
        completed_reviewers = int((progress["completed"] >= quota).sum())
        comparisons = pairs["total_comparisons"]
        return {
            "total_comparisons": comparisons,
            "completed_reviewers": completed_reviewers,
            "total_reviewers": total_reviewers,
            "is_complete": total_reviewers > 0 and completed_reviewers == total_reviewers,
            "average_comparisons_per_response": rounded_ratio(2 * comparisons, pairs["response_count"]),
        }

    def reviewer_progress(
        self,
        df: pd.DataFrame,
        quota: int,
        reviewer_ids: Optional[Iterable[Any]] = None,
    ) -> pd.DataFrame:
        """Completed and remaining comparisons per reviewer against a quota."""
        quota = require_count("quota", quota)
        if df.empty:
            counts = pd.Series(dtype="int64")
        else:
            counts = self._validated(df).groupby("reviewer_id").size()
        counts = counts.reindex(self.reviewer_roster(df, reviewer_ids), fill_value=0)

        progress = counts.rename("completed").rename_axis("reviewer_id").reset_index()
        progress["completed"] = progress["completed"].astype(int)
        progress["remaining"] = (quota - progress["completed"]).clip(lower=0)
        progress["total"] = quota
        progress["progress"] = progress["completed"].map(lambda done: rounded_percent(int(done), quota))
        return progress[REVIEWER_COLUMNS]

    def coverage_table(self, response_counts: Iterable[int], reviewer_count: int) -> pd.DataFrame:
        """Planning table: one coverage report row per response count."""
        rows = [
            build_coverage_report(n, reviewer_count, policy=self.policy).as_dict()
            for n in response_counts
        ]
        table = pd.DataFrame(rows, columns=REPORT_COLUMNS)
        table["coverage_deficit"] = table["coverage_deficit"].astype("Int64")
        return table
