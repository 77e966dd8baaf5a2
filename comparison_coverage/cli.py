import logging
import os
from typing import List, NoReturn, Optional

import pandas as pd
import typer

from comparison_coverage.engine.metrics import Metrics
from comparison_coverage.engine.policy import CoverageInputError, CoveragePolicy, PolicyError, load_policy
from comparison_coverage.engine.scheduler import CoverageReport, build_coverage_report, legacy_reviewer_quota

app = typer.Typer(help="Plan and track comparison coverage for pairwise peer review.")


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}")
    raise typer.Exit(code=1)


def _load_policy_or_exit(config_path: Optional[str], profile: Optional[str]) -> CoveragePolicy:
    try:
        return load_policy(config_path, profile)
    except PolicyError as e:
        _fail(str(e))


def _echo_report(report: CoverageReport) -> None:
    typer.echo(f"Responses:                {report.response_count}")
    typer.echo(f"Reviewers:                {report.reviewer_count}")
    typer.echo(f"Reviewers per pair:       {report.min_comparisons_per_pair}")
    typer.echo(f"Total pairs:              {report.total_pairs}")
    typer.echo(f"Required comparisons:     {report.total_required_comparisons}")
    typer.echo(f"Per-reviewer quota:       {report.per_reviewer_quota}")
    typer.echo(f"Total capacity:           {report.total_capacity}")
    typer.echo(f"Quota capped:             {'yes' if report.is_quota_capped else 'no'}")
    typer.echo(f"Progress:                 {report.progress_percent}% ({report.completed_comparisons} completed)")
    if report.coverage_deficit:
        typer.echo(f"\n--- Coverage Deficit: {report.coverage_deficit.shortfall} ---")
        typer.echo(report.coverage_deficit.message)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


@app.command()
def plan(
    responses: int = typer.Argument(..., help="Number of responses to be compared."),
    reviewers: int = typer.Argument(..., help="Number of reviewers in the cohort."),
    completed: int = typer.Option(0, help="Comparisons already completed."),
    min_per_pair: Optional[int] = typer.Option(None, help="Override the reviewers-per-pair minimum."),
    config: Optional[str] = typer.Option(None, help="Path to a coverage policy YAML file."),
    profile: Optional[str] = typer.Option(None, help="Named policy profile from the config file."),
):
    """
    Shows the coverage report for a session.
    """
    policy = _load_policy_or_exit(config, profile)
    try:
        report = build_coverage_report(responses, reviewers, completed, min_per_pair, policy)
    except CoverageInputError as e:
        _fail(str(e))
    _echo_report(report)


@app.command()
def table(
    max_responses: int = typer.Argument(..., help="Largest response count to include."),
    reviewers: int = typer.Argument(..., help="Number of reviewers in the cohort."),
    config: Optional[str] = typer.Option(None, help="Path to a coverage policy YAML file."),
    profile: Optional[str] = typer.Option(None, help="Named policy profile from the config file."),
    out: Optional[str] = typer.Option(None, help="Write the table to this CSV path instead of printing it."),
):
    """
    Prints a planning table for response counts 0..MAX_RESPONSES.
    """
    policy = _load_policy_or_exit(config, profile)
    if max_responses < 0:
        _fail(f"max_responses must be non-negative, got {max_responses}")
    try:
        df = Metrics(policy).coverage_table(range(max_responses + 1), reviewers)
    except CoverageInputError as e:
        _fail(str(e))

    if out:
        df.to_csv(out, index=False)
        typer.echo(f"Coverage table exported to {out}")
    else:
        typer.echo(f"\n--- Coverage Plan (policy: {policy.name}) ---")
        typer.echo(df.to_string(index=False))


@app.command()
def progress(
    comparisons_csv: str = typer.Argument(..., help="CSV of completed comparisons (response_id_1, response_id_2, reviewer_id)."),
    responses: Optional[int] = typer.Option(None, help="Total responses in the session (default: responses seen in the CSV)."),
    reviewers_file: Optional[str] = typer.Option(None, help="Text file with one reviewer id per line."),
    config: Optional[str] = typer.Option(None, help="Path to a coverage policy YAML file."),
    profile: Optional[str] = typer.Option(None, help="Named policy profile from the config file."),
    out: Optional[str] = typer.Option(None, help="Write reviewer progress to this CSV path."),
):
    """
    Summarises pair coverage and reviewer progress from recorded comparisons.
    """
    if not os.path.exists(comparisons_csv):
        _fail(f"Comparisons file not found at {comparisons_csv}.")
    policy = _load_policy_or_exit(config, profile)

    reviewer_ids: Optional[List[str]] = None
    if reviewers_file:
        if not os.path.exists(reviewers_file):
            _fail(f"Reviewers file not found at {reviewers_file}.")
        with open(reviewers_file, "r", encoding="utf-8") as fh:
            reviewer_ids = [line.strip() for line in fh if line.strip()]

    try:
        df = pd.read_csv(comparisons_csv, dtype=str)
    except pd.errors.EmptyDataError:
        _fail(f"Comparisons file {comparisons_csv} is empty.")
    metrics_calculator = Metrics(policy)
    try:
        summary = metrics_calculator.pair_completion_summary(df, responses)
        # roster plus anyone who appears in the records, each counted once
        reviewer_count = len(metrics_calculator.reviewer_roster(df, reviewer_ids))
        report = build_coverage_report(
            summary["response_count"], reviewer_count, summary["total_comparisons"], policy=policy
        )
        reviewer_df = metrics_calculator.reviewer_progress(df, report.per_reviewer_quota, reviewer_ids)
        completion = metrics_calculator.completion_summary(
            df, report.per_reviewer_quota, reviewer_ids, summary["response_count"]
        )
    except CoverageInputError as e:
        _fail(str(e))

    _echo_report(report)

    typer.echo("\n--- Pair Completion ---")
    typer.echo(f"Covered pairs: {summary['completed_pairs']}/{summary['total_pairs']} ({summary['pair_coverage']}%)")
    typer.echo(f"Average comparisons per pair: {summary['avg_comparisons_per_pair']}")

    typer.echo("\n--- Cohort Completion ---")
    typer.echo(f"Reviewers at quota: {completion['completed_reviewers']}/{completion['total_reviewers']}")
    typer.echo(f"Average comparisons per response: {completion['average_comparisons_per_response']}")
    typer.echo(f"Complete: {'yes' if completion['is_complete'] else 'no'}")

    typer.echo("\n--- Reviewer Progress ---")
    typer.echo(reviewer_df.to_string(index=False))

    if out:
        reviewer_df.to_csv(out, index=False)
        typer.echo(f"Reviewer progress exported to {out}")


@app.command("legacy-quota")
def legacy_quota(
    responses: int = typer.Argument(..., help="Number of responses to be compared."),
):
    """
    Prints the deprecated per-reviewer estimate (use 'plan' for new sessions).
    """
    try:
        quota = legacy_reviewer_quota(responses)
    except CoverageInputError as e:
        _fail(str(e))
    typer.echo(f"Legacy per-reviewer quota: {quota}")
    typer.echo("Deprecated: ignores reviewer count and per-pair coverage. Use 'plan' instead.")


if __name__ == "__main__":
    app()
