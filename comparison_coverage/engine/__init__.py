"""
comparison_coverage.engine

Engine package for the coverage policy, the scheduler arithmetic, and
completion metrics over recorded comparisons.
"""
__all__ = ["policy", "scheduler", "metrics"]
