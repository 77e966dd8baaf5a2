import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Minimum number of distinct reviewers that must see each pair.
MIN_COMPARISONS_PER_PAIR = 3
MIN_COMPARISONS_PER_REVIEWER = 5
MAX_COMPARISONS_PER_REVIEWER = 15

POLICY_KEYS = (
    "min_comparisons_per_pair",
    "min_comparisons_per_reviewer",
    "max_comparisons_per_reviewer",
)


class CoverageInputError(ValueError):
    """Raised when a count or a comparison record is outside the accepted domain."""


class PolicyError(ValueError):
    """Raised when policy thresholds are inconsistent or a profile is unknown."""


@dataclass(frozen=True)
class CoveragePolicy:
    """
    Threshold set used by the scheduler.

    Each call receives a policy value, so several profiles (e.g. one per
    course) can be used side by side.
    """
    min_comparisons_per_pair: int = MIN_COMPARISONS_PER_PAIR
    min_comparisons_per_reviewer: int = MIN_COMPARISONS_PER_REVIEWER
    max_comparisons_per_reviewer: int = MAX_COMPARISONS_PER_REVIEWER
    name: str = "default"

    def __post_init__(self) -> None:
        for key in POLICY_KEYS:
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise PolicyError(f"{key} must be an integer, got {value!r}")
        if self.min_comparisons_per_pair < 1:
            raise PolicyError(
                f"min_comparisons_per_pair must be at least 1, got {self.min_comparisons_per_pair}"
            )
        if self.min_comparisons_per_reviewer < 0:
            raise PolicyError(
                f"min_comparisons_per_reviewer must be non-negative, got {self.min_comparisons_per_reviewer}"
            )
        if self.max_comparisons_per_reviewer < self.min_comparisons_per_reviewer:
            raise PolicyError(
                "max_comparisons_per_reviewer "
                f"({self.max_comparisons_per_reviewer}) is below min_comparisons_per_reviewer "
                f"({self.min_comparisons_per_reviewer})"
            )

    def with_overrides(self, **overrides: Any) -> "CoveragePolicy":
        return replace(self, **overrides)


DEFAULT_POLICY = CoveragePolicy()


def _policy_values(section: Any, source: str) -> Dict[str, Any]:
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise PolicyError(f"'{source}' must be a mapping of threshold names to integers")
    values: Dict[str, Any] = {}
    for key, value in section.items():
        if key in POLICY_KEYS:
            values[key] = value
        else:
            logger.warning(f"Ignoring unknown policy key '{key}' in '{source}'.")
    return values


def load_policy(config_path: Optional[str] = None, profile: Optional[str] = None) -> CoveragePolicy:
    """
    Load a coverage policy from YAML. Accepts:
      coverage:
        min_comparisons_per_pair: 3
        min_comparisons_per_reviewer: 5
        max_comparisons_per_reviewer: 15
      profiles:
        seminar:
          min_comparisons_per_pair: 2

    The 'coverage' section overrides the built-in defaults; a selected profile
    is layered on top of it. A missing file yields the defaults.

    Raises:
        PolicyError: If the profile is unknown or the resulting thresholds are invalid.
    """
    data: Any = {}
    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    elif config_path:
        logger.warning(f"Policy file not found: {config_path}. Using default thresholds.")

    if not isinstance(data, dict):
        raise PolicyError(f"Policy file {config_path} must contain a mapping at the top level")

    values = _policy_values(data.get("coverage"), "coverage")
    name = DEFAULT_POLICY.name
    if profile:
        profiles = data.get("profiles") or {}
        if not isinstance(profiles, dict):
            raise PolicyError("'profiles' must be a mapping of profile names to thresholds")
        # YAML may load keys such as 2024 as ints
        by_name = {str(key): section for key, section in profiles.items()}
        if str(profile) not in by_name:
            raise PolicyError(f"Unknown policy profile: {profile}")
        values.update(_policy_values(by_name[str(profile)], f"profiles.{profile}"))
        name = profile

    policy = replace(DEFAULT_POLICY, name=name, **values)
    logger.debug(f"Loaded coverage policy {policy}")
    return policy
