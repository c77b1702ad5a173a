from .rules import (
    matches_excluded_keyword,
    drop_excluded,
    log_exclusion_metrics,
)

__all__ = [
    "matches_excluded_keyword",
    "drop_excluded",
    "log_exclusion_metrics",
]
