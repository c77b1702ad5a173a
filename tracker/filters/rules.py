from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from tracker.core.normalize import NormalizedListing

LOGGER = logging.getLogger(__name__)


def _term_pattern(term: str) -> re.Pattern[str] | None:
    term = " ".join((term or "").split())
    if not term:
        return None
    # Whole-word match so "java" does not exclude "javascript"
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE)


def matches_excluded_keyword(job: NormalizedListing, terms: Iterable[str]) -> str | None:
    """Return the first excluded term found in title/company/description, if any."""
    haystack = " ".join(
        part for part in (job.title, job.company, job.description or "") if part
    )
    for term in terms:
        pattern = _term_pattern(term)
        if pattern is not None and pattern.search(haystack):
            return term
    return None


def drop_excluded(
    platform: str,
    jobs: Sequence[NormalizedListing],
    terms: Sequence[str],
) -> list[NormalizedListing]:
    """Filter out listings mentioning any excluded keyword.

    Neither supported platform accepts exclusions natively, so they are applied
    to the normalized page after the fact.
    """
    if not terms:
        return list(jobs)

    kept: list[NormalizedListing] = []
    excluded = 0
    for job in jobs:
        hit = matches_excluded_keyword(job, terms)
        if hit is not None:
            excluded += 1
            LOGGER.debug(
                "exclude-filter drop platform=%s external_id=%s term=%s",
                platform,
                job.external_id,
                hit,
            )
            continue
        kept.append(job)
    log_exclusion_metrics(platform, len(kept), excluded)
    return kept


def log_exclusion_metrics(platform: str, kept: int, excluded: int) -> None:
    LOGGER.info(
        "exclude-filter platform=%s kept=%s excluded=%s",
        platform,
        kept,
        excluded,
    )
