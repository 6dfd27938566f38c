"""Pick a fixed-size, activity-balanced sample of local threads for analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import InsufficientDataError
from .models import Thread

logger = logging.getLogger("threadwatch.selection")

TOP_MIN_REPLIES = 100
MEDIUM_HIGH_MIN_REPLIES = 50
MEDIUM_MIN_REPLIES = 20
BUCKET_QUOTA = 3
EXPECTED_TOTAL = 4 * BUCKET_QUOTA


@dataclass(frozen=True)
class ThreadSelection:
    top_by_posts: list[Thread]
    medium_high_posts: list[Thread]
    medium_posts: list[Thread]
    low_posts: list[Thread]

    def all(self) -> list[Thread]:
        return [*self.top_by_posts, *self.medium_high_posts, *self.medium_posts, *self.low_posts]

    def sizes(self) -> dict[str, int]:
        return {
            "top": len(self.top_by_posts),
            "medium_high": len(self.medium_high_posts),
            "medium": len(self.medium_posts),
            "low": len(self.low_posts),
        }


def bucket_for(replies: int) -> str:
    if replies >= TOP_MIN_REPLIES:
        return "top"
    if replies >= MEDIUM_HIGH_MIN_REPLIES:
        return "medium_high"
    if replies >= MEDIUM_MIN_REPLIES:
        return "medium"
    return "low"


def select_threads(threads: list[Thread], quota: int = BUCKET_QUOTA) -> ThreadSelection:
    """Partition threads by reply count and take ``quota`` from each bucket.

    Raises:
        InsufficientDataError: when the four buckets together do not hold
            exactly ``4 * quota`` threads.
    """
    buckets: dict[str, list[Thread]] = {"top": [], "medium_high": [], "medium": [], "low": []}
    for thread in threads:
        buckets[bucket_for(thread.replies)].append(thread)

    for name, members in buckets.items():
        members.sort(key=lambda t: (t.replies, t.no), reverse=True)
        buckets[name] = members[:quota]

    selection = ThreadSelection(
        top_by_posts=buckets["top"],
        medium_high_posts=buckets["medium_high"],
        medium_posts=buckets["medium"],
        low_posts=buckets["low"],
    )
    expected = 4 * quota
    total = len(selection.all())
    if total != expected:
        raise InsufficientDataError(
            f"Expected {expected} threads for analysis, but got {total} ({selection.sizes()})",
            expected=expected,
            actual=total,
        )
    logger.info("Selected %d threads for analysis: %s", total, selection.sizes())
    return selection
