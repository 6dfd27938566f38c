"""Tracked-term mention analysis over a batch of threads."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from .models import Post, TermMention, TermMentionResult, Thread

logger = logging.getLogger("threadwatch.mentions")


class TermMentionAnalyzer:
    """Find the most recent posts mentioning a term as a whole word.

    Matching is case-insensitive and uses ``\\b`` word boundaries, so
    "meds." and "MEDS," both count while "medsfor" does not.
    """

    name = "slur"

    def __init__(self, term: str = "meds", max_posts: int = 3, *, clock: Callable[[], float] = time.time) -> None:
        self.term = term
        self.max_posts = max_posts
        self._clock = clock
        self._pattern = re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)

    def matches(self, text: str | None) -> bool:
        return bool(text) and self._pattern.search(text) is not None

    def _scan(self, post: Post, thread: Thread, found: dict[int, TermMention]) -> None:
        if post.no in found or not self.matches(post.com):
            return
        found[post.no] = TermMention(
            post_id=post.no,
            thread_id=thread.no,
            comment=post.com,
            timestamp=post.time * 1000,
            name=post.name,
        )

    def analyze(self, threads: list[Thread]) -> TermMentionResult:
        logger.info("Starting %s mention analysis...", self.term)
        found: dict[int, TermMention] = {}
        total_posts = 0

        for thread in threads:
            if thread.com:
                self._scan(thread.origin_post(), thread, found)
                total_posts += 1
            for post in thread.posts:
                self._scan(post, thread, found)
                total_posts += 1

        ranked = sorted(found.values(), key=lambda m: (m.timestamp, m.post_id), reverse=True)
        return TermMentionResult(
            term=self.term,
            mentions=ranked[: self.max_posts],
            total_posts_analyzed=total_posts,
            posts_with_term=len(found),
            last_analysis=int(self._clock() * 1000),
        )
