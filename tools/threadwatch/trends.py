"""Delusional-percentage statistics and the downsampled trend history."""

from __future__ import annotations

import logging
import statistics
import time
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterable

from .config import TrendConfig
from .models import ArticleStats, DelusionalStatistics, TrendPoint
from .storage import atomic_write_json, read_json

logger = logging.getLogger("threadwatch.trends")

HOUR_MS = 60 * 60 * 1000


def compute_statistics(samples: Iterable[ArticleStats]) -> DelusionalStatistics:
    """Mean and median of per-thread percentages plus summed counts."""
    samples = list(samples)
    if not samples:
        return DelusionalStatistics(mean=0.0, median=0.0, total_analyzed=0, total_delusional=0)
    percentages = [s.percentage for s in samples]
    return DelusionalStatistics(
        mean=statistics.fmean(percentages),
        median=statistics.median(percentages),
        total_analyzed=sum(s.analyzed_comments for s in samples),
        total_delusional=sum(s.delusional_comments for s in samples),
    )


class TrendAggregator:
    """Append-only trend series with hourly downsampling.

    A new point is added at most once per ``min_interval_seconds``; the
    stored series keeps ``hours_to_keep`` hours and no more than
    ``max_per_hour`` points in any hour bucket.
    """

    def __init__(
        self,
        path: Path,
        cfg: TrendConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.cfg = cfg or TrendConfig()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def load(self) -> list[TrendPoint]:
        data = read_json(self.path, default=[])
        if not isinstance(data, list):
            return []
        points = []
        for item in data:
            try:
                points.append(TrendPoint.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Dropping malformed trend point: %r", item)
        return sorted(points, key=lambda p: p.timestamp)

    def save(self, series: list[TrendPoint], now: int | None = None) -> list[TrendPoint]:
        cleaned = self.compact(series, now)
        atomic_write_json(self.path, [p.to_dict() for p in cleaned])
        return cleaned

    def compact(self, series: Iterable[TrendPoint], now: int | None = None) -> list[TrendPoint]:
        now = self._now_ms() if now is None else now
        cutoff = now - self.cfg.hours_to_keep * HOUR_MS

        by_timestamp: dict[int, TrendPoint] = {}
        for point in series:
            if point.timestamp > cutoff:
                by_timestamp[point.timestamp] = point

        by_hour: dict[int, list[TrendPoint]] = defaultdict(list)
        for point in by_timestamp.values():
            by_hour[point.timestamp // HOUR_MS].append(point)

        kept: list[TrendPoint] = []
        for bucket in by_hour.values():
            bucket.sort(key=lambda p: p.timestamp, reverse=True)
            kept.extend(bucket[: self.cfg.max_per_hour])

        kept.sort(key=lambda p: p.timestamp)
        return kept[-self.cfg.max_stored:]

    def should_update(self, series: list[TrendPoint], now: int | None = None) -> bool:
        if not series:
            return True
        now = self._now_ms() if now is None else now
        return now - series[-1].timestamp >= self.cfg.min_interval_seconds * 1000

    def update_trend(self, samples: Iterable[ArticleStats], now: int | None = None) -> list[TrendPoint]:
        """Append one point for this batch unless the last one is too recent."""
        samples = list(samples)
        series = self.load()
        now = self._now_ms() if now is None else now
        if not samples or not self.should_update(series, now):
            return series

        point = TrendPoint(
            timestamp=now,
            percentage=compute_statistics(samples).mean,
            thread_count=len(samples),
        )
        logger.info("Recording trend point: %.2f%% over %d threads", point.percentage, point.thread_count)
        return self.save([*series, point], now)
