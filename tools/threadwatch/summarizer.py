"""Thread summaries, delusional-content statistics, themes and trend updates."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable

from .config import PathsConfig, TrendConfig
from .llm import TextGenerator, strip_fence
from .models import ArticleAnalysis, ArticleStats, DelusionalTheme, Thread
from .storage import atomic_write_json, read_json
from .trends import TrendAggregator, compute_statistics

logger = logging.getLogger("threadwatch.summarizer")

ARTICLE_SAMPLING: dict[str, Any] = {
    "max_tokens": 1000,
    "temperature": 0.7,
    "top_p": 0.9,
    "frequency_penalty": 0.5,
    "presence_penalty": 0.5,
}

ARTICLE_PROMPT = """You are an expert journalist summarizing online discussions.
Your task is to analyze a thread of posts and generate:
1. A clear, concise headline of 4 to 6 words.
2. A detailed article summarizing the key points and themes (175 - 200 words).

Focus on identifying paranoid and delusional thought patterns, conspiracy theories, and extreme beliefs.
Maintain a neutral, academic tone.
Always directly quote comments verbatim in quotation marks.
Never contextualize the content with words like "online" or "forum".
Format your response as:
HEADLINE: [your headline]
ARTICLE: [your article]"""

COUNT_PROMPT = """You are an expert psychiatrist analyzing online discussions.
Your task is to identify posts that exhibit signs of paranoid or delusional thinking.
Common indicators include conspiracy theories, persecution complexes, grandiose
delusions, bizarre beliefs without evidence, extreme paranoia and disorganized thinking.
Maintain strict clinical objectivity.
Respond with ONLY a number indicating how many posts contain clear delusional content."""

THEMES_PROMPT = """You are an academic researcher analyzing paranoid and delusional content patterns.
Identify exactly 5 dominant themes in the provided content.
For each theme give a clear, specific name, 3-5 relevant keywords and its frequency
(percentage of content this theme appears in).
Format your response as JSON matching this structure:
{"themes": [{"name": "theme name", "frequency": number, "keywords": ["word1", "word2"]}]}"""

_HEADLINE_RE = re.compile(r"HEADLINE:\s*(.*)")
_ARTICLE_RE = re.compile(r"ARTICLE:\s*([\s\S]*)")
_NUMBER_RE = re.compile(r"\d+")


def delusional_level(percentage: float) -> str:
    if percentage < 25:
        return "low"
    if percentage < 50:
        return "medium"
    if percentage < 75:
        return "high"
    return "extreme"


def trend_direction(current: float, previous: float | None) -> tuple[str, float]:
    if previous is None:
        return "stable", 0.0
    diff = current - previous
    direction = "up" if diff > 0 else "down" if diff < 0 else "stable"
    return direction, abs(diff)


def parse_themes(text: str) -> list[DelusionalTheme]:
    """Parse the themes JSON, fenced or plain.  Bad output gives []."""
    if not text:
        return []
    try:
        data = json.loads(strip_fence(text))
    except ValueError:
        logger.error("Theme response is not valid JSON")
        return []
    if not isinstance(data, dict):
        return []
    themes = []
    for item in data.get("themes") or []:
        try:
            themes.append(
                DelusionalTheme(
                    name=str(item["name"]),
                    frequency=float(item.get("frequency", 0)),
                    keywords=tuple(str(k) for k in item.get("keywords", [])),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed theme: %r", item)
    return themes


class Summarizer:
    """Run the daily analysis over a fixed selection of threads."""

    def __init__(
        self,
        generator: TextGenerator,
        paths: PathsConfig | None = None,
        trend_cfg: TrendConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.generator = generator
        self.paths = paths or PathsConfig.from_env()
        self._clock = clock
        self.trends = TrendAggregator(self.paths.trends_file, trend_cfg, clock=clock)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ── per-thread ───────────────────────────────────────────────

    def count_delusional(self, comments: list[str]) -> ArticleStats:
        if not comments:
            return ArticleStats(analyzed_comments=0, delusional_comments=0, percentage=0.0)
        reply = self.generator.generate(
            COUNT_PROMPT,
            f"Analyze these {len(comments)} posts for delusional content:\n\n" + "\n\n".join(comments),
            temperature=0.3,
        )
        match = _NUMBER_RE.search(reply)
        count = min(int(match.group()), len(comments)) if match else 0
        return ArticleStats(
            analyzed_comments=len(comments),
            delusional_comments=count,
            percentage=count / len(comments) * 100,
        )

    def generate_article(self, thread: Thread) -> ArticleAnalysis:
        logger.info("Generating article for thread %d...", thread.no)
        comments = [p.com for p in thread.posts if p.com]
        text = self.generator.generate(
            ARTICLE_PROMPT,
            "Analyze and summarize this thread:\n\n" + "\n\n".join(comments),
            **ARTICLE_SAMPLING,
        )
        headline = _HEADLINE_RE.search(text)
        article = _ARTICLE_RE.search(text)
        return ArticleAnalysis(
            thread_id=thread.no,
            headline=headline.group(1).strip() if headline else "Untitled Thread",
            article=article.group(1).strip() if article else "No content generated",
            stats=self.count_delusional(comments),
            generated_at=self._now_ms(),
        )

    # ── batch ────────────────────────────────────────────────────

    def generate_themes(self, articles: list[ArticleAnalysis]) -> list[DelusionalTheme]:
        if not articles:
            return []
        prompt = "\n\n".join(
            f"Thread {a.thread_id}:\nHeadline: {a.headline}\nArticle: {a.article}\n"
            f"Delusional content: {a.stats.delusional_comments} out of "
            f"{a.stats.analyzed_comments} posts ({a.stats.percentage:.2f}%)"
            for a in articles
        )
        text = self.generator.generate(
            THEMES_PROMPT,
            f"Analyze these summaries and identify exactly 5 dominant paranoid/delusional themes:\n\n{prompt}",
            temperature=0.3,
        )
        return parse_themes(text)

    def _save_delusional_stats(self, analyzed: int, percentage: float) -> None:
        previous = read_json(self.paths.delusional_file)
        if not isinstance(previous, dict):
            previous = None
        if previous:
            atomic_write_json(self.paths.previous_delusional_file, previous)
        stats = previous.get("statistics") if previous else None
        prev_pct = stats.get("percentage") if isinstance(stats, dict) else None
        if not isinstance(prev_pct, (int, float)):
            prev_pct = None
        direction, amount = trend_direction(percentage, prev_pct)
        atomic_write_json(
            self.paths.delusional_file,
            {
                "statistics": {
                    "analyzedComments": analyzed,
                    "delusionalComments": round(analyzed * percentage / 100),
                    "percentage": percentage,
                },
                "level": delusional_level(percentage),
                "trend": {"direction": direction, "amount": amount},
                "generatedAt": self._now_ms(),
            },
        )

    def summarize(self, threads: list[Thread]) -> dict[str, Any]:
        logger.info("Generating summaries for %d threads...", len(threads))
        articles = []
        for thread in threads:
            if thread.posts:
                articles.append(self.generate_article(thread))

        samples = [a.stats for a in articles]
        stats = compute_statistics(samples)
        batch_stats = {
            "totalThreads": len(articles),
            "totalAnalyzedPosts": stats.total_analyzed,
            "averageDelusionalPercentage": stats.mean,
            "generatedAt": self._now_ms(),
        }
        themes = self.generate_themes(articles)
        trend_series = self.trends.update_trend(samples)

        summary = {
            "articles": {"articles": [a.to_dict() for a in articles], "batchStats": batch_stats},
            "matrix": {
                "statistics": stats.to_dict(),
                "themes": [t.to_dict() for t in themes],
                "trends": [p.to_dict() for p in trend_series],
                "generatedAt": self._now_ms(),
            },
            "timestamp": self._now_ms(),
        }
        atomic_write_json(self.paths.summary_file, summary)
        self._save_delusional_stats(stats.total_analyzed, stats.mean)

        logger.info(
            "Analysis complete: %d posts across %d threads, mean %.2f%%, median %.2f%%, %d themes",
            stats.total_analyzed, len(articles), stats.mean, stats.median, len(themes),
        )
        return summary
