"""Core pipeline – orchestrates API → snapshots → media → analyzers."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .api import ForumAPI
from .catalog import flatten_catalog, select_candidates
from .config import HarvesterConfig
from .errors import HarvesterError, StorageError
from .llm import TextGenerator
from .media import MediaArchiver
from .mentions import TermMentionAnalyzer
from .models import CatalogEntry, Thread
from .selection import select_threads
from .storage import SnapshotStore, atomic_write_json, read_json
from .summarizer import Summarizer
from .threads import Failed, Found, Pruned, materialize_thread

logger = logging.getLogger("threadwatch.core")


class Harvester:
    """Runs one scrape or summarize pass over the configured board."""

    def __init__(
        self,
        cfg: HarvesterConfig | None = None,
        *,
        api: ForumAPI | None = None,
        generator: TextGenerator | None = None,
    ) -> None:
        self.cfg = cfg or HarvesterConfig()
        self.cfg.paths.ensure()
        self.api = api or ForumAPI(self.cfg.api)
        self.store = SnapshotStore(self.cfg.paths)
        self.media = MediaArchiver(self.api, self.cfg.paths, self.cfg.retention) if self.cfg.download_images else None
        self.mentions = TermMentionAnalyzer(self.cfg.retention.tracked_term, self.cfg.retention.max_mentions)
        self._generator = generator
        self.stats = {"threads": 0, "pruned": 0, "failed": 0, "purged": 0, "images": 0, "mentions": 0}

    # ── stages ───────────────────────────────────────────────────

    def get_target_threads(self) -> list[CatalogEntry]:
        """Fetch the catalog and sample the candidate threads."""
        try:
            pages = self.api.get_catalog()
        except HarvesterError as exc:
            logger.error("Error fetching catalog: %s", exc)
            return []
        return select_candidates(flatten_catalog(pages), self.cfg.retention.candidates_per_view)

    def collect(self, candidates: list[CatalogEntry]) -> list[Thread]:
        """Materialize and save each candidate, one at a time."""
        collected: list[Thread] = []
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
        ) as progress:
            task = progress.add_task(f"/{self.cfg.api.board}/ threads", total=len(candidates))
            for entry in candidates:
                result = materialize_thread(self.api, entry.no)
                if isinstance(result, Found):
                    try:
                        self.store.save(result.thread)
                        collected.append(result.thread)
                        self.stats["threads"] += 1
                    except StorageError as exc:
                        logger.error("Error saving thread %d: %s", entry.no, exc)
                        self.stats["failed"] += 1
                elif isinstance(result, Pruned):
                    self.stats["pruned"] += 1
                elif isinstance(result, Failed):
                    self.stats["failed"] += 1
                self.api.pause()
                progress.advance(task)
        return collected

    def run_analyzers(self, threads: list[Thread]) -> None:
        if self.media is not None:
            try:
                media_result = self.media.analyze(threads, pause=self.api.pause)
                self.stats["images"] += media_result.files_downloaded
            except HarvesterError as exc:
                logger.error("Media analysis failed: %s", exc)

        mention_result = self.mentions.analyze(threads)
        self.stats["mentions"] = mention_result.posts_with_term
        try:
            self._append_result(self.mentions.name, mention_result.to_dict())
        except StorageError as exc:
            logger.error("Could not save %s results: %s", self.mentions.name, exc)

    def _append_result(self, analyzer: str, result: dict[str, Any]) -> None:
        path = self.cfg.paths.analyzer_results_file(analyzer)
        atomic_write_json(path, {"results": [result, *self._load_results(path)]})

    @staticmethod
    def _load_results(path: Path) -> list[dict[str, Any]]:
        """Result entries from an analyzer file; anything malformed is dropped."""
        data = read_json(path, default={})
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            if data:
                logger.warning("Ignoring malformed results file %s", path)
            return []
        return [r for r in results if isinstance(r, dict)]

    def purge_old_results(self, now: float | None = None) -> int:
        """Drop analyzer result entries older than the thread age limit."""
        now_ms = (now if now is not None else time.time()) * 1000
        cutoff = now_ms - self.cfg.retention.thread_age_limit_hours * 3600 * 1000
        dropped = 0
        for path in self.cfg.paths.analysis_dir.glob("*/results.json"):
            results = self._load_results(path)
            kept = [r for r in results if isinstance(r.get("timestamp"), (int, float)) and r["timestamp"] >= cutoff]
            if len(kept) != len(results):
                dropped += len(results) - len(kept)
                try:
                    atomic_write_json(path, {"results": kept})
                except StorageError as exc:
                    logger.error("Could not prune %s: %s", path, exc)
        return dropped

    def purge(self) -> int:
        removed = self.store.purge_older_than(self.cfg.retention.thread_age_limit_hours)
        self.stats["purged"] += len(removed)
        return len(removed)

    # ── entry points ─────────────────────────────────────────────

    def scrape(self) -> None:
        """Fetch, materialize, archive, analyze and purge.

        Per-thread and per-file failures are logged and never abort the
        batch.
        """
        logger.info("Starting /%s/ scraper...", self.cfg.api.board)
        self.purge()

        candidates = self.get_target_threads()
        logger.info("Found %d threads to process", len(candidates))
        collected = self.collect(candidates)

        logger.info("Thread collection complete. Running analyzers...")
        self.run_analyzers(collected)
        self.purge_old_results()
        logger.info("Scraping and analysis complete!")

    def summarize(self) -> dict[str, Any]:
        """Select 12 local threads and run the LLM summarizer over them.

        Raises:
            ConfigurationError: no API key configured.
            InsufficientDataError: the local snapshots cannot fill the quotas.
        """
        generator = self._generator or TextGenerator(self.cfg.llm)
        all_threads = self.store.load_all()
        logger.info("Loaded %d threads", len(all_threads))
        selection = select_threads(all_threads)
        summarizer = Summarizer(generator, self.cfg.paths, self.cfg.trends)
        return summarizer.summarize(selection.all())

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self.api.close()

    def __enter__(self) -> Harvester:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
