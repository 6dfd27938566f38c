"""Media archiving – download attachments, dedupe by content hash, age-purge."""

from __future__ import annotations

import hashlib
import io
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from PIL import Image

from .api import ForumAPI
from .catalog import is_video
from .config import PathsConfig, RetentionConfig
from .errors import HarvesterError, StorageError
from .models import CategoryStats, MediaCategory, MediaFile, Post, Thread
from .storage import atomic_write_json, read_json

logger = logging.getLogger("threadwatch.media")

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})


@dataclass
class MediaRunResult:
    recent_files: list[MediaFile] = field(default_factory=list)
    category_stats: list[CategoryStats] = field(default_factory=list)
    files_processed: int = 0
    files_downloaded: int = 0
    duplicates_skipped: int = 0
    files_deleted: int = 0
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "categoryStats": [s.to_dict() for s in self.category_stats],
            "recentFiles": [f.to_dict() for f in self.recent_files],
            "metadata": {
                "totalFilesProcessed": self.files_processed,
                "filesDownloaded": self.files_downloaded,
                "duplicatesSkipped": self.duplicates_skipped,
                "filesDeleted": self.files_deleted,
                "lastPurge": self.timestamp,
            },
        }


class MediaArchiver:
    """Archive thread images on disk, one copy per distinct content hash.

    The hash → stored-path index lives in ``media/hashes.json``.  It is
    loaded once on construction and rewritten whole by :meth:`save_hashes`.
    """

    def __init__(
        self,
        api: ForumAPI,
        paths: PathsConfig | None = None,
        retention: RetentionConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.api = api
        self.paths = paths or PathsConfig.from_env()
        self.retention = retention or RetentionConfig()
        self._clock = clock
        self.file_hashes: dict[str, str] = {}
        self.duplicates_skipped = 0
        self._init_directories()
        self.load_hashes()

    def _init_directories(self) -> None:
        for category in MediaCategory:
            self.paths.media_category_dir(category.value).mkdir(parents=True, exist_ok=True)

    # ── hash index ───────────────────────────────────────────────

    def load_hashes(self) -> None:
        data = read_json(self.paths.hashes_file, default={})
        self.file_hashes = dict(data) if isinstance(data, dict) else {}
        logger.info("Loaded %d existing file hashes", len(self.file_hashes))

    def save_hashes(self) -> None:
        atomic_write_json(self.paths.hashes_file, self.file_hashes)
        logger.info("Saved %d file hashes", len(self.file_hashes))

    # ── helpers ──────────────────────────────────────────────────

    @staticmethod
    def content_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def get_dimensions(data: bytes) -> tuple[int, int] | None:
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.width, img.height
        except (OSError, ValueError):
            return None

    def _category_files(self, category: MediaCategory) -> list[Path]:
        directory = self.paths.media_category_dir(category.value)
        if not directory.exists():
            return []
        return [p for p in directory.iterdir() if p.is_file()]

    def accepts(self, post: Post, category: MediaCategory) -> bool:
        """Whether a post's attachment may be archived under ``category``."""
        if not post.has_media:
            return False
        ext = (post.ext or "").lower()
        if is_video(ext) or ext not in IMAGE_EXTENSIONS:
            return False
        if category is MediaCategory.RANDOM:
            return len(self._category_files(category)) < self.retention.max_random_images
        return True

    # ── archiving ────────────────────────────────────────────────

    def archive(self, post: Post, category: MediaCategory, thread_id: int) -> MediaFile | None:
        """Download and store one attachment.

        Returns None when the file is rejected (format, category cap) or is a
        byte-for-byte duplicate of something already archived.
        """
        if not self.accepts(post, category):
            return None

        data = self.api.download_media(post.tim, post.ext)
        digest = self.content_hash(data)
        if digest in self.file_hashes and Path(self.file_hashes[digest]).exists():
            logger.debug("Skipping duplicate file: %s%s", post.filename, post.ext)
            self.duplicates_skipped += 1
            return None

        timestamp = int(self._clock() * 1000)
        stored_name = f"{timestamp}_{post.tim}{post.ext}"
        target = self.paths.media_category_dir(category.value) / stored_name
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {target}: {exc}") from exc
        self.file_hashes[digest] = str(target)

        dims = self.get_dimensions(data)
        return MediaFile(
            filename=f"{post.filename or post.tim}{post.ext}",
            stored_name=stored_name,
            category=category,
            thread_id=thread_id,
            post_id=post.no or thread_id,
            content_hash=digest,
            file_size=len(data),
            width=dims[0] if dims else post.w,
            height=dims[1] if dims else post.h,
            timestamp=timestamp,
        )

    def process_thread(self, thread: Thread, *, pause: Callable[[], None] | None = None) -> list[MediaFile]:
        """Archive the origin image as OP and reply images as RANDOM.

        ``pause`` runs after every download attempt.
        """
        jobs = [(thread.origin_post(), MediaCategory.OP)]
        jobs += [(post, MediaCategory.RANDOM) for post in thread.posts]

        archived = []
        for post, category in jobs:
            if not self.accepts(post, category):
                continue
            try:
                media_file = self.archive(post, category, thread.no)
            except HarvesterError as exc:
                logger.error("Error downloading file from post %d: %s", post.no, exc)
                continue
            finally:
                if pause is not None:
                    pause()
            if media_file:
                archived.append(media_file)
        return archived

    # ── retention & stats ────────────────────────────────────────

    def purge_older_than(self, age_limit_ms: float | None = None) -> int:
        """Delete archived files whose mtime is older than the limit."""
        if age_limit_ms is None:
            age_limit_ms = self.retention.media_age_limit_hours * 3600 * 1000
        now = self._clock()
        deleted = 0
        for category in MediaCategory:
            for path in self._category_files(category):
                try:
                    if (now - path.stat().st_mtime) * 1000 > age_limit_ms:
                        path.unlink()
                        deleted += 1
                except OSError as exc:
                    logger.error("Could not purge %s: %s", path, exc)

        stale = [h for h, p in self.file_hashes.items() if not Path(p).exists()]
        for digest in stale:
            del self.file_hashes[digest]
        return deleted

    def category_stats(self) -> list[CategoryStats]:
        stats = []
        now = int(self._clock() * 1000)
        for category in MediaCategory:
            files = self._category_files(category)
            stats.append(
                CategoryStats(
                    category=category,
                    file_count=len(files),
                    total_size=sum(p.stat().st_size for p in files),
                    last_updated=now,
                )
            )
        return stats

    # ── batch entry point ────────────────────────────────────────

    def analyze(self, threads: list[Thread], *, pause: Callable[[], None] | None = None) -> MediaRunResult:
        """Archive media for a batch of threads, purge, persist the index."""
        logger.info("Starting media analysis...")
        self.duplicates_skipped = 0
        result = MediaRunResult()
        downloaded: list[MediaFile] = []

        for thread in threads:
            result.files_processed += int(thread.has_media) + sum(1 for p in thread.posts if p.has_media)
            downloaded.extend(self.process_thread(thread, pause=pause))

        result.files_deleted = self.purge_older_than()
        logger.info("Deleted %d old files", result.files_deleted)
        self.save_hashes()

        result.files_downloaded = len(downloaded)
        result.duplicates_skipped = self.duplicates_skipped
        result.recent_files = sorted(downloaded, key=lambda f: f.timestamp, reverse=True)[
            : self.retention.max_recent_files
        ]
        result.category_stats = self.category_stats()
        result.timestamp = int(self._clock() * 1000)
        atomic_write_json(self.paths.analyzer_results_file("media"), {"results": [result.to_dict()]})
        return result
