"""Local snapshot storage – one JSON file per thread, atomic replace."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import PathsConfig
from .errors import StorageError
from .models import MediaCategory, Thread
from .threads import thread_age_hours

logger = logging.getLogger("threadwatch.storage")


# ── helpers ──────────────────────────────────────────────────────


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to ``<path>.tmp`` and rename it over ``path``.

    Readers see either the old file or the new one, never a partial write.
    """
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as exc:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temp file %s", tmp)
        raise StorageError(f"Failed to write {path}: {exc}") from exc


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file, returning ``default`` when it is missing or corrupt."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return default


# ── snapshot store ───────────────────────────────────────────────


class SnapshotStore:
    """Owns ``threads/<id>.json``; each save replaces the whole snapshot."""

    def __init__(self, paths: PathsConfig | None = None) -> None:
        self.paths = paths or PathsConfig.from_env()
        self.paths.threads_dir.mkdir(parents=True, exist_ok=True)

    def save(self, thread: Thread) -> Path:
        target = self.paths.thread_file(thread.no)
        atomic_write_json(target, thread.to_dict())
        logger.debug("Thread %d saved to %s", thread.no, target)
        return target

    def load(self, thread_no: int) -> Thread | None:
        data = read_json(self.paths.thread_file(thread_no))
        return Thread.from_dict(data) if isinstance(data, dict) and data else None

    def thread_ids(self) -> list[int]:
        ids = []
        for path in self.paths.threads_dir.glob("*.json"):
            if path.stem.isdigit():
                ids.append(int(path.stem))
        return sorted(ids, reverse=True)

    def count(self) -> int:
        return len(self.thread_ids())

    def load_all(self) -> list[Thread]:
        """Load every readable snapshot; broken files are skipped."""
        threads = []
        for path in sorted(self.paths.threads_dir.glob("*.json")):
            data = read_json(path)
            if not data:
                continue
            try:
                threads.append(Thread.from_dict(data))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed snapshot %s: %s", path.name, exc)
        return threads

    # ── retention ────────────────────────────────────────────────

    def _origin_media(self, data: dict) -> list[Path]:
        tim, ext = data.get("tim"), data.get("ext")
        if not tim or not ext:
            return []
        op_dir = self.paths.media_category_dir(MediaCategory.OP.value)
        return list(op_dir.glob(f"*_{tim}{ext}"))

    def purge_older_than(self, age_limit_hours: float = 72.0, now: datetime | None = None) -> list[int]:
        """Delete snapshots older than the limit, with their origin media.

        Age comes from the origin date string; a snapshot whose date cannot
        be parsed counts as age 0 and is kept.  Returns the removed ids.
        """
        removed: list[int] = []
        for path in sorted(self.paths.threads_dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    logger.error("Error processing %s: not a thread object", path.name)
                    continue
                age = thread_age_hours(data, now=now)
                if age <= age_limit_hours:
                    continue
                logger.info("Removing old thread: %s (%.1f hours old)", path.name, age)
                media = self._origin_media(data)
                path.unlink()
                for media_path in media:
                    media_path.unlink(missing_ok=True)
                removed.append(int(path.stem))
            except (OSError, ValueError) as exc:
                logger.error("Error processing %s: %s", path.name, exc)
        return removed
