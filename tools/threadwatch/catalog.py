"""Catalog sampling – pick a stable candidate set across activity views."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .models import CatalogEntry

logger = logging.getLogger("threadwatch.catalog")

VIDEO_EXTENSIONS = frozenset({".webm", ".mp4", ".mov", ".avi", ".wmv", ".flv"})


def is_video(ext: str | None) -> bool:
    return bool(ext) and ext.lower() in VIDEO_EXTENSIONS


def flatten_catalog(pages: Any) -> list[CatalogEntry]:
    """Turn catalog pages (``[{"page": n, "threads": [...]}]``) into entries.

    Malformed pages and entries are skipped.
    """
    entries = []
    for page in pages if isinstance(pages, list) else []:
        threads = page.get("threads") if isinstance(page, dict) else None
        for item in threads if isinstance(threads, list) else []:
            try:
                entries.append(CatalogEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed catalog entry %r: %s", item, exc)
    return entries


def select_candidates(entries: Iterable[CatalogEntry], limit: int = 25) -> list[CatalogEntry]:
    """Union of the most-replied, newest-with-image and newest threads.

    Sticky and closed threads never qualify.  Each view is capped at
    ``limit``; the union holds each id once and is sorted by id descending.
    """
    live = [e for e in entries if not e.sticky and not e.closed]

    top = sorted(live, key=lambda e: e.replies, reverse=True)[:limit]
    with_images = sorted(
        (e for e in live if e.tim and not is_video(e.ext)),
        key=lambda e: e.no,
        reverse=True,
    )[:limit]
    newest = sorted(live, key=lambda e: e.no, reverse=True)[:limit]

    unique: dict[int, CatalogEntry] = {}
    for entry in (*top, *with_images, *newest):
        unique.setdefault(entry.no, entry)

    logger.debug(
        "Catalog views: %d top, %d with images, %d newest -> %d unique",
        len(top), len(with_images), len(newest), len(unique),
    )
    return sorted(unique.values(), key=lambda e: e.no, reverse=True)
