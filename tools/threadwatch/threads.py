"""Thread materialization – full post history into a canonical Thread."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from .api import ForumAPI
from .errors import NotFoundError, ParseError, TransientError
from .models import ANONYMOUS, Post, Thread

logger = logging.getLogger("threadwatch.threads")

# "03/15/25(Sat)10:49:41"
_DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{2})\([^)]+\)(\d{2}):(\d{2}):(\d{2})")


@dataclass(frozen=True)
class Found:
    thread: Thread


@dataclass(frozen=True)
class Pruned:
    thread_id: int


@dataclass(frozen=True)
class Failed:
    thread_id: int
    reason: str


MaterializeResult = Union[Found, Pruned, Failed]


def parse_thread_date(text: str | None, now: datetime | None = None) -> datetime:
    """Parse the board's ``MM/DD/YY(Day)HH:MM:SS`` date string.

    The two-digit year lands in the current century unless that would put
    the date in the future, in which case the previous century is used.
    """
    if not text:
        raise ParseError("missing date string")
    match = _DATE_RE.search(text)
    if not match:
        raise ParseError(f"unrecognised date string: {text!r}")

    month, day, year, hours, minutes, seconds = (int(g) for g in match.groups())
    now = now or datetime.now()
    full_year = (now.year // 100) * 100 + year
    try:
        parsed = datetime(full_year, month, day, hours, minutes, seconds)
        if parsed > now:
            parsed = parsed.replace(year=full_year - 100)
    except ValueError as exc:
        raise ParseError(f"invalid date {text!r}: {exc}") from exc
    return parsed


def thread_age_hours(thread: Thread | dict, now: datetime | None = None) -> float:
    """Age of a thread from its origin date; 0 when the date is unusable."""
    if isinstance(thread, Thread):
        text = thread.now
    elif isinstance(thread, dict):
        text = thread.get("now")
    else:
        text = None
    now = now or datetime.now()
    try:
        created = parse_thread_date(text, now=now)
    except ParseError:
        return 0.0
    return (now - created).total_seconds() / 3600


def build_thread(posts: list[dict], *, fetched_at: float | None = None) -> Thread:
    """Build a Thread from the raw post list (origin first)."""
    if not posts or not isinstance(posts, list):
        raise ParseError("thread has no posts")
    op, *replies = posts
    if not isinstance(op, dict) or not op.get("now"):
        raise ParseError("origin post missing 'now' field")
    parse_thread_date(op["now"])

    try:
        reply_posts = [Post.from_dict(p) for p in replies]
        return Thread(
            no=int(op["no"]),
            time=int(op.get("time", 0) or 0),
            now=op["now"],
            name=op.get("name") or ANONYMOUS,
            com=op.get("com") or "",
            sub=op.get("sub"),
            tim=op.get("tim"),
            ext=op.get("ext"),
            filename=op.get("filename"),
            fsize=int(op.get("fsize", 0) or 0),
            w=int(op.get("w", 0) or 0),
            h=int(op.get("h", 0) or 0),
            replies=len(reply_posts),
            images=sum(1 for p in reply_posts if p.has_media),
            posts=reply_posts,
            last_modified=fetched_at if fetched_at is not None else time.time(),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ParseError(f"malformed post data: {exc!r}") from exc


def materialize_thread(api: ForumAPI, thread_no: int) -> MaterializeResult:
    """Fetch and normalize one thread.

    Never raises for per-thread problems: a 404 yields :class:`Pruned`,
    fetch or parse problems yield :class:`Failed`.
    """
    try:
        data = api.get_thread(thread_no)
    except NotFoundError:
        logger.info("Thread %d was pruned", thread_no)
        return Pruned(thread_no)
    except TransientError as exc:
        logger.error("Error fetching thread %d: %s", thread_no, exc)
        return Failed(thread_no, str(exc))

    try:
        if not isinstance(data, dict):
            raise ParseError(f"unexpected response body: {type(data).__name__}")
        thread = build_thread(data.get("posts", []))
    except ParseError as exc:
        logger.error("Thread %d rejected: %s", thread_no, exc)
        return Failed(thread_no, str(exc))
    return Found(thread)
