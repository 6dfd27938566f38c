"""Builders shared by the test modules."""

from __future__ import annotations

import json
from datetime import datetime, timedelta

import httpx

from threadwatch.models import Post, Thread

DATE_FORMAT = "%m/%d/%y(%a)%H:%M:%S"


def board_date(dt: datetime) -> str:
    """Format a datetime the way the board API writes ``now``."""
    return dt.strftime(DATE_FORMAT)


def make_thread(no: int, replies: int = 0, *, age_hours: float = 1.0, **kwargs) -> Thread:
    created = datetime.now() - timedelta(hours=age_hours)
    posts = [
        Post(no=no * 1000 + i, resto=no, time=int(created.timestamp()) + i, com=f"reply {i}")
        for i in range(replies)
    ]
    return Thread(
        no=no,
        time=int(created.timestamp()),
        now=board_date(created),
        replies=replies,
        posts=posts,
        **kwargs,
    )


def json_response(data, status: int = 200) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(data).encode(),
        headers={"Content-Type": "application/json"},
    )


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
