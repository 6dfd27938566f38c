"""Imageboard API client – jittered, rate-limit-aware HTTP fetcher."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable

import httpx

from .config import ApiConfig
from .errors import NotFoundError, TransientError

logger = logging.getLogger("threadwatch.api")


class ForumAPI:
    """Thin wrapper around the board's JSON API.

    This is the only component that talks to the network.  A 429 answer is
    retried after a 30–40s jittered pause for as long as it takes; a 404 is
    raised as :class:`NotFoundError`; anything else that is not a success
    becomes :class:`TransientError`.
    """

    def __init__(
        self,
        cfg: ApiConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.cfg = cfg or ApiConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._client = httpx.Client(
            timeout=self.cfg.timeout,
            follow_redirects=True,
            transport=transport,
        )

    # ── identity & pacing ────────────────────────────────────────

    def _user_agent(self) -> str:
        return self._rng.choice(self.cfg.user_agents)

    def _jitter(self, low: float, high: float) -> None:
        self._sleep(self._rng.uniform(low, high))

    def pause(self) -> None:
        """Sleep between independent requests of a batch."""
        self._jitter(self.cfg.request_delay_min, self.cfg.request_delay_max)

    # ── requests ─────────────────────────────────────────────────

    def _get(self, url: str) -> httpx.Response:
        while True:
            try:
                resp = self._client.get(url, headers={"User-Agent": self._user_agent()})
            except httpx.TransportError as exc:
                raise TransientError(f"Request to {url} failed: {exc}") from exc

            if resp.status_code == 429:
                logger.info("Rate limited on %s, backing off", url)
                self._jitter(self.cfg.rate_limit_delay_min, self.cfg.rate_limit_delay_max)
                continue
            if resp.status_code == 404:
                raise NotFoundError(url)
            if resp.is_error:
                raise TransientError(
                    f"HTTP {resp.status_code} for {url}", status_code=resp.status_code
                )
            return resp

    def get_json(self, path: str) -> Any:
        url = f"{self.cfg.api_base}/{self.cfg.board}/{path.lstrip('/')}"
        logger.debug("Fetching: %s", url)
        resp = self._get(url)
        try:
            return resp.json()
        except ValueError as exc:
            raise TransientError(f"Invalid JSON from {url}") from exc

    # ── public API ───────────────────────────────────────────────

    def get_catalog(self) -> list[dict]:
        """Fetch the board catalog (list of pages with thread summaries)."""
        data = self.get_json("catalog.json")
        return data if data else []

    def get_thread(self, thread_no: int) -> dict:
        """Fetch a full thread (OP + all replies)."""
        return self.get_json(f"thread/{thread_no}.json")

    def download_media(self, tim: int, ext: str) -> bytes:
        """Download a full-size attachment from the media host."""
        url = f"{self.cfg.media_base}/{self.cfg.board}/{tim}{ext}"
        return self._get(url).content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ForumAPI:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
