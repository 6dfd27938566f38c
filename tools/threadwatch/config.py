"""Configuration and environment settings for threadwatch."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.1.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:89.0) Gecko/20100101 Firefox/89.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/92.0.4515.107 Safari/537.36",
)


@dataclass(frozen=True)
class ApiConfig:
    """Imageboard API configuration.  Jitter bounds are in seconds."""
    api_base: str = "https://a.4cdn.org"
    media_base: str = "https://i.4cdn.org"
    board: str = "x"
    timeout: float = 30.0
    request_delay_min: float = 0.25
    request_delay_max: float = 0.75
    rate_limit_delay_min: float = 30.0
    rate_limit_delay_max: float = 40.0
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS

    @classmethod
    def from_env(cls) -> ApiConfig:
        return cls(
            api_base=os.getenv("API_BASE", "https://a.4cdn.org"),
            media_base=os.getenv("MEDIA_BASE", "https://i.4cdn.org"),
            board=os.getenv("BOARD", "x"),
            timeout=float(os.getenv("API_TIMEOUT", "30")),
        )


@dataclass(frozen=True)
class PathsConfig:
    """Fixed on-disk layout rooted at ``data_dir``."""
    data_dir: Path = Path("./data")

    @classmethod
    def from_env(cls) -> PathsConfig:
        return cls(data_dir=Path(os.getenv("DATA_DIR", "./data")))

    @property
    def threads_dir(self) -> Path:
        return self.data_dir / "threads"

    @property
    def media_dir(self) -> Path:
        return self.data_dir / "media"

    @property
    def hashes_file(self) -> Path:
        return self.media_dir / "hashes.json"

    @property
    def analysis_dir(self) -> Path:
        return self.data_dir / "analysis"

    @property
    def trends_file(self) -> Path:
        return self.analysis_dir / "delusional-trends.json"

    @property
    def summary_file(self) -> Path:
        return self.analysis_dir / "latest-summary.json"

    @property
    def delusional_file(self) -> Path:
        return self.analysis_dir / "latest-delusional.json"

    @property
    def previous_delusional_file(self) -> Path:
        return self.analysis_dir / "previous-delusional.json"

    def thread_file(self, thread_id: int | str) -> Path:
        return self.threads_dir / f"{thread_id}.json"

    def media_category_dir(self, category: str) -> Path:
        return self.media_dir / category

    def analyzer_results_file(self, analyzer: str) -> Path:
        return self.analysis_dir / analyzer / "results.json"

    def ensure(self) -> None:
        """Create the directory tree (idempotent)."""
        for d in (
            self.data_dir,
            self.threads_dir,
            self.media_dir,
            self.analysis_dir,
            self.analysis_dir / "slur",
            self.analysis_dir / "media",
        ):
            d.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RetentionConfig:
    thread_age_limit_hours: float = 72.0
    media_age_limit_hours: float = 72.0
    max_random_images: int = 100
    max_recent_files: int = 100
    candidates_per_view: int = 25
    tracked_term: str = "meds"
    max_mentions: int = 3

    @classmethod
    def from_env(cls) -> RetentionConfig:
        return cls(
            thread_age_limit_hours=float(os.getenv("THREAD_AGE_LIMIT_HOURS", "72")),
            media_age_limit_hours=float(os.getenv("MEDIA_AGE_LIMIT_HOURS", "72")),
            max_random_images=int(os.getenv("MAX_RANDOM_IMAGES", "100")),
            candidates_per_view=int(os.getenv("MAX_THREADS_PER_CATEGORY", "25")),
            tracked_term=os.getenv("TRACKED_TERM", "meds"),
        )


@dataclass(frozen=True)
class TrendConfig:
    """Trend history bounds: ``hours_to_keep * max_per_hour`` points at most."""
    hours_to_keep: int = 48
    max_per_hour: int = 3
    min_interval_seconds: float = 3600.0

    @property
    def max_stored(self) -> int:
        return self.hours_to_keep * self.max_per_hour


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = ""
    base_url: str = "https://api.deepseek.com"
    model: str = "deepseek-chat"
    timeout: float = 120.0

    @classmethod
    def from_env(cls) -> LLMConfig:
        return cls(
            api_key=os.getenv("DEEPSEEK_API_KEY", ""),
            base_url=os.getenv("LLM_BASE_URL", "https://api.deepseek.com"),
            model=os.getenv("LLM_MODEL", "deepseek-chat"),
        )


@dataclass
class HarvesterConfig:
    api: ApiConfig = field(default_factory=ApiConfig.from_env)
    paths: PathsConfig = field(default_factory=PathsConfig.from_env)
    retention: RetentionConfig = field(default_factory=RetentionConfig.from_env)
    trends: TrendConfig = field(default_factory=TrendConfig)
    llm: LLMConfig = field(default_factory=LLMConfig.from_env)
    download_images: bool = True
