"""
Shared pytest fixtures.

HTTP is faked with httpx.MockTransport, the filesystem lives under tmp_path
and every sleep is recorded instead of slept.
"""

from __future__ import annotations

import httpx
import pytest

from helpers import SleepRecorder
from threadwatch.api import ForumAPI
from threadwatch.config import (
    ApiConfig,
    HarvesterConfig,
    LLMConfig,
    PathsConfig,
    RetentionConfig,
    TrendConfig,
)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def paths(tmp_path) -> PathsConfig:
    cfg = PathsConfig(data_dir=tmp_path / "data")
    cfg.ensure()
    return cfg


@pytest.fixture
def config(paths) -> HarvesterConfig:
    return HarvesterConfig(
        api=ApiConfig(),
        paths=paths,
        retention=RetentionConfig(),
        trends=TrendConfig(),
        llm=LLMConfig(),
    )


@pytest.fixture
def make_api(sleeper):
    """Build a ForumAPI whose requests are answered by ``handler``."""
    clients: list[ForumAPI] = []

    def factory(handler, cfg: ApiConfig | None = None) -> ForumAPI:
        api = ForumAPI(cfg or ApiConfig(), transport=httpx.MockTransport(handler), sleep=sleeper)
        clients.append(api)
        return api

    yield factory
    for api in clients:
        api.close()
