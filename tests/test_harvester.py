"""
End-to-end tests for the harvester: a scrape against a fake board and a
summarize pass over stored snapshots.
"""

import dataclasses
import io
import json
import time
from datetime import datetime

import httpx
import pytest
from PIL import Image

from helpers import board_date, json_response, make_thread
from threadwatch.errors import InsufficientDataError
from threadwatch.harvester import Harvester
from threadwatch.summarizer import ARTICLE_PROMPT, COUNT_PROMPT


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (6, 4), "white").save(buf, format="PNG")
    return buf.getvalue()


class FakeBoard:
    """Routes requests for one catalog, three threads and their media."""

    def __init__(self):
        now = datetime.now()
        self.catalog = [
            {
                "page": 1,
                "threads": [
                    {"no": 1, "replies": 5, "images": 1, "time": 1},
                    {"no": 2, "replies": 3, "time": 2},
                    {"no": 3, "replies": 1, "time": 3},
                    {"no": 4, "replies": 99, "sticky": 1, "time": 4},
                ],
            }
        ]
        self.threads = {
            1: {
                "posts": [
                    {"no": 1, "now": board_date(now), "time": int(now.timestamp()), "com": "take your meds"},
                    {"no": 11, "resto": 1, "time": int(now.timestamp()) + 5, "com": "MEDS.", "tim": 500, "ext": ".png"},
                    {"no": 12, "resto": 1, "time": int(now.timestamp()) + 9, "com": "nothing here"},
                ]
            },
            3: {"posts": [{"no": 3, "time": 3, "com": "no date"}]},
        }
        self.png = _png()
        self.requested = []

    def __call__(self, request):
        path = request.url.path
        self.requested.append(path)
        if request.url.host == "i.4cdn.org":
            return httpx.Response(200, content=self.png)
        if path == "/x/catalog.json":
            return json_response(self.catalog)
        no = int(path.rsplit("/", 1)[1].split(".")[0])
        if no in self.threads:
            return json_response(self.threads[no])
        return httpx.Response(404)


class StubGenerator:
    def __init__(self, replies):
        self.replies = replies

    def generate(self, system, user, **sampling):
        return self.replies.get(system, "")


class TestScrape:
    def test_full_pass(self, config, make_api):
        board = FakeBoard()
        harvester = Harvester(config, api=make_api(board))

        harvester.scrape()

        assert harvester.stats["threads"] == 1
        assert harvester.stats["pruned"] == 1
        assert harvester.stats["failed"] == 1
        assert harvester.stats["images"] == 1
        assert harvester.stats["mentions"] == 2
        assert "/x/thread/4.json" not in board.requested

        paths = config.paths
        assert harvester.store.thread_ids() == [1]
        assert len(list(paths.media_category_dir("RANDOM").iterdir())) == 1
        slur = json.loads(paths.analyzer_results_file("slur").read_text())
        assert [m["postId"] for m in slur["results"][0]["medsPosts"]] == [11, 1]
        media = json.loads(paths.analyzer_results_file("media").read_text())
        assert media["results"][0]["metadata"]["filesDownloaded"] == 1

    def test_results_accumulate_newest_first(self, config, make_api):
        harvester = Harvester(dataclasses.replace(config, download_images=False), api=make_api(FakeBoard()))

        harvester.scrape()
        harvester.scrape()

        slur = json.loads(config.paths.analyzer_results_file("slur").read_text())
        assert len(slur["results"]) == 2
        assert slur["results"][0]["timestamp"] >= slur["results"][1]["timestamp"]
        assert harvester.media is None

    def test_malformed_thread_does_not_stop_the_batch(self, config, make_api):
        board = FakeBoard()
        board.threads[2] = {"posts": [{"no": 2, "now": "03/15/25(Sat)10:49:41", "time": 2}, {"resto": 2, "com": "no number"}]}
        board.threads[3] = ["not", "a", "thread"]
        harvester = Harvester(config, api=make_api(board))

        harvester.scrape()

        assert harvester.store.thread_ids() == [1]
        assert harvester.stats["failed"] == 2

    def test_non_object_files_do_not_abort_scrape(self, config, make_api):
        paths = config.paths
        paths.thread_file(7).write_text("null")
        paths.analyzer_results_file("slur").write_text("[1, 2, 3]")
        harvester = Harvester(dataclasses.replace(config, download_images=False), api=make_api(FakeBoard()))

        harvester.scrape()

        assert 1 in harvester.store.thread_ids()
        slur = json.loads(paths.analyzer_results_file("slur").read_text())
        assert len(slur["results"]) == 1

    def test_catalog_failure_collects_nothing(self, config, make_api):
        harvester = Harvester(config, api=make_api(lambda request: httpx.Response(500)))

        harvester.scrape()

        assert harvester.stats["threads"] == 0
        assert harvester.store.count() == 0


class TestPurgeOldResults:
    def test_old_entries_dropped(self, config, make_api):
        harvester = Harvester(config, api=make_api(lambda request: httpx.Response(404)))
        now = time.time()
        path = config.paths.analyzer_results_file("slur")
        path.write_text(json.dumps({"results": [
            {"timestamp": int(now * 1000)},
            {"timestamp": int((now - 73 * 3600) * 1000)},
        ]}))

        assert harvester.purge_old_results(now=now) == 1
        assert len(json.loads(path.read_text())["results"]) == 1

    def test_malformed_entries_tolerated(self, config, make_api):
        harvester = Harvester(config, api=make_api(lambda request: httpx.Response(404)))
        now = time.time()
        config.paths.analyzer_results_file("media").write_text('"not an object"')
        path = config.paths.analyzer_results_file("slur")
        path.write_text(json.dumps({"results": ["junk", {"timestamp": "soon"}, {"timestamp": int(now * 1000)}]}))

        assert harvester.purge_old_results(now=now) == 1
        assert json.loads(path.read_text())["results"] == [{"timestamp": int(now * 1000)}]


class TestSummarize:
    def _store(self, harvester, reply_counts):
        for no, replies in enumerate(reply_counts, start=1):
            harvester.store.save(make_thread(no, replies=replies))

    def test_summarizes_twelve_selected_threads(self, config, make_api):
        generator = StubGenerator({ARTICLE_PROMPT: "HEADLINE: H\nARTICLE: A", COUNT_PROMPT: "0"})
        harvester = Harvester(config, api=make_api(lambda request: httpx.Response(404)), generator=generator)
        self._store(harvester, [120, 110, 100, 90, 70, 50, 40, 30, 20, 10, 5, 2, 1])

        summary = harvester.summarize()

        assert summary["articles"]["batchStats"]["totalThreads"] == 12
        assert config.paths.summary_file.exists()

    def test_too_few_threads_raises(self, config, make_api):
        harvester = Harvester(config, api=make_api(lambda request: httpx.Response(404)), generator=StubGenerator({}))
        self._store(harvester, [120, 60, 30, 5])

        with pytest.raises(InsufficientDataError):
            harvester.summarize()
        assert not config.paths.summary_file.exists()
