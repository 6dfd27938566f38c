"""
Tests for catalog sampling.

Behavioral tests: sticky/closed exclusion, the three ranked views and the
deduplicated, id-descending union.
"""

import random

from threadwatch.catalog import flatten_catalog, select_candidates
from threadwatch.models import CatalogEntry


def _entries(*specs):
    return [CatalogEntry(no=no, replies=replies, **extra) for no, replies, extra in specs]


class TestSelectCandidates:
    def test_five_thread_scenario(self):
        """Top-3 by replies plus top-3 newest still yields all 5 ids once."""
        entries = _entries(*[(no, replies, {}) for no, replies in zip([1, 2, 3, 4, 5], [50, 40, 30, 20, 10])])

        result = select_candidates(entries, limit=3)

        assert [e.no for e in result] == [5, 4, 3, 2, 1]

    def test_top_view_takes_highest_reply_counts(self):
        entries = _entries(*[(no, replies, {}) for no, replies in zip(range(1, 11), [50, 40, 30, 20, 10, 5, 4, 3, 2, 1])])

        result = select_candidates(entries, limit=3)
        ids = {e.no for e in result}

        assert {1, 2, 3} <= ids
        assert {10, 9, 8} <= ids
        assert len(ids) == 6

    def test_sticky_and_closed_threads_excluded(self):
        entries = _entries((1, 500, {"sticky": True}), (2, 400, {"closed": True}), (3, 1, {}))

        result = select_candidates(entries, limit=25)

        assert [e.no for e in result] == [3]

    def test_video_threads_do_not_enter_image_view(self):
        entries = [CatalogEntry(no=n, replies=0) for n in range(100, 110)]
        entries.append(CatalogEntry(no=1, replies=0, tim=111, ext=".webm"))
        entries.append(CatalogEntry(no=2, replies=0, tim=222, ext=".jpg"))

        ids = {e.no for e in select_candidates(entries, limit=2)}

        assert 2 in ids
        assert 1 not in ids

    def test_no_duplicates_and_bounded_size(self):
        rng = random.Random(7)
        entries = [
            CatalogEntry(
                no=rng.randint(1, 500),
                replies=rng.randint(0, 300),
                tim=rng.choice([None, 1]),
                ext=rng.choice([".jpg", ".webm", ".png"]),
                sticky=rng.random() < 0.05,
            )
            for _ in range(300)
        ]
        for limit in (1, 5, 25):
            result = select_candidates(entries, limit=limit)
            ids = [e.no for e in result]
            assert len(ids) == len(set(ids))
            assert len(ids) <= 3 * limit
            assert ids == sorted(ids, reverse=True)

    def test_empty_catalog(self):
        assert select_candidates([], limit=25) == []


class TestFlattenCatalog:
    def test_flattens_pages_in_order(self):
        pages = [
            {"page": 1, "threads": [{"no": 10, "replies": 3, "sticky": 1}, {"no": 9}]},
            {"page": 2, "threads": [{"no": 8, "tim": 5, "ext": ".png"}]},
        ]

        entries = flatten_catalog(pages)

        assert [e.no for e in entries] == [10, 9, 8]
        assert entries[0].sticky is True
        assert entries[1].replies == 0
        assert entries[2].ext == ".png"

    def test_malformed_pages_and_entries_skipped(self):
        pages = [
            {"page": 1, "threads": [{"no": 7}, {"replies": 4}, "junk"]},
            "not a page",
            {"page": 3, "threads": None},
        ]

        assert [e.no for e in flatten_catalog(pages)] == [7]
        assert flatten_catalog({"page": 1}) == []
