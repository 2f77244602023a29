"""
tests/e2e/test_page_traversal.py
──────────────────────────────────────────────────────────────────────────────
End-to-end traversal: follow next_cursor until exhaustion through the full
paginator stack (container wiring, fetcher, resolver, cursor codec) over the
in-memory store.

Tests cover:
  • Every entity seen exactly once, in order, for any page size
  • Page size may change between calls
  • Entities inserted mid-traversal never cause a skip or a duplicate
  • Equal created_at values are split across pages without loss
"""
from __future__ import annotations

from datetime import timedelta

import pytest

from taxonomy.domain.models import Collection, PageRequest
from taxonomy.services.container import build_paginator


def _traverse(paginator, model_id, limits, descending=True, between_pages=None):
    """Walk every page; ``limits`` yields the page size for each call."""
    seen, cursor = [], None
    for call, limit in enumerate(limits):
        page = paginator.page(PageRequest(
            model_id=model_id,
            collection=Collection.OCCUPATIONS,
            cursor=cursor,
            limit=limit,
            descending=descending,
        ))
        assert len(page.items) <= limit
        seen.extend(v.entity.id for v in page.items)
        cursor = page.next_cursor
        if cursor is None:
            return seen
        assert page.items, "a page with a next cursor must not be empty"
        if between_pages:
            between_pages(call)
    raise AssertionError("traversal did not terminate")


def _repeat(limit):
    while True:
        yield limit


@pytest.fixture
def big_store(empty_store, make_occupation, model_id, t0):
    """23 occupations; every third shares its created_at with the previous one."""
    minute = 0
    for i in range(23):
        if i % 3 != 2:
            minute += 1
        empty_store.add(
            Collection.OCCUPATIONS,
            make_occupation(f"occ-{i:02d}", "2654.1", created_at=t0 + timedelta(minutes=minute), n=i),
        )
    return empty_store


def _expected(store, descending):
    rows = sorted(
        store.entities[Collection.OCCUPATIONS],
        key=lambda r: (r["created_at"], r["id"]),
        reverse=descending,
    )
    return [r["id"] for r in rows]


class TestTraversal:
    @pytest.mark.parametrize("descending", [True, False])
    @pytest.mark.parametrize("limit", [1, 2, 5, 22, 23, 24, 100])
    def test_no_loss_no_duplication(self, big_store, settings, model_id, limit, descending):
        paginator = build_paginator(big_store, settings)
        seen = _traverse(paginator, model_id, _repeat(limit), descending)
        assert seen == _expected(big_store, descending)

    @pytest.mark.parametrize("descending", [True, False])
    def test_varying_page_sizes(self, big_store, settings, model_id, descending):
        paginator = build_paginator(big_store, settings)
        sizes = iter([3, 1, 7, 2, 2, 100])
        seen = _traverse(paginator, model_id, sizes, descending)
        assert seen == _expected(big_store, descending)

    def test_seeded_fixture(self, paginator, model_id):
        assert _traverse(paginator, model_id, _repeat(2)) == ["o-5", "o-4", "o-3", "o-2", "o-1"]

    def test_single_item(self, empty_store, settings, make_occupation, model_id):
        empty_store.add(Collection.OCCUPATIONS, make_occupation("only", "2654.1"))
        paginator = build_paginator(empty_store, settings)
        assert _traverse(paginator, model_id, _repeat(1)) == ["only"]


class TestConcurrentInserts:
    def test_newer_inserts_invisible_to_descending_walk(
        self, big_store, settings, make_occupation, model_id, t0
    ):
        before = _expected(big_store, descending=True)
        paginator = build_paginator(big_store, settings)

        def insert_newest(call):
            big_store.add(
                Collection.OCCUPATIONS,
                make_occupation(f"new-{call}", "2654.1", created_at=t0 + timedelta(days=1, minutes=call)),
            )

        seen = _traverse(paginator, model_id, _repeat(4), between_pages=insert_newest)
        assert seen == before

    def test_older_inserts_reached_without_duplicates(
        self, big_store, settings, make_occupation, model_id, t0
    ):
        paginator = build_paginator(big_store, settings)

        def insert_oldest(call):
            big_store.add(
                Collection.OCCUPATIONS,
                make_occupation(f"old-{call}", "2654.1", created_at=t0 - timedelta(days=1, minutes=call)),
            )

        seen = _traverse(paginator, model_id, _repeat(4), between_pages=insert_oldest)
        assert len(seen) == len(set(seen))
        # Every entity present at the start is still seen exactly once
        assert [s for s in seen if s.startswith("occ-")] == [
            s for s in _expected(big_store, descending=True) if s.startswith("occ-")
        ]
        assert seen == _expected(big_store, descending=True)
