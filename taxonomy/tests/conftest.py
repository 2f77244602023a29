"""
tests/conftest.py
──────────────────────────────────────────────────────────────────────────────
Shared pytest fixtures and the in-memory store.

InMemoryTaxonomyStore implements TaxonomyStorePort via structural subtyping —
it does NOT inherit from any base class.  It answers range_query with the same
open-interval (created_at, id) semantics the Postgres adapter expresses in SQL,
so service logic is tested without a database.

Fixture data (model MODEL_ID):

  ISCOGroup  g-1  "2"        ← root
  ISCOGroup  g-2  "2654"     ← child of g-1
  LocalGroup g-3  "26AB"     ← child of g-2
  ESCOOcc    o-1  "2654.1"   ← child of g-2;  requires s-1 (essential), s-2 (—)
  ESCOOcc    o-2  "2654.1.7" ← child of o-1
  LocalOcc   o-3  "2654.1_1" ← child of o-1
  LocalOcc   o-4  "ABC_1"    ← child of g-3;  requires s-1 (—, 0.5), s-2 (optional)
  ESCOOcc    o-5  "2654.2"   ← child of g-2

Occupations are created one hour apart, o-1 oldest.

Fixture hierarchy:
  settings  → test Settings
  model_id, t0, make_group, make_occupation → seed constants and factories
  store     → fresh InMemoryTaxonomyStore seeded with the data above
  empty_store → InMemoryTaxonomyStore with nothing in it
  fetcher   → KeysetPageFetcher(store)
  resolver  → HierarchyRelationResolver(store)
  paginator → TaxonomyPaginator wired by services/container.build_paginator
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from taxonomy.config.settings import Settings
from taxonomy.domain.cursor import Cursor
from taxonomy.domain.models import Collection, Scope
from taxonomy.services.container import build_paginator
from taxonomy.services.page_fetcher import KeysetPageFetcher
from taxonomy.services.relation_resolver import HierarchyRelationResolver

MODEL_ID = "64f000000000000000000001"
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ── Record builders ────────────────────────────────────────────────────────

def _uuid(n: int) -> str:
    return f"00000000-0000-4000-8000-{n:012d}"


def group_record(
    entity_id: str,
    code: str,
    group_type: str = "ISCOGroup",
    created_at: datetime = T0,
    model_id: str = MODEL_ID,
    n: int = 0,
) -> dict:
    return {
        "id": entity_id,
        "uuid": _uuid(n),
        "uuid_history": [_uuid(n)],
        "model_id": model_id,
        "created_at": created_at,
        "updated_at": created_at,
        "group_type": group_type,
        "code": code,
        "preferred_label": f"Group {code}",
        "alt_labels": [],
        "description": "",
        "origin_uri": "",
    }


def occupation_record(
    entity_id: str,
    code: str,
    occupation_type: str = "ESCOOccupation",
    group_code: str = "2654",
    created_at: datetime = T0,
    model_id: str = MODEL_ID,
    n: int = 0,
) -> dict:
    return {
        "id": entity_id,
        "uuid": _uuid(n),
        "uuid_history": [_uuid(1000 + n), _uuid(n)],
        "model_id": model_id,
        "created_at": created_at,
        "updated_at": created_at,
        "occupation_type": occupation_type,
        "code": code,
        "occupation_group_code": group_code,
        "preferred_label": f"Occupation {code}",
        "alt_labels": [],
        "definition": "",
        "description": "",
        "regulated_profession_note": "",
        "scope_note": "",
        "origin_uri": "",
        "is_localized": occupation_type == "LocalOccupation",
    }


# ── In-memory store ────────────────────────────────────────────────────────

class InMemoryTaxonomyStore:
    """Fake TaxonomyStorePort backed by plain lists."""

    def __init__(self) -> None:
        self.entities: dict[Collection, list[dict]] = {c: [] for c in Collection}
        self.edges: list[tuple[str, str, str, str]] = []
        self.skills: dict[str, dict] = {}
        self.skill_relations: list[dict] = []
        self.range_calls: list[tuple] = []

    # Seeding helpers

    def add(self, collection: Collection, record: dict) -> None:
        self.entities[collection].append(record)

    def link(self, parent_id: str, parent_type: str, child_id: str, child_type: str) -> None:
        self.edges.append((parent_id, parent_type, child_id, child_type))

    def require(self, occupation_id: str, skill_id: str, **metadata) -> None:
        self.skill_relations.append(
            {"occupation_id": occupation_id, "skill_id": skill_id, **metadata}
        )

    # TaxonomyStorePort

    def range_query(
        self,
        scope: Scope,
        after: Optional[Cursor],
        count: int,
        descending: bool,
    ) -> list[dict]:
        self.range_calls.append((scope, after, count, descending))
        rows = [r for r in self.entities[scope.collection] if r["model_id"] == scope.model_id]
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=descending)
        if after is not None:
            boundary = (after.created_at, after.id)
            if descending:
                rows = [r for r in rows if (r["created_at"], r["id"]) < boundary]
            else:
                rows = [r for r in rows if (r["created_at"], r["id"]) > boundary]
        return [dict(r) for r in rows[:count]]

    def fetch_by_id(self, scope: Scope, entity_id: str) -> Optional[dict]:
        for r in self.entities[scope.collection]:
            if r["model_id"] == scope.model_id and r["id"] == entity_id:
                return dict(r)
        return None

    def get_relations(self, entity_id: str) -> dict:
        parent = None
        for parent_id, parent_type, child_id, _ in self.edges:
            if child_id == entity_id:
                parent = self._node(parent_id, parent_type)
                break
        children = [
            self._node(child_id, child_type)
            for parent_id, _, child_id, child_type in self.edges
            if parent_id == entity_id
        ]
        requires_skills = [
            {
                **self.skills[rel["skill_id"]],
                "relation_type": rel.get("relation_type"),
                "signalling_value": rel.get("signalling_value"),
                "signalling_value_label": rel.get("signalling_value_label"),
            }
            for rel in self.skill_relations
            if rel["occupation_id"] == entity_id
        ]
        return {"parent": parent, "children": children, "requires_skills": requires_skills}

    def _node(self, node_id: str, object_type: str) -> dict:
        for rows in self.entities.values():
            for r in rows:
                if r["id"] == node_id:
                    return {
                        "id": r["id"],
                        "uuid": r["uuid"],
                        "code": r["code"],
                        "group_code": r.get("occupation_group_code"),
                        "preferred_label": r["preferred_label"],
                        "object_type": object_type,
                    }
        raise KeyError(node_id)


def seed_store() -> InMemoryTaxonomyStore:
    store = InMemoryTaxonomyStore()
    groups = Collection.OCCUPATION_GROUPS
    occupations = Collection.OCCUPATIONS

    store.add(groups, group_record("g-1", "2", n=1, created_at=T0))
    store.add(groups, group_record("g-2", "2654", n=2, created_at=T0 + timedelta(minutes=1)))
    store.add(groups, group_record("g-3", "26AB", "LocalGroup", n=3,
                                   created_at=T0 + timedelta(minutes=2)))

    hour = timedelta(hours=1)
    store.add(occupations, occupation_record("o-1", "2654.1", n=11, created_at=T0 + 1 * hour))
    store.add(occupations, occupation_record("o-2", "2654.1.7", n=12, created_at=T0 + 2 * hour))
    store.add(occupations, occupation_record("o-3", "2654.1_1", "LocalOccupation", "26AB",
                                             n=13, created_at=T0 + 3 * hour))
    store.add(occupations, occupation_record("o-4", "ABC_1", "LocalOccupation", "LOC1",
                                             n=14, created_at=T0 + 4 * hour))
    store.add(occupations, occupation_record("o-5", "2654.2", n=15, created_at=T0 + 5 * hour))

    store.link("g-1", "ISCOGroup", "g-2", "ISCOGroup")
    store.link("g-2", "ISCOGroup", "g-3", "LocalGroup")
    store.link("g-2", "ISCOGroup", "o-1", "ESCOOccupation")
    store.link("g-2", "ISCOGroup", "o-5", "ESCOOccupation")
    store.link("o-1", "ESCOOccupation", "o-2", "ESCOOccupation")
    store.link("o-1", "ESCOOccupation", "o-3", "LocalOccupation")
    store.link("g-3", "LocalGroup", "o-4", "LocalOccupation")

    store.skills["s-1"] = {"id": "s-1", "uuid": _uuid(21),
                           "preferred_label": "manage budgets", "is_localized": False}
    store.skills["s-2"] = {"id": "s-2", "uuid": _uuid(22),
                           "preferred_label": "use spreadsheets", "is_localized": True}
    store.require("o-1", "s-1", relation_type="essential")
    store.require("o-1", "s-2")
    store.require("o-4", "s-1", signalling_value=0.5, signalling_value_label="medium")
    store.require("o-4", "s-2", relation_type="optional")
    return store


# ── pytest fixtures ────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def settings() -> Settings:
    """Return a Settings instance with sane test defaults."""
    return Settings(
        db_dsn="dbname=taxonomy_test",
        db_statement_timeout_ms=1000,
        resources_base_url="https://taxonomy.test/api",
        max_cursor_length=1024,
    )


@pytest.fixture
def model_id() -> str:
    return MODEL_ID


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def make_group():
    """Factory for OccupationGroup storage records."""
    return group_record


@pytest.fixture
def make_occupation():
    """Factory for Occupation storage records."""
    return occupation_record


@pytest.fixture
def store() -> InMemoryTaxonomyStore:
    return seed_store()


@pytest.fixture
def empty_store() -> InMemoryTaxonomyStore:
    return InMemoryTaxonomyStore()


@pytest.fixture
def fetcher(store):
    return KeysetPageFetcher(store)


@pytest.fixture
def resolver(store):
    return HierarchyRelationResolver(store)


@pytest.fixture
def paginator(store, settings):
    return build_paginator(store, settings)


@pytest.fixture
def occupations_scope() -> Scope:
    return Scope(model_id=MODEL_ID, collection=Collection.OCCUPATIONS)
