"""
adapters/postgres_store.py
──────────────────────────────────────────────────────────────────────────────
Implements TaxonomyStorePort using psycopg2.

Database layout:
  Tables : occupation_groups   (id PK, uuid, uuid_history text[], model_id,
                                created_at, updated_at, group_type, code,
                                preferred_label, alt_labels text[],
                                description, origin_uri)
           occupations         (id PK, … , occupation_type, code,
                                occupation_group_code, definition,
                                regulated_profession_note, scope_note,
                                is_localized)
           skills              (id PK, uuid, preferred_label, is_localized, …)
           occupation_hierarchy          (id serial, model_id,
                                          parent_id, parent_type,
                                          child_id, child_type)
           occupation_to_skill_relations (id serial, model_id,
                                          requiring_occupation_id,
                                          required_skill_id, relation_type,
                                          signalling_value,
                                          signalling_value_label)
  Index  : btree (model_id, created_at, id) on both entity tables

Keyset scans use a row-value comparison, which PostgreSQL answers from the
(model_id, created_at, id) index:
  WHERE model_id = %s AND (created_at, id) < (%s, %s)
  ORDER BY created_at DESC, id DESC LIMIT %s

Connection management:
  - A single connection is opened lazily and reused.
  - On OperationalError the connection is reset and one retry is attempted.
  - For multi-threaded servers replace with psycopg2.pool.ThreadedConnectionPool
    — change only this file.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from taxonomy.config.settings import Settings
from taxonomy.domain.cursor import Cursor
from taxonomy.domain.exceptions import DatabaseError
from taxonomy.domain.models import Collection, Scope

logger = logging.getLogger(__name__)

_BASE_COLS = ("id", "uuid", "uuid_history", "model_id", "created_at", "updated_at")

# Columns returned per collection (must match domain/models.py)
_COLLECTIONS: dict[Collection, tuple[str, tuple[str, ...]]] = {
    Collection.OCCUPATION_GROUPS: (
        "occupation_groups",
        _BASE_COLS + (
            "group_type",
            "code",
            "preferred_label",
            "alt_labels",
            "description",
            "origin_uri",
        ),
    ),
    Collection.OCCUPATIONS: (
        "occupations",
        _BASE_COLS + (
            "occupation_type",
            "code",
            "occupation_group_code",
            "preferred_label",
            "alt_labels",
            "definition",
            "description",
            "regulated_profession_note",
            "scope_note",
            "origin_uri",
            "is_localized",
        ),
    ),
}

# Groups and occupations share one id space, so a hierarchy edge can point at
# either table.  object_type is taken from the edge, not from the node.
_NODES_CTE = """
    WITH nodes AS (
        SELECT id, uuid, code, NULL::text AS group_code, preferred_label
        FROM   occupation_groups
        UNION ALL
        SELECT id, uuid, code, occupation_group_code, preferred_label
        FROM   occupations
    )
"""

_PARENT_SQL = _NODES_CTE + """
    SELECT n.id, n.uuid, n.code, n.group_code, n.preferred_label,
           h.parent_type AS object_type
    FROM   occupation_hierarchy h
    JOIN   nodes n ON n.id = h.parent_id
    WHERE  h.child_id = %s
    ORDER  BY h.id
    LIMIT  1
"""

_CHILDREN_SQL = _NODES_CTE + """
    SELECT n.id, n.uuid, n.code, n.group_code, n.preferred_label,
           h.child_type AS object_type
    FROM   occupation_hierarchy h
    JOIN   nodes n ON n.id = h.child_id
    WHERE  h.parent_id = %s
    ORDER  BY h.id
"""

_REQUIRED_SKILLS_SQL = """
    SELECT s.id, s.uuid, s.preferred_label, s.is_localized,
           r.relation_type, r.signalling_value, r.signalling_value_label
    FROM   occupation_to_skill_relations r
    JOIN   skills s ON s.id = r.required_skill_id
    WHERE  r.requiring_occupation_id = %s
    ORDER  BY r.id
"""


class PostgresTaxonomyStore:
    """psycopg2 implementation of TaxonomyStorePort.

    Injected into the services via services/container.py.
    """

    def __init__(self, settings: Settings) -> None:
        self._dsn = settings.db_dsn
        self._statement_timeout_ms = settings.db_statement_timeout_ms
        self._conn: Any = None
        logger.debug("PostgresTaxonomyStore ready | dsn=%s", self._dsn)

    # ── TaxonomyStorePort implementation ───────────────────────────────────

    def range_query(
        self,
        scope: Scope,
        after: Optional[Cursor],
        count: int,
        descending: bool,
    ) -> list[dict]:
        """Open-interval keyset scan over (created_at, id)."""
        table, cols = _COLLECTIONS[scope.collection]
        direction = sql.SQL("DESC" if descending else "ASC")
        params: list[Any] = [scope.model_id]
        boundary = sql.SQL("")
        if after is not None:
            boundary = sql.SQL("AND (created_at, id) {op} (%s, %s)").format(
                op=sql.SQL("<" if descending else ">"),
            )
            params.extend([after.created_at, after.id])
        params.append(count)

        query = sql.SQL(
            "SELECT {cols} FROM {table} WHERE model_id = %s {boundary} "
            "ORDER BY created_at {dir}, id {dir} LIMIT %s"
        ).format(
            cols=sql.SQL(", ").join(map(sql.Identifier, cols)),
            table=sql.Identifier(table),
            boundary=boundary,
            dir=direction,
        )
        try:
            return self._execute(query, tuple(params))
        except psycopg2.Error as exc:
            raise DatabaseError(f"range_query failed: {exc}") from exc

    def fetch_by_id(self, scope: Scope, entity_id: str) -> Optional[dict]:
        table, cols = _COLLECTIONS[scope.collection]
        query = sql.SQL(
            "SELECT {cols} FROM {table} WHERE model_id = %s AND id = %s"
        ).format(
            cols=sql.SQL(", ").join(map(sql.Identifier, cols)),
            table=sql.Identifier(table),
        )
        try:
            rows = self._execute(query, (scope.model_id, entity_id))
        except psycopg2.Error as exc:
            raise DatabaseError(f"fetch_by_id failed: {exc}") from exc
        return rows[0] if rows else None

    def get_relations(self, entity_id: str) -> dict:
        try:
            parents = self._execute(_PARENT_SQL, (entity_id,))
            children = self._execute(_CHILDREN_SQL, (entity_id,))
            skills = self._execute(_REQUIRED_SKILLS_SQL, (entity_id,))
        except psycopg2.Error as exc:
            raise DatabaseError(f"get_relations failed: {exc}") from exc
        return {
            "parent": parents[0] if parents else None,
            "children": children,
            "requires_skills": skills,
        }

    # ── Connection helpers ─────────────────────────────────────────────────

    def _get_conn(self) -> Any:
        """Return an open connection, creating or reusing one."""
        if self._conn is None or self._conn.closed:
            self._conn = self._new_conn()
        return self._conn

    def _new_conn(self) -> Any:
        """Open a fresh read-only psycopg2 connection."""
        try:
            conn = psycopg2.connect(
                self._dsn,
                options=f"-c statement_timeout={self._statement_timeout_ms}",
            )
            conn.set_session(readonly=True, autocommit=True)
            logger.debug("PostgresTaxonomyStore: new connection opened")
            return conn
        except psycopg2.Error as exc:
            raise DatabaseError(f"Cannot connect to database: {exc}") from exc

    def _execute(self, query: Any, params: tuple) -> list[dict]:
        """Execute a query and return rows as dicts, with one auto-reconnect."""
        for attempt in (1, 2):
            conn = self._get_conn()
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params)
                    return [dict(row) for row in cur.fetchall()]
            except psycopg2.OperationalError as exc:
                if attempt == 1:
                    logger.warning("DB OperationalError — reconnecting: %s", exc)
                    self._conn = None
                else:
                    raise DatabaseError(f"DB query failed after reconnect: {exc}") from exc
        return []  # unreachable

    def close(self) -> None:
        """Explicitly close the connection (optional — GC handles it otherwise)."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            logger.debug("PostgresTaxonomyStore: connection closed")
