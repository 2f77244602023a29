"""
ports/taxonomy_store_port.py
──────────────────────────────────────────────────────────────────────────────
Abstract interface for the taxonomy storage backend.

The port asks for exactly two capabilities:
  1. range_query    — an open-interval keyset scan over (created_at, id),
                      scoped to one model and collection
  2. get_relations  — the stored parent / children / required-skill records
                      of one entity, each carrying its own object type tag

plus fetch_by_id for single-entity lookups.  Records are plain dicts whose
keys match the field names in domain/models.py; services assemble the
models.  Ordering, limits and cursor handling are never pushed into the port
beyond the keyset boundary itself.

Current implementation: PostgresTaxonomyStore (psycopg2)
To swap: write a new adapter implementing this Protocol and change
services/container.py.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from taxonomy.domain.cursor import Cursor
from taxonomy.domain.models import Scope


@runtime_checkable
class TaxonomyStorePort(Protocol):
    """Contract for the taxonomy storage backend."""

    def range_query(
        self,
        scope: Scope,
        after: Optional[Cursor],
        count: int,
        descending: bool,
    ) -> list[dict]:
        """Return up to ``count`` entity records ordered by (created_at, id).

        Args:
            scope:      Owning model and collection.
            after:      Keyset boundary.  Only records strictly after it in
                        the requested direction are returned; None starts at
                        the beginning of the order.
            count:      Maximum number of records.
            descending: Newest first when True.

        Returns:
            Record dicts in the requested order.

        Raises:
            DatabaseError: On connection or query failure.
        """
        ...

    def fetch_by_id(self, scope: Scope, entity_id: str) -> Optional[dict]:
        """Return one entity record, or None if it is not in scope.

        Raises:
            DatabaseError: On connection or query failure.
        """
        ...

    def get_relations(self, entity_id: str) -> dict:
        """Return the stored relations of one entity.

        Returns:
            ``{"parent": dict | None, "children": [dict],
            "requires_skills": [dict]}``.  Parent and child records carry
            ``object_type``; children are in stored hierarchy order.

        Raises:
            DatabaseError: On connection or query failure.
        """
        ...
