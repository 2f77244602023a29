"""
services/page_fetcher.py
──────────────────────────────────────────────────────────────────────────────
Keyset page fetcher: one bounded, ordered read from storage.

Ordering key is always (created_at, id); id breaks ties between entities
created at the same instant, so the order is total.  With an ``after`` key
only entities strictly beyond it are returned — the boundary entity itself
never reappears.

The fetcher filters by nothing but scope and boundary.  Deciding page size,
hasMore and the next cursor is TaxonomyPaginator's job.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from taxonomy.domain.cursor import Cursor
from taxonomy.domain.exceptions import DataIntegrityError
from taxonomy.domain.models import (
    Collection,
    Entity,
    Occupation,
    OccupationGroup,
    Scope,
)
from taxonomy.ports.taxonomy_store_port import TaxonomyStorePort

logger = logging.getLogger(__name__)

_ENTITY_TYPES: dict[Collection, type[OccupationGroup] | type[Occupation]] = {
    Collection.OCCUPATION_GROUPS: OccupationGroup,
    Collection.OCCUPATIONS: Occupation,
}


def entity_from_record(collection: Collection, record: dict) -> Entity:
    """Assemble the domain model for a storage record of a collection.

    Raises:
        DataIntegrityError: If the stored record breaks the domain model.
    """
    try:
        return _ENTITY_TYPES[collection](**record)
    except ValidationError as exc:
        raise DataIntegrityError(
            f"Stored {collection.value} record {record.get('id')!r} breaks the model: {exc}"
        ) from exc


def sort_key(entity: Entity) -> tuple:
    return (entity.created_at, entity.id)


class KeysetPageFetcher:
    """Bounded keyset reads against any TaxonomyStorePort.

    Args:
        store: Any object satisfying TaxonomyStorePort.
    """

    def __init__(self, store: TaxonomyStorePort) -> None:
        self._store = store

    def fetch(
        self,
        scope: Scope,
        after: Optional[Cursor],
        count: int,
        descending: bool = True,
    ) -> list[Entity]:
        """Fetch up to ``count`` entities strictly after ``after``.

        Args:
            scope:      Owning model and collection.
            after:      Keyset boundary, or None for the first page.
            count:      Maximum number of entities (≥ 1).
            descending: Newest first when True.

        Returns:
            Entities in storage order, ``len <= count``.

        Raises:
            ValueError:    If count < 1.
            DatabaseError: Propagated unchanged from the store.
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        logger.debug(
            "fetch | model=%s collection=%s after=%s count=%d desc=%s",
            scope.model_id,
            scope.collection.value,
            after.id if after else None,
            count,
            descending,
        )
        records = self._store.range_query(scope, after, count, descending)
        entities = [entity_from_record(scope.collection, r) for r in records[:count]]

        if len(records) > count:
            logger.warning(
                "Store returned %d records for count=%d; extra records dropped",
                len(records),
                count,
            )
        _warn_if_out_of_order(entities, after, descending)
        return entities

    def fetch_one(self, scope: Scope, entity_id: str) -> Optional[Entity]:
        """Fetch a single entity of the scope by id, or None."""
        record = self._store.fetch_by_id(scope, entity_id)
        if record is None:
            return None
        return entity_from_record(scope.collection, record)


def _warn_if_out_of_order(
    entities: list[Entity],
    after: Optional[Cursor],
    descending: bool,
) -> None:
    """Log, never re-sort, when the store breaks the keyset contract."""
    keys = [sort_key(e) for e in entities]
    if after is not None:
        keys.insert(0, (after.created_at, after.id))
    for prev, cur in zip(keys, keys[1:]):
        in_order = cur < prev if descending else cur > prev
        if not in_order:
            logger.warning(
                "Store returned records out of keyset order | prev=%s cur=%s",
                prev[1],
                cur[1],
            )
            return
