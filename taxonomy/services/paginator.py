"""
services/paginator.py
──────────────────────────────────────────────────────────────────────────────
Pagination orchestrator: cursor → keyset fetch → page boundary → relations.

This is the primary entry point for all interfaces (CLI, future HTTP API).
It knows nothing about infrastructure — it only speaks in domain objects.

page(request):
  1. Decode request.cursor (InvalidCursorError propagates to the caller).
  2. Fetch limit + 1 entities after the cursor, newest first by default.
  3. More than limit came back → hasMore; keep exactly limit.
  4. hasMore → next_cursor = encode(last kept item); otherwise None.
     The next call resumes strictly after that item, so when exactly
     ``limit`` items remain no empty trailing page is ever handed out.
  5. Annotate every kept item with its parent / children / required skills.

Keyset over offset: (created_at, id) never changes once an entity exists, so
entities inserted between calls can never shift an already-returned item
into a later page or skip one.
"""
from __future__ import annotations

import logging
from typing import Optional

from taxonomy.config.settings import Settings
from taxonomy.domain.cursor import decode_cursor, encode_cursor
from taxonomy.domain.models import (
    Collection,
    Entity,
    EntityView,
    Page,
    PageRequest,
    Scope,
)
from taxonomy.services.page_fetcher import KeysetPageFetcher
from taxonomy.services.relation_resolver import HierarchyRelationResolver

logger = logging.getLogger(__name__)


class TaxonomyPaginator:
    """Paginated, relation-aware reads over one taxonomy collection.

    Inject via services/container.py — do not instantiate directly in
    application code.

    Args:
        fetcher:  KeysetPageFetcher bound to a store.
        resolver: HierarchyRelationResolver bound to the same store.
        settings: Shared application settings.
    """

    def __init__(
        self,
        fetcher: KeysetPageFetcher,
        resolver: HierarchyRelationResolver,
        settings: Settings,
    ) -> None:
        self._fetcher = fetcher
        self._resolver = resolver
        self._settings = settings

    # ── Public API ─────────────────────────────────────────────────────────

    def page(self, request: PageRequest) -> Page:
        """Return one page of a collection and the token for the next one.

        Args:
            request: Validated PageRequest (scope, cursor, limit, direction).

        Returns:
            Page with at most ``request.limit`` items.

        Raises:
            InvalidCursorError: If ``request.cursor`` does not decode.
            UnknownRelationVariantError: On a corrupt stored relation.
            DataIntegrityError: On a stored record that breaks the model.
            DatabaseError: Propagated unchanged from the store.
        """
        logger.info(
            "page | model=%s collection=%s limit=%d desc=%s cursor=%s",
            request.model_id,
            request.collection.value,
            request.limit,
            request.descending,
            "yes" if request.cursor else "no",
        )

        after = None
        if request.cursor is not None:
            after = decode_cursor(
                request.cursor, max_length=self._settings.max_cursor_length
            )

        fetched = self._fetcher.fetch(
            request.scope,
            after,
            request.limit + 1,
            descending=request.descending,
        )
        has_more = len(fetched) > request.limit
        kept = fetched[: request.limit]

        next_cursor: Optional[str] = None
        if has_more:
            last = kept[-1]
            next_cursor = encode_cursor(last.id, last.created_at)

        items = [self._annotate(e, request.collection) for e in kept]
        logger.info("page complete | items=%d has_more=%s", len(items), has_more)
        return Page(items=items, limit=request.limit, next_cursor=next_cursor)

    def get(
        self,
        model_id: str,
        collection: Collection,
        entity_id: str,
    ) -> Optional[EntityView]:
        """Return one entity annotated with its relations, or None."""
        scope = Scope(model_id=model_id, collection=collection)
        entity = self._fetcher.fetch_one(scope, entity_id)
        if entity is None:
            logger.info("get | %s %s not found in model %s",
                        collection.value, entity_id, model_id)
            return None
        return self._annotate(entity, collection)

    # ── Helpers ────────────────────────────────────────────────────────────

    def _annotate(self, entity: Entity, collection: Collection) -> EntityView:
        view = self._resolver.resolve(entity)
        base = (
            f"{self._settings.resources_base_url.rstrip('/')}"
            f"/models/{entity.model_id}/{collection.value}"
        )
        return view.model_copy(update={
            "path": f"{base}/{entity.id}",
            "tabiya_path": f"{base}/{entity.uuid}",
        })
