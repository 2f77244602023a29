"""
services/container.py
──────────────────────────────────────────────────────────────────────────────
Dependency Injection container.

THIS IS THE ONLY FILE THAT NAMES CONCRETE ADAPTER CLASSES.

Replace the database:
  - from taxonomy.adapters.postgres_store import PostgresTaxonomyStore
  + from taxonomy.adapters.other_store import OtherTaxonomyStore

Thread safety:
  @lru_cache(maxsize=1) makes get_paginator() return the same instance across
  calls.  The services hold no mutable state of their own; the only shared
  resource is the store's connection (one per process).
"""
from __future__ import annotations

import logging
from functools import lru_cache

from taxonomy.adapters.postgres_store import PostgresTaxonomyStore
from taxonomy.config.settings import Settings, get_settings
from taxonomy.domain.exceptions import ConfigurationError
from taxonomy.ports.taxonomy_store_port import TaxonomyStorePort
from taxonomy.services.page_fetcher import KeysetPageFetcher
from taxonomy.services.paginator import TaxonomyPaginator
from taxonomy.services.relation_resolver import HierarchyRelationResolver

logger = logging.getLogger(__name__)


def _check_settings(settings: Settings) -> None:
    if not settings.db_dsn:
        raise ConfigurationError("DB_DSN is empty.")
    if not settings.resources_base_url.startswith("https://"):
        raise ConfigurationError(
            f"RESOURCES_BASE_URL must start with https:// "
            f"(got '{settings.resources_base_url}')."
        )
    if settings.max_cursor_length < 1:
        raise ConfigurationError("MAX_CURSOR_LENGTH must be positive.")


def build_paginator(store: TaxonomyStorePort, settings: Settings) -> TaxonomyPaginator:
    """Wire the services around any TaxonomyStorePort."""
    return TaxonomyPaginator(
        fetcher=KeysetPageFetcher(store),
        resolver=HierarchyRelationResolver(store),
        settings=settings,
    )


@lru_cache(maxsize=1)
def get_paginator() -> TaxonomyPaginator:
    """Build and return the fully wired TaxonomyPaginator singleton.

    Returns:
        Fully initialised TaxonomyPaginator ready for use.

    Raises:
        ConfigurationError: If settings are unusable.
    """
    settings = get_settings()
    _check_settings(settings)
    logger.info("Building TaxonomyPaginator | dsn=%s", settings.db_dsn)

    store = PostgresTaxonomyStore(settings)
    paginator = build_paginator(store, settings)

    logger.info("TaxonomyPaginator ready")
    return paginator
