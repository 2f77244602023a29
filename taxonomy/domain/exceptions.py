"""
domain/exceptions.py
──────────────────────────────────────────────────────────────────────────────
Custom exception hierarchy.

All exceptions are rooted at TaxonomyError so callers can catch broadly
(except TaxonomyError) or narrowly (except InvalidCursorError).

When adding an HTTP layer, map these to appropriate status codes:
  InvalidCursorError          → 400 (INVALID_QUERY_PARAMETER)
  InvalidCodeFormatError      → 400 on writes; never raised on reads
  UnknownRelationVariantError → 500 (generic internal error, no detail)
  DataIntegrityError          → 500 (generic internal error, no detail)
  DatabaseError               → 503
"""
from __future__ import annotations


class TaxonomyError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(TaxonomyError):
    """Raised when required configuration is missing or invalid."""


class DatabaseError(TaxonomyError):
    """Raised when a database operation fails."""


class InvalidCursorError(TaxonomyError):
    """Raised when a pagination token does not decode to {id, createdAt}."""


class InvalidCodeFormatError(TaxonomyError):
    """Raised when a code does not match the grammar of its discriminant."""

    def __init__(self, kind: str, code: object) -> None:
        self.kind = kind
        self.code = code
        super().__init__(f"Invalid code {code!r} for {kind}")


class UnknownRelationVariantError(TaxonomyError):
    """Raised when a stored relation references an unknown entity type.

    This is a data-model violation upstream, not a user error.
    """

    def __init__(self, tag: object, owner_id: str) -> None:
        self.tag = tag
        self.owner_id = owner_id
        super().__init__(
            f"Relation of entity {owner_id} carries unknown variant tag {tag!r}"
        )


class DataIntegrityError(TaxonomyError):
    """Raised when a stored record cannot be read into the domain model."""
