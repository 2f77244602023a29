"""
services/relation_resolver.py
──────────────────────────────────────────────────────────────────────────────
Resolves and shapes an entity's parent, children and required skills.

Rules:
  • The object type of every reference is read from the stored relation
    record.  The code grammar is applied afterwards only to confirm the code
    is well-formed for that type — never to guess the type.
  • A stored code that fails its grammar (the entity's own code and group
    code as well as those of its references) is passed through unchanged
    and logged as a warning; read paths never correct or drop data.
  • A relation tagged with anything other than a group or occupation type,
    or a required skill with an unknown relation_type, is a data-model
    violation and raises UnknownRelationVariantError.  Skill metadata that
    breaks the model otherwise (e.g. signalling_value > 1) raises
    DataIntegrityError.
  • Required skills of an ESCO (canonical) occupation always carry a
    relation_type, defaulting to RelationType.NONE.  Those of a local
    occupation pass storage through as-is, including an absent relation_type.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from taxonomy.domain.code_grammar import (
    code_kind_for,
    group_code_kind_for,
    is_valid_code,
)
from taxonomy.domain.exceptions import (
    DataIntegrityError,
    UnknownRelationVariantError,
)
from taxonomy.domain.models import (
    HIERARCHY_OBJECT_TYPES,
    Entity,
    EntityView,
    HierarchyReference,
    ObjectType,
    Occupation,
    RelationType,
    SkillRelation,
)
from taxonomy.ports.taxonomy_store_port import TaxonomyStorePort

logger = logging.getLogger(__name__)


class HierarchyRelationResolver:
    """Turns stored relation records into HierarchyReference / SkillRelation.

    Args:
        store: Any object satisfying TaxonomyStorePort.
    """

    def __init__(self, store: TaxonomyStorePort) -> None:
        self._store = store

    # ── Public API ─────────────────────────────────────────────────────────

    def resolve(self, entity: Entity) -> EntityView:
        """Annotate an entity with all of its relations (one storage call)."""
        _flag_entity_codes(entity)
        relations = self._store.get_relations(entity.id)
        return EntityView(
            entity=entity,
            parent=self._parent_from(relations.get("parent"), entity),
            children=self._children_from(relations.get("children") or [], entity),
            requires_skills=self._skills_from(
                relations.get("requires_skills") or [], entity
            ),
        )

    def resolve_parent(self, entity: Entity) -> Optional[HierarchyReference]:
        """Return the parent reference, or None for a hierarchy root."""
        relations = self._store.get_relations(entity.id)
        return self._parent_from(relations.get("parent"), entity)

    def resolve_children(self, entity: Entity) -> list[HierarchyReference]:
        """Return child references in stored hierarchy order."""
        relations = self._store.get_relations(entity.id)
        return self._children_from(relations.get("children") or [], entity)

    def resolve_required_skills(self, entity: Entity) -> list[SkillRelation]:
        """Return required-skill relations with the per-variant presence rule."""
        relations = self._store.get_relations(entity.id)
        return self._skills_from(relations.get("requires_skills") or [], entity)

    # ── Shaping ────────────────────────────────────────────────────────────

    def _parent_from(
        self, record: Optional[dict], owner: Entity
    ) -> Optional[HierarchyReference]:
        if record is None:
            return None
        return _reference_from_record(record, owner)

    def _children_from(
        self, records: list[dict], owner: Entity
    ) -> list[HierarchyReference]:
        return [_reference_from_record(r, owner) for r in records]

    def _skills_from(
        self, records: list[dict], owner: Entity
    ) -> list[SkillRelation]:
        if not isinstance(owner, Occupation):
            if records:
                logger.warning(
                    "Ignoring %d required skills stored for non-occupation %s",
                    len(records),
                    owner.id,
                )
            return []
        return [_skill_relation_from_record(r, owner) for r in records]


# ── Pure helpers ───────────────────────────────────────────────────────────

def _object_type_of(record: dict, owner: Entity) -> ObjectType:
    tag = record.get("object_type")
    try:
        object_type = ObjectType(tag)
    except (ValueError, TypeError):
        raise UnknownRelationVariantError(tag, owner.id) from None
    if object_type not in HIERARCHY_OBJECT_TYPES:
        raise UnknownRelationVariantError(tag, owner.id)
    return object_type


def _reference_from_record(record: dict, owner: Entity) -> HierarchyReference:
    object_type = _object_type_of(record, owner)
    ref = HierarchyReference(
        id=record["id"],
        uuid=record["uuid"],
        code=record["code"],
        group_code=record.get("group_code"),
        preferred_label=record["preferred_label"],
        object_type=object_type,
    )
    _flag_malformed_codes(ref.object_type, ref.id, ref.code, ref.group_code, owner.id)
    return ref


def _flag_entity_codes(entity: Entity) -> None:
    group_code = entity.occupation_group_code if isinstance(entity, Occupation) else None
    _flag_malformed_codes(entity.object_type, entity.id, entity.code, group_code, None)


def _flag_malformed_codes(
    object_type: ObjectType,
    entity_id: str,
    code: str,
    group_code: Optional[str],
    owner_id: Optional[str],
) -> None:
    """Log, never correct, stored codes that do not match their grammar."""
    related = f" (related to {owner_id})" if owner_id else ""
    if not is_valid_code(code, code_kind_for(object_type)):
        logger.warning(
            "Stored code %r of %s %s%s does not match its grammar",
            code,
            object_type.value,
            entity_id,
            related,
        )
    if group_code is not None and not is_valid_code(
        group_code, group_code_kind_for(object_type)
    ):
        logger.warning(
            "Stored group code %r of %s %s%s does not match its grammar",
            group_code,
            object_type.value,
            entity_id,
            related,
        )


def _relation_type_of(record: dict, owner: Occupation) -> Optional[RelationType]:
    tag = record.get("relation_type") or None
    if tag is None:
        return RelationType.NONE if owner.is_canonical else None
    try:
        return RelationType(tag)
    except (ValueError, TypeError):
        raise UnknownRelationVariantError(tag, owner.id) from None


def _skill_relation_from_record(record: dict, owner: Occupation) -> SkillRelation:
    relation_type = _relation_type_of(record, owner)
    try:
        return SkillRelation(
            id=record["id"],
            uuid=record["uuid"],
            preferred_label=record["preferred_label"],
            is_localized=record.get("is_localized", False),
            relation_type=relation_type,
            signalling_value=record.get("signalling_value"),
            signalling_value_label=record.get("signalling_value_label"),
        )
    except ValidationError as exc:
        raise DataIntegrityError(
            f"Required skill {record.get('id')!r} of {owner.id} breaks the model: {exc}"
        ) from exc
