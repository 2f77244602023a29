"""
domain/models.py
──────────────────────────────────────────────────────────────────────────────
Pure domain objects — Pydantic models with no imports from adapters or ports.

These models are the lingua franca of the entire system:
  • adapters produce plain record dicts whose keys match the field names here
  • services assemble and annotate them
  • interfaces serialise them with to_dict(), which emits the camelCase keys
    of the public API (UUID, UUIDHistory, originUUID, createdAt, …)
"""
from __future__ import annotations

from abc import abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from taxonomy.domain.code_grammar import (
    code_kind_for,
    group_code_kind_for,
    validate_code,
)
from taxonomy.domain.exceptions import InvalidCodeFormatError

DEFAULT_LIMIT = 100
MAX_LIMIT = 100
SIGNALLING_VALUE_MIN = 0
SIGNALLING_VALUE_MAX = 1
SIGNALLING_VALUE_LABEL_MAX_LENGTH = 256


# ── Enums ──────────────────────────────────────────────────────────────────────

class ObjectType(str, Enum):
    """Discriminant tag of every taxonomy entity."""
    ISCO_GROUP       = "ISCOGroup"        # canonical group
    LOCAL_GROUP      = "LocalGroup"       # local group
    ESCO_OCCUPATION  = "ESCOOccupation"   # canonical occupation
    LOCAL_OCCUPATION = "LocalOccupation"  # local occupation
    SKILL            = "Skill"
    SKILL_GROUP      = "SkillGroup"


GROUP_TYPES = frozenset({ObjectType.ISCO_GROUP, ObjectType.LOCAL_GROUP})
OCCUPATION_TYPES = frozenset({ObjectType.ESCO_OCCUPATION, ObjectType.LOCAL_OCCUPATION})
# The only types a parent / child reference may carry
HIERARCHY_OBJECT_TYPES = GROUP_TYPES | OCCUPATION_TYPES


class RelationType(str, Enum):
    """How strongly an occupation requires a skill."""
    NONE      = "none"
    ESSENTIAL = "essential"
    OPTIONAL  = "optional"


def _one_of(allowed: frozenset[ObjectType], value: ObjectType) -> ObjectType:
    if value not in allowed:
        names = ", ".join(sorted(t.value for t in allowed))
        raise ValueError(f"must be one of {names}, got {value.value}")
    return value


class Collection(str, Enum):
    """Paginated collections inside a taxonomy model."""
    OCCUPATION_GROUPS = "occupationGroups"
    OCCUPATIONS       = "occupations"


class _APIModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )


# ── Scope ──────────────────────────────────────────────────────────────────────

class Scope(_APIModel):
    """The owning model and collection a page is drawn from."""

    model_id:   str = Field(..., min_length=1)
    collection: Collection


# ── Entities ───────────────────────────────────────────────────────────────────

class TaxonomyEntity(_APIModel):
    """Fields shared by every stored taxonomy entity (abstract).

    ``(created_at, id)`` is the immutable sort key used for pagination.
    """

    id:           str
    uuid:         str       = Field(..., alias="UUID")
    uuid_history: list[str] = Field(default_factory=list, alias="UUIDHistory")
    model_id:     str
    created_at:   datetime
    updated_at:   datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def naive_is_utc(cls, v: datetime) -> datetime:
        # Sort keys are compared against decoded cursors, which are always aware
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    @computed_field(alias="originUUID")
    @property
    def origin_uuid(self) -> str:
        """Last UUID of the history, or "" when the history is empty."""
        return self.uuid_history[-1] if self.uuid_history else ""

    @property
    @abstractmethod
    def object_type(self) -> ObjectType:
        """Discriminant tag of the concrete entity."""


class OccupationGroup(TaxonomyEntity):
    """An ISCO (canonical) or local occupation group."""

    group_type:      ObjectType
    code:            str
    preferred_label: str
    alt_labels:      list[str] = Field(default_factory=list)
    description:     str = ""
    origin_uri:      str = ""

    @field_validator("group_type")
    @classmethod
    def check_group_type(cls, v: ObjectType) -> ObjectType:
        return _one_of(GROUP_TYPES, v)

    @property
    def object_type(self) -> ObjectType:
        return self.group_type


class Occupation(TaxonomyEntity):
    """An ESCO (canonical) or local occupation."""

    occupation_type:           ObjectType
    code:                      str
    occupation_group_code:     str
    preferred_label:           str
    alt_labels:                list[str] = Field(default_factory=list)
    definition:                str  = ""
    description:               str  = ""
    regulated_profession_note: str  = ""
    scope_note:                str  = ""
    origin_uri:                str  = ""
    is_localized:              bool = False

    @field_validator("occupation_type")
    @classmethod
    def check_occupation_type(cls, v: ObjectType) -> ObjectType:
        return _one_of(OCCUPATION_TYPES, v)

    @property
    def object_type(self) -> ObjectType:
        return self.occupation_type

    @property
    def is_canonical(self) -> bool:
        return self.occupation_type == ObjectType.ESCO_OCCUPATION


Entity = Union[OccupationGroup, Occupation]


# ── Relations ──────────────────────────────────────────────────────────────────

class HierarchyReference(_APIModel):
    """Read-only snapshot of a parent or child inside an entity's view."""

    id:              str
    uuid:            str = Field(..., alias="UUID")
    code:            str
    group_code:      Optional[str] = Field(None, alias="occupationGroupCode")
    preferred_label: str
    object_type:     ObjectType

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SkillRelation(_APIModel):
    """A required skill of an occupation, with relationship metadata.

    ``relation_type is None`` means the field is absent altogether, which is
    only legal for local occupations.
    """

    id:                     str
    uuid:                   str = Field(..., alias="UUID")
    preferred_label:        str
    is_localized:           bool = False
    object_type:            ObjectType = ObjectType.SKILL
    relation_type:          Optional[RelationType] = None
    signalling_value:       Optional[float] = Field(
        None, ge=SIGNALLING_VALUE_MIN, le=SIGNALLING_VALUE_MAX
    )
    signalling_value_label: Optional[str] = Field(
        None, max_length=SIGNALLING_VALUE_LABEL_MAX_LENGTH
    )

    @field_validator("object_type")
    @classmethod
    def check_skill_type(cls, v: ObjectType) -> ObjectType:
        return _one_of(frozenset({ObjectType.SKILL}), v)

    @field_validator("signalling_value_label")
    @classmethod
    def empty_label_is_null(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json", by_alias=True)
        if self.relation_type is None:
            del data["relationType"]
        return data


# ── Output ─────────────────────────────────────────────────────────────────────

class EntityView(_APIModel):
    """An entity annotated with its resolved relations, ready to serialise."""

    entity:          Entity
    parent:          Optional[HierarchyReference] = None
    children:        list[HierarchyReference] = Field(default_factory=list)
    requires_skills: list[SkillRelation] = Field(default_factory=list)
    path:            str = ""
    tabiya_path:     str = ""

    def to_dict(self) -> dict:
        """Serialise to the flat, camelCase shape of the public API."""
        data = self.entity.model_dump(mode="json", by_alias=True)
        data["path"] = self.path
        data["tabiyaPath"] = self.tabiya_path
        data["parent"] = self.parent.to_dict() if self.parent else None
        data["children"] = [c.to_dict() for c in self.children]
        if isinstance(self.entity, Occupation):
            data["requiresSkills"] = [s.to_dict() for s in self.requires_skills]
        return data


class PageRequest(_APIModel):
    """Validated input to TaxonomyPaginator.page()."""

    model_id:   str = Field(..., min_length=1)
    collection: Collection
    cursor:     Optional[str] = Field(None, description="Opaque next_cursor token")
    limit:      int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    descending: bool = Field(True, description="Newest first when True")

    @property
    def scope(self) -> Scope:
        return Scope(model_id=self.model_id, collection=self.collection)


class Page(_APIModel):
    """One page of entity views plus the token for the next page."""

    items:       list[EntityView]
    limit:       int
    next_cursor: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "data": [item.to_dict() for item in self.items],
            "limit": self.limit,
            "nextCursor": self.next_cursor,
        }


# ── Write-side input ───────────────────────────────────────────────────────────

def _check_codes(object_type: ObjectType, code: str, group_code: Optional[str]) -> None:
    try:
        validate_code(code, code_kind_for(object_type))
        if group_code is not None:
            validate_code(group_code, group_code_kind_for(object_type))
    except InvalidCodeFormatError as exc:
        raise ValueError(str(exc)) from exc


class NewOccupationGroupSpec(_APIModel):
    """Payload accepted when creating an occupation group."""

    model_id:        str = Field(..., min_length=1)
    group_type:      ObjectType
    code:            str
    preferred_label: str = Field(..., min_length=1)
    uuid_history:    list[str] = Field(default_factory=list, alias="UUIDHistory")
    alt_labels:      list[str] = Field(default_factory=list)
    description:     str = ""
    origin_uri:      str = ""

    @field_validator("group_type")
    @classmethod
    def check_group_type(cls, v: ObjectType) -> ObjectType:
        return _one_of(GROUP_TYPES, v)

    @model_validator(mode="after")
    def code_matches_group_type(self) -> NewOccupationGroupSpec:
        _check_codes(self.group_type, self.code, None)
        return self


class NewOccupationSpec(_APIModel):
    """Payload accepted when creating an occupation."""

    model_id:                  str = Field(..., min_length=1)
    occupation_type:           ObjectType
    code:                      str
    occupation_group_code:     str
    preferred_label:           str = Field(..., min_length=1)
    uuid_history:              list[str] = Field(default_factory=list, alias="UUIDHistory")
    alt_labels:                list[str] = Field(default_factory=list)
    definition:                str  = ""
    description:               str  = ""
    regulated_profession_note: str  = ""
    scope_note:                str  = ""
    origin_uri:                str  = ""
    is_localized:              bool = False

    @field_validator("occupation_type")
    @classmethod
    def check_occupation_type(cls, v: ObjectType) -> ObjectType:
        return _one_of(OCCUPATION_TYPES, v)

    @model_validator(mode="after")
    def codes_match_occupation_type(self) -> NewOccupationSpec:
        _check_codes(self.occupation_type, self.code, self.occupation_group_code)
        return self
