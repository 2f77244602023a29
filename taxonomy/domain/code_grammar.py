"""
domain/code_grammar.py
──────────────────────────────────────────────────────────────────────────────
Classification code grammars, one per discriminant.

The grammar is selected by the caller through a CodeKind, never inferred from
the shape of the code.  The same table validates a top-level entity's own
code and the code of a nested parent / child reference.

  CodeKind         Example        Structure
  ───────────────  ─────────────  ─────────────────────────────────────────
  ISCOGroup        2654           1–4 digits
  LocalGroup       12AB3          0–4 digits, ≥1 letter, then letters/digits
  ESCOOccupation   2654.1.7       4 digits, then one or more ".digits"
  LocalOccupation  ABC_1          alphanumeric prefix, one or more "_digits"
                   2654.1_3       (or an ESCOOccupation-shaped prefix)
  SkillGroup       S1.2.3         one letter, optional digit, ".digit" groups

LocalGroup and LocalOccupation are permissive and overlap with the canonical
grammars for some inputs ("1234_567" is both a local code and a canonical
code with a local suffix).  No disambiguation is attempted.

Every function here is pure: validate_code() raises InvalidCodeFormatError
and nothing else.
"""
from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType

from taxonomy.domain.exceptions import InvalidCodeFormatError

CODE_MAX_LENGTH = 100


class CodeKind(str, Enum):
    """Discriminant selecting a code grammar."""
    ISCO_GROUP       = "ISCOGroup"
    LOCAL_GROUP      = "LocalGroup"
    ESCO_OCCUPATION  = "ESCOOccupation"
    LOCAL_OCCUPATION = "LocalOccupation"
    SKILL_GROUP      = "SkillGroup"


_ESCO_OCCUPATION = r"\d{4}(?:\.\d+)+"
_ESCO_LOCAL_OCCUPATION = r"\d{4}(?:\.\d+)*(?:_\d+)+"
_LOCAL_OCCUPATION = r"[a-zA-Z\d]+(?:_\d+)+"

_GRAMMARS: MappingProxyType[CodeKind, re.Pattern[str]] = MappingProxyType({
    CodeKind.ISCO_GROUP:       re.compile(r"\d{1,4}", re.ASCII),
    CodeKind.LOCAL_GROUP:      re.compile(r"(?:\d{1,4})?[a-zA-Z]+[a-zA-Z\d]*", re.ASCII),
    CodeKind.ESCO_OCCUPATION:  re.compile(_ESCO_OCCUPATION, re.ASCII),
    CodeKind.LOCAL_OCCUPATION: re.compile(
        rf"(?:{_ESCO_LOCAL_OCCUPATION}|{_LOCAL_OCCUPATION})", re.ASCII
    ),
    CodeKind.SKILL_GROUP:      re.compile(r"[a-zA-Z](?:\d(?:\.\d)*)?", re.ASCII),
})

# Grammar of the occupationGroupCode carried by a reference of a given type
_GROUP_CODE_KINDS: MappingProxyType[CodeKind, CodeKind] = MappingProxyType({
    CodeKind.ISCO_GROUP:       CodeKind.ISCO_GROUP,
    CodeKind.ESCO_OCCUPATION:  CodeKind.ISCO_GROUP,
    CodeKind.LOCAL_GROUP:      CodeKind.LOCAL_GROUP,
    CodeKind.LOCAL_OCCUPATION: CodeKind.LOCAL_GROUP,
})


def _tag(value: object) -> object:
    return getattr(value, "value", value)


def code_kind_for(object_type: object) -> CodeKind:
    """Return the grammar discriminant for an object type tag.

    Raises:
        InvalidCodeFormatError: If the object type carries no code
            (e.g. ``Skill``).
    """
    try:
        return CodeKind(_tag(object_type))
    except ValueError:
        raise InvalidCodeFormatError(str(_tag(object_type)), None) from None


def group_code_kind_for(object_type: object) -> CodeKind:
    """Return the grammar of the group code carried by a hierarchy reference."""
    kind = code_kind_for(object_type)
    try:
        return _GROUP_CODE_KINDS[kind]
    except KeyError:
        raise InvalidCodeFormatError(kind.value, None) from None


def validate_code(code: object, kind: CodeKind) -> None:
    """Check a code against the grammar of its discriminant.

    Args:
        code: Candidate code.  Non-string values are rejected, not raised on.
        kind: Grammar discriminant.

    Raises:
        InvalidCodeFormatError: If the code does not match.
    """
    grammar = _GRAMMARS.get(kind) if isinstance(kind, str) else None
    if (
        grammar is None
        or not isinstance(code, str)
        or len(code) > CODE_MAX_LENGTH
        or grammar.fullmatch(code) is None
    ):
        raise InvalidCodeFormatError(str(_tag(kind)), code)


def is_valid_code(code: object, kind: CodeKind) -> bool:
    """Boolean form of validate_code()."""
    try:
        validate_code(code, kind)
    except InvalidCodeFormatError:
        return False
    return True
