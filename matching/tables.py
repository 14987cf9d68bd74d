"""Fixed compatibility lookup tables used by the static scorer and ranker."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from matching.models import UNKNOWN_PERSONALITY, RelationshipIntent

# Curated personality pairings. Membership earns full personality credit;
# anything else falls back to position-wise letter overlap.
PERSONALITY_COMPAT: Mapping[str, frozenset[str]] = MappingProxyType({
    "INFJ": frozenset({"ENTP", "ENFP", "INFJ", "INTJ"}),
    "INFP": frozenset({"ENFJ", "ENTJ", "INFP", "INFJ"}),
    "ENFJ": frozenset({"INFP", "ISFP", "ENFJ", "ENFP"}),
    "ENFP": frozenset({"INFJ", "INTJ", "ENFP", "ENFJ"}),
    "INTJ": frozenset({"ENFP", "ENTP", "INTJ", "INFJ"}),
    "INTP": frozenset({"ENTJ", "ESTJ", "INTP", "INTJ"}),
    "ENTJ": frozenset({"INTP", "INFP", "ENTJ", "ENTP"}),
    "ENTP": frozenset({"INFJ", "INTJ", "ENTP", "ENFP"}),
    "ISFJ": frozenset({"ESFP", "ESTP", "ISFJ", "ISTJ"}),
    "ISTJ": frozenset({"ESFP", "ESTP", "ISTJ", "ISFJ"}),
    "ESFJ": frozenset({"ISFP", "ISTP", "ESFJ", "ENFJ"}),
    "ESTJ": frozenset({"INTP", "ISTP", "ESTJ", "ESFJ"}),
    "ISFP": frozenset({"ENFJ", "ESFJ", "ISFP", "INFP"}),
    "ISTP": frozenset({"ESFJ", "ESTJ", "ISTP", "ISFP"}),
    "ESFP": frozenset({"ISFJ", "ISTJ", "ESFP", "ESTP"}),
    "ESTP": frozenset({"ISFJ", "ISTJ", "ESTP", "ESFP"}),
})

INTENT_COMPAT: Mapping[RelationshipIntent, frozenset[RelationshipIntent]] = MappingProxyType({
    RelationshipIntent.SERIOUS: frozenset({RelationshipIntent.SERIOUS}),
    RelationshipIntent.CASUAL: frozenset({RelationshipIntent.CASUAL, RelationshipIntent.OPEN}),
    RelationshipIntent.FRIENDS: frozenset({RelationshipIntent.FRIENDS, RelationshipIntent.CASUAL}),
    RelationshipIntent.OPEN: frozenset({RelationshipIntent.OPEN, RelationshipIntent.CASUAL}),
})

# Four clusters of four codes, keyed on the shared trait pair.
PERSONALITY_FAMILIES: Mapping[str, frozenset[str]] = MappingProxyType({
    "analysts": frozenset({"INTJ", "INTP", "ENTJ", "ENTP"}),     # NT
    "diplomats": frozenset({"INFJ", "INFP", "ENFJ", "ENFP"}),    # NF
    "sentinels": frozenset({"ISTJ", "ISFJ", "ESTJ", "ESFJ"}),    # SJ
    "explorers": frozenset({"ISTP", "ISFP", "ESTP", "ESFP"}),    # SP
})

UNKNOWN_FAMILY = "unknown"

_FAMILY_BY_TYPE: Mapping[str, str] = MappingProxyType({
    code: family
    for family, codes in PERSONALITY_FAMILIES.items()
    for code in codes
})


def personality_family(code: str) -> str:
    """Return the family name for a type code.

    The :data:`~matching.models.UNKNOWN_PERSONALITY` sentinel maps to
    :data:`UNKNOWN_FAMILY`, which never equals a real family.
    """
    if code == UNKNOWN_PERSONALITY:
        return UNKNOWN_FAMILY
    return _FAMILY_BY_TYPE.get(code, UNKNOWN_FAMILY)
