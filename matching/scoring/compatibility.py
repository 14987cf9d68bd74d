"""Static compatibility scoring: preference-only fit between a user and a candidate."""

from __future__ import annotations

import logging

import numpy as np

from matching.models import (
    UNKNOWN_PERSONALITY,
    CandidateProfile,
    ChildrenPreference,
    Exclusivity,
    UserPreferences,
)
from matching.tables import INTENT_COMPAT, PERSONALITY_COMPAT

logger = logging.getLogger(__name__)

# Factor order defines the index positions in the sub-score vector.
FACTOR_WEIGHTS: tuple[tuple[str, float], ...] = (
    ("tags", 0.30),
    ("intent", 0.20),
    ("values", 0.15),
    ("age", 0.12),
    ("distance", 0.12),
    ("personality", 0.06),
    ("bio", 0.05),
)

_WEIGHT_VECTOR = np.array([w for _, w in FACTOR_WEIGHTS], dtype=np.float64)

_AGE_FALLOFF_YEARS = 15.0

_INTENT_EXACT = 1.0
_INTENT_COMPATIBLE = 0.6
_INTENT_MISMATCH = 0.1

# Values alignment: monogamy friction dominates, then children, then substances.
_EXCLUSIVITY_WEIGHT = 1.5
_CHILDREN_WEIGHT = 1.0
_SMOKING_POINTS = 0.3
_CANNABIS_POINTS = 0.2
_VALUES_TOTAL_WEIGHT = _EXCLUSIVITY_WEIGHT + _CHILDREN_WEIGHT + _SMOKING_POINTS + _CANNABIS_POINTS

# (exclusive upper bound on bio length, score); anything longer scores 1.0
_BIO_STEPS: tuple[tuple[int, float], ...] = ((20, 0.2), (50, 0.5), (120, 0.8))


def tag_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Share of tags in common, relative to the larger of the two tag lists."""
    user_tags = {t.lower() for t in prefs.tags}
    candidate_tags = [t.lower() for t in candidate.tags]
    overlap = sum(1 for t in candidate_tags if t in user_tags)
    return overlap / max(len(user_tags), len(candidate_tags), 1)


def age_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Linear falloff to zero at a 15-year gap."""
    return max(0.0, 1.0 - abs(candidate.age - prefs.age) / _AGE_FALLOFF_YEARS)


def distance_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Linear falloff inside the preference radius, zero outside it."""
    if candidate.distance > prefs.max_distance:
        return 0.0
    if prefs.max_distance == 0:
        return 1.0
    return max(0.0, 1.0 - candidate.distance / prefs.max_distance)


def personality_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Full credit for a curated pairing, otherwise position-wise letter overlap.

    Zero whenever either side has no known type.
    """
    if UNKNOWN_PERSONALITY in (candidate.personality, prefs.personality):
        return 0.0
    if candidate.personality in PERSONALITY_COMPAT.get(prefs.personality, frozenset()):
        return 1.0
    shared = sum(
        1 for mine, theirs in zip(prefs.personality, candidate.personality)
        if mine == theirs
    )
    return shared / 4


def intent_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    if candidate.intent == prefs.intent:
        return _INTENT_EXACT
    if candidate.intent in INTENT_COMPAT.get(prefs.intent, frozenset()):
        return _INTENT_COMPATIBLE
    return _INTENT_MISMATCH


def values_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Weighted lifestyle alignment.

    ===============  ======  ==========================================
    Factor           Weight  Credit
    ===============  ======  ==========================================
    Exclusivity      1.5     1.0 exact, 0.5 if either side is ``open``
    Children         1.0     1.0 exact, 0.5 if either side is ``maybe``
    Smoking          0.3     all or nothing
    Cannabis         0.2     all or nothing
    ===============  ======  ==========================================

    The weighted total is normalised by 3.0.
    """
    if candidate.exclusivity == prefs.exclusivity:
        exclusivity = 1.0
    elif Exclusivity.OPEN in (candidate.exclusivity, prefs.exclusivity):
        exclusivity = 0.5
    else:
        exclusivity = 0.0

    if candidate.children == prefs.children:
        children = 1.0
    elif ChildrenPreference.MAYBE in (candidate.children, prefs.children):
        children = 0.5
    else:
        children = 0.0

    total = exclusivity * _EXCLUSIVITY_WEIGHT + children * _CHILDREN_WEIGHT
    if candidate.smoker == prefs.smoker:
        total += _SMOKING_POINTS
    if candidate.cannabis == prefs.cannabis:
        total += _CANNABIS_POINTS
    return total / _VALUES_TOTAL_WEIGHT


def bio_depth_score(candidate: CandidateProfile, prefs: UserPreferences | None = None) -> float:
    """Step function of bio length; rewards candidates who wrote something."""
    length = len(candidate.bio)
    for upper_bound, score in _BIO_STEPS:
        if length < upper_bound:
            return score
    return 1.0


_FACTOR_FUNCTIONS = {
    "tags": tag_score,
    "intent": intent_score,
    "values": values_score,
    "age": age_score,
    "distance": distance_score,
    "personality": personality_score,
    "bio": bio_depth_score,
}


def sub_scores(candidate: CandidateProfile, prefs: UserPreferences) -> dict[str, float]:
    """Return every sub-score keyed by factor name, in :data:`FACTOR_WEIGHTS` order."""
    return {
        name: _FACTOR_FUNCTIONS[name](candidate, prefs)
        for name, _ in FACTOR_WEIGHTS
    }


def combine(scores: dict[str, float]) -> float:
    """Weighted sum of named sub-scores, clipped to [0, 1]."""
    vec = np.array([scores[name] for name, _ in FACTOR_WEIGHTS], dtype=np.float64)
    return float(np.clip(np.dot(vec, _WEIGHT_VECTOR), 0.0, 1.0))


def static_score(candidate: CandidateProfile, prefs: UserPreferences) -> float:
    """Return the preference-only compatibility score in [0, 1].

    Args:
        candidate: The profile being scored.
        prefs: The requesting user's preferences.

    Returns:
        Deterministic score in [0, 1]; identical inputs always give
        identical output.
    """
    return combine(sub_scores(candidate, prefs))
