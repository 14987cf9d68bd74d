"""Hard eligibility gate and optional search filter, applied before scoring."""

from __future__ import annotations

from typing import Iterable

from matching.models import CandidateProfile, UserPreferences


def is_eligible(candidate: CandidateProfile, prefs: UserPreferences) -> bool:
    """Mutual orientation check: each side is open to the other's gender."""
    return candidate.gender in prefs.looking_for and prefs.gender in candidate.looking_for


def filter_eligible(
    candidates: Iterable[CandidateProfile], prefs: UserPreferences
) -> list[CandidateProfile]:
    """Return the eligible candidates, preserving input order."""
    return [c for c in candidates if is_eligible(c, prefs)]


def filter_profiles(
    profiles: Iterable[CandidateProfile],
    max_distance: float,
    query: str | None = None,
) -> list[CandidateProfile]:
    """Keep profiles within *max_distance* that match a free-text *query*.

    The query is matched case-insensitively as a substring of any tag, the
    name, the bio or the personality code. A blank query matches everything.

    Args:
        profiles: Profiles to filter.
        max_distance: Furthest distance to keep (inclusive).
        query: Optional search text.

    Returns:
        Matching profiles in input order.
    """
    results = [p for p in profiles if p.distance <= max_distance]
    if query is None or not query.strip():
        return results

    q = query.strip().lower()
    return [
        p for p in results
        if any(q in t.lower() for t in p.tags)
        or q in p.name.lower()
        or q in p.bio.lower()
        or q in p.personality.lower()
    ]
