"""Exploration/exploitation reshaping of a scored candidate list."""

from __future__ import annotations

import logging
import math
import random
from typing import Sequence, TypeVar

from matching.models import CandidateProfile
from matching.tables import personality_family

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXPLORATION_SHARE = 0.25
EXPLORATION_CADENCE = 4  # one exploration slot per window of this many positions


def exploration_count(n: int) -> int:
    """Size of the exploration pool for *n* eligible candidates.

    At least one for any non-empty list, so every ranking explores.
    """
    if n <= 0:
        return 0
    return max(1, math.floor(n * EXPLORATION_SHARE))


def prioritise_exploration(
    pool: Sequence[CandidateProfile],
    user_family: str,
    rng: random.Random | None = None,
) -> list[CandidateProfile]:
    """Order the exploration pool so other personality families come first.

    **Priority tiers:**

    1. Candidates whose personality family differs from *user_family*
    2. Candidates in the user's own family

    Each tier is shuffled independently, so tier order is fixed but order
    within a tier changes per call. Pass a seeded *rng* for reproducible
    output; otherwise the process-wide :mod:`random` source is used.
    """
    shuffle = (rng or random).shuffle
    different = [c for c in pool if personality_family(c.personality) != user_family]
    same = [c for c in pool if personality_family(c.personality) == user_family]
    shuffle(different)
    shuffle(same)
    return different + same


def interleave(exploit: Sequence[T], explore: Sequence[T]) -> list[T]:
    """Merge the two segments into one sequence.

    Every 4th position (1-based) takes the next exploration item if one is
    left, otherwise an exploitation item. Every other position takes an
    exploitation item, backfilling from exploration once exploitation runs
    out. All items of both segments appear exactly once.
    """
    result: list[T] = []
    ei = xi = 0
    for pos in range(len(exploit) + len(explore)):
        if (pos + 1) % EXPLORATION_CADENCE == 0 and xi < len(explore):
            result.append(explore[xi])
            xi += 1
        elif ei < len(exploit):
            result.append(exploit[ei])
            ei += 1
        else:
            result.append(explore[xi])
            xi += 1
    return result


def diversify(
    scored: Sequence[tuple[CandidateProfile, float]],
    user_family: str,
    rng: random.Random | None = None,
) -> list[CandidateProfile]:
    """Turn scored candidates into the final ranked sequence.

    Args:
        scored: ``(candidate, blended_score)`` pairs in input order. Only
            eligible candidates belong here.
        user_family: The requesting user's personality family.
        rng: Optional random source for the exploration shuffle.

    Returns:
        Every candidate exactly once: the top scorers in score order with
        the lowest-scoring quarter (at least one) spliced in at every 4th
        position.
    """
    n = len(scored)
    if n == 0:
        return []

    # sorted() is stable with reverse=True: equal scores keep input order.
    ordered = [c for c, _ in sorted(scored, key=lambda pair: pair[1], reverse=True)]

    n_explore = exploration_count(n)
    exploit = ordered[: n - n_explore]
    explore = prioritise_exploration(ordered[n - n_explore:], user_family, rng)

    logger.debug(
        "Diversify: %d candidates -> %d exploit, %d explore (family=%s)",
        n, len(exploit), len(explore), user_family,
    )
    return interleave(exploit, explore)
