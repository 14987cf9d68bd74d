"""Ranking engine: eligibility, scoring, blending and diversification in one pass."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from matching.catalogue import ProfileCatalogue
from matching.diversify import diversify
from matching.eligibility import filter_eligible, filter_profiles
from matching.ledger import SessionStats, SignalLedger, affinity_for, refresh, session_stats
from matching.ledger_store import LedgerStore
from matching.models import CandidateProfile, InteractionSignal, ScoreBreakdown, UserPreferences
from matching.scoring.affinity import behavioral_weight, blend
from matching.scoring.compatibility import combine, sub_scores
from matching.tables import personality_family

logger = logging.getLogger(__name__)


def explain(
    candidate: CandidateProfile,
    prefs: UserPreferences,
    ledger: SignalLedger | None = None,
) -> ScoreBreakdown:
    """Return every number used to place *candidate* for this user.

    A ``None`` ledger behaves like an empty one: neutral affinity and zero
    behavioural weight.
    """
    scores = sub_scores(candidate, prefs)
    static = combine(scores)
    count = len(ledger) if ledger is not None else 0
    affinity = affinity_for(ledger, candidate)
    return ScoreBreakdown(
        sub_scores=scores,
        static_score=static,
        affinity=affinity,
        behavioral_weight=behavioral_weight(count),
        final_score=blend(static, affinity, count),
    )


def rank(
    candidates: Sequence[CandidateProfile],
    prefs: UserPreferences,
    ledger: SignalLedger | None = None,
    rng: random.Random | None = None,
    now_ms: int | None = None,
) -> list[CandidateProfile]:
    """Rank *candidates* for a user.

    Pipeline: eligibility gate, static score, affinity blend, then
    exploration/exploitation diversification. Ineligible candidates never
    reach scoring.

    Args:
        candidates: Candidate profiles in source order (ties keep this order).
        prefs: The requesting user's preferences.
        ledger: The user's signal ledger, or ``None`` for a cold start.
        rng: Random source for the exploration shuffle. Pass a seeded
            :class:`random.Random` for reproducible output.
        now_ms: When given, signals older than the decay window are dropped
            from *ledger* before scoring.

    Returns:
        The ranked candidates; empty if none are eligible.
    """
    if ledger is not None and now_ms is not None:
        ledger = refresh(ledger, now_ms)

    eligible = filter_eligible(candidates, prefs)
    scored = [(c, explain(c, prefs, ledger).final_score) for c in eligible]
    ranked = diversify(scored, personality_family(prefs.personality), rng)
    logger.debug(
        "Ranked %d of %d candidates (%d signals).",
        len(ranked), len(candidates), len(ledger) if ledger is not None else 0,
    )
    return ranked


class MatchEngine:
    """Serves rankings and records interactions for individual users.

    Ties the pure :func:`rank` pipeline to the
    :class:`~matching.catalogue.ProfileCatalogue` (where candidates come
    from) and the :class:`~matching.ledger_store.LedgerStore` (where each
    user's behavioural history lives).

    Args:
        catalogue: Source of candidate profiles.
        ledger_store: Per-user ledger store.
        rng: Optional random source for the exploration shuffle.
    """

    def __init__(
        self,
        catalogue: ProfileCatalogue,
        ledger_store: LedgerStore,
        rng: random.Random | None = None,
    ) -> None:
        self._catalogue = catalogue
        self._ledger_store = ledger_store
        self._rng = rng

    def get_ranked_candidates(
        self,
        user_id: str,
        prefs: UserPreferences,
        query: str | None = None,
        limit: int | None = None,
    ) -> list[CandidateProfile]:
        """Return the ranked candidate list for *user_id*.

        Args:
            user_id: The requesting user. Must be non-empty.
            prefs: The user's preferences.
            query: Optional search text; when given, candidates are first
                narrowed with :func:`~matching.eligibility.filter_profiles`.
            limit: Optional cap on the number of candidates returned.

        Returns:
            Ranked candidates.

        Raises:
            ValueError: If *user_id* is empty or *limit* is negative.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit!r}")

        candidates = self._catalogue.candidates_for(user_id)
        if query is not None:
            candidates = filter_profiles(candidates, prefs.max_distance, query)

        ledger = self._ledger_store.get_ledger(user_id)
        ranked = rank(
            candidates,
            prefs,
            ledger,
            rng=self._rng,
            now_ms=self._ledger_store.now_ms(),
        )
        return ranked if limit is None else ranked[:limit]

    def record_signal(self, user_id: str, signal: InteractionSignal) -> SignalLedger:
        """Record an interaction for *user_id* and return the updated ledger."""
        return self._ledger_store.record_signal(user_id, signal)

    def explain(
        self, user_id: str, candidate_id: str, prefs: UserPreferences
    ) -> ScoreBreakdown:
        """Return the score breakdown of one candidate for *user_id*.

        Raises:
            ValueError: If *user_id* is empty or *candidate_id* is unknown.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        candidate = self._catalogue.get_profile(candidate_id)
        if candidate is None:
            raise ValueError(f"Unknown candidate {candidate_id!r}")
        ledger = refresh(
            self._ledger_store.get_ledger(user_id), self._ledger_store.now_ms()
        )
        return explain(candidate, prefs, ledger)

    def session_stats(
        self, user_id: str, day_start_ms: int, day_end_ms: int
    ) -> SessionStats:
        """Summarise *user_id*'s signals between the two timestamps.

        Raises:
            ValueError: If *user_id* is empty or the range is reversed.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        if day_end_ms < day_start_ms:
            raise ValueError("day_end_ms must not precede day_start_ms")
        return session_stats(
            self._ledger_store.get_ledger(user_id), day_start_ms, day_end_ms
        )

    def reset(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id must be non-empty")
        self._ledger_store.reset(user_id)
