"""Signal ledger: time-windowed interaction history and derived tag affinities.

Everything here is pure. A :class:`SignalLedger` is an immutable snapshot;
every update returns a new ledger whose ``tag_affinities`` are recomputed
from its signals on construction, so the two can never disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from matching.models import CandidateProfile, InteractionSignal, Outcome

logger = logging.getLogger(__name__)

DECAY_WINDOW_MS = 7 * 24 * 60 * 60 * 1000
NEUTRAL_AFFINITY = 0.5

# Per-event score = dwell weight x outcome weight x detail-view weight
_DWELL_UNIT_MS = 4000.0
_DWELL_CAP = 2.5
_LIKE_WEIGHT = 1.5
_PASS_WEIGHT = 0.4
_DETAIL_VIEW_WEIGHT = 1.8

# Swipe pacing: this many swipes inside this window counts as too fast.
_PACING_SWIPES = 15
_PACING_WINDOW_MS = 120_000


def decay(signals: Iterable[InteractionSignal], now_ms: int) -> list[InteractionSignal]:
    """Drop signals that are at least :data:`DECAY_WINDOW_MS` old.

    A signal exactly on the cutoff is dropped.
    """
    cutoff = now_ms - DECAY_WINDOW_MS
    return [s for s in signals if s.timestamp_ms > cutoff]


def event_score(signal: InteractionSignal) -> float:
    """Return the strength of a single interaction."""
    dwell_weight = min(signal.dwell_ms / _DWELL_UNIT_MS, _DWELL_CAP)
    outcome_weight = _LIKE_WEIGHT if signal.outcome == Outcome.LIKE else _PASS_WEIGHT
    detail_weight = _DETAIL_VIEW_WEIGHT if signal.detail_view_opened else 1.0
    return dwell_weight * outcome_weight * detail_weight


def compute_affinities(signals: Iterable[InteractionSignal]) -> dict[str, float]:
    """Derive per-tag affinity weights in [0, 1] from *signals*.

    Each tag's affinity is the mean :func:`event_score` of the signals that
    carry it, divided by the highest such mean, so the strongest tag is
    always exactly 1.0. Tags are lower-cased.

    Returns:
        Mapping of tag to weight. Empty when there are no signals or when
        every signal scored zero.
    """
    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    for signal in signals:
        score = event_score(signal)
        for tag in signal.tags:
            key = tag.lower()
            totals[key] = totals.get(key, 0.0) + score
            counts[key] = counts.get(key, 0) + 1

    averages = {tag: totals[tag] / counts[tag] for tag in totals}
    max_avg = max(averages.values(), default=0.0)
    if max_avg <= 0.0:
        return {}
    return {tag: avg / max_avg for tag, avg in averages.items()}


@dataclass(frozen=True)
class SignalLedger:
    """One user's decayed interaction history.

    Attributes:
        signals: Interaction signals, oldest first.
        tag_affinities: Read-only tag → weight mapping, always equal to
            ``compute_affinities(signals)``.
    """

    signals: tuple[InteractionSignal, ...] = ()
    tag_affinities: Mapping[str, float] = field(
        init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.signals, key=lambda s: s.timestamp_ms))
        object.__setattr__(self, "signals", ordered)
        object.__setattr__(
            self, "tag_affinities", MappingProxyType(compute_affinities(ordered))
        )

    @classmethod
    def empty(cls) -> SignalLedger:
        return cls()

    @classmethod
    def from_signals(
        cls, signals: Iterable[InteractionSignal], now_ms: int
    ) -> SignalLedger:
        """Build a ledger from raw history, applying decay first."""
        return cls(signals=tuple(decay(signals, now_ms)))

    def __len__(self) -> int:
        return len(self.signals)


def record_signal(
    ledger: SignalLedger, signal: InteractionSignal, now_ms: int
) -> SignalLedger:
    """Return a new ledger with *signal* appended and stale signals dropped.

    The new signal goes through decay like the rest, so recording an event
    that is already outside the window leaves no trace in the affinities.

    Args:
        ledger: The current ledger snapshot. Not modified.
        signal: The interaction to add.
        now_ms: Current time in epoch milliseconds.

    Returns:
        A fresh :class:`SignalLedger`.
    """
    return SignalLedger.from_signals((*ledger.signals, signal), now_ms)


def refresh(ledger: SignalLedger, now_ms: int) -> SignalLedger:
    """Re-apply decay without adding anything; returns *ledger* if nothing expired."""
    kept = decay(ledger.signals, now_ms)
    if len(kept) == len(ledger.signals):
        return ledger
    logger.debug("Decay dropped %d signal(s).", len(ledger.signals) - len(kept))
    return SignalLedger(signals=tuple(kept))


def affinity_for(ledger: SignalLedger | None, candidate: CandidateProfile) -> float:
    """Mean affinity over the candidate's tags that the ledger knows about.

    Returns :data:`NEUTRAL_AFFINITY` for an empty or missing ledger, or when
    none of the candidate's tags have a recorded affinity, so behaviourally
    unknown candidates are not penalised.
    """
    if ledger is None or not ledger.tag_affinities:
        return NEUTRAL_AFFINITY
    affinities = ledger.tag_affinities
    matched = [affinities[t.lower()] for t in candidate.tags if t.lower() in affinities]
    if not matched:
        return NEUTRAL_AFFINITY
    return sum(matched) / len(matched)


# ---------------------------------------------------------------------------
# Session pacing and stats
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionStats:
    """Counts over one day of a user's signals."""

    likes: int
    passes: int
    avg_dwell_ms: float
    detail_views: int
    total: int


def session_stats(
    ledger: SignalLedger, day_start_ms: int, day_end_ms: int
) -> SessionStats:
    """Summarise the signals with ``day_start_ms <= timestamp_ms < day_end_ms``."""
    day = [s for s in ledger.signals if day_start_ms <= s.timestamp_ms < day_end_ms]
    likes = sum(1 for s in day if s.outcome == Outcome.LIKE)
    avg_dwell = sum(s.dwell_ms for s in day) / len(day) if day else 0.0
    return SessionStats(
        likes=likes,
        passes=len(day) - likes,
        avg_dwell_ms=avg_dwell,
        detail_views=sum(1 for s in day if s.detail_view_opened),
        total=len(day),
    )


def is_swiping_too_fast(swipe_times_ms: Sequence[int]) -> bool:
    """True when the last 15 swipes all landed within two minutes."""
    if len(swipe_times_ms) < _PACING_SWIPES:
        return False
    recent = swipe_times_ms[-_PACING_SWIPES:]
    return recent[-1] - recent[0] < _PACING_WINDOW_MS
