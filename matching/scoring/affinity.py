"""Blends the static score with the learned behavioural affinity."""

from __future__ import annotations

# Behavioural share ramps linearly to this ceiling over the first few signals.
BEHAVIORAL_CEILING = 0.20
RAMP_SIGNAL_COUNT = 10


def behavioral_weight(signal_count: int) -> float:
    """Return the share of the final score given to behavioural affinity.

    Zero with no recorded signals (pure cold start), rising linearly to
    :data:`BEHAVIORAL_CEILING` at :data:`RAMP_SIGNAL_COUNT` signals and
    flat after that.
    """
    if signal_count <= 0:
        return 0.0
    return min(signal_count / RAMP_SIGNAL_COUNT, 1.0) * BEHAVIORAL_CEILING


def blend(static_score: float, affinity_score: float, signal_count: int) -> float:
    """Combine the two scores using the evidence-dependent weight.

    Args:
        static_score: Preference-only compatibility in [0, 1].
        affinity_score: Behavioural affinity in [0, 1].
        signal_count: Number of signals in the user's (decayed) ledger.

    Returns:
        The blended score. Equal to *static_score* exactly when
        *signal_count* is zero.
    """
    weight = behavioral_weight(signal_count)
    if weight == 0.0:
        return static_score
    return static_score * (1.0 - weight) + affinity_score * weight
