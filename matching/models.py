"""Core domain dataclasses shared across all matching modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

UNKNOWN_PERSONALITY = "XXXX"

PERSONALITY_TYPES: frozenset[str] = frozenset({
    "INFJ", "INFP", "ENFJ", "ENFP",
    "INTJ", "INTP", "ENTJ", "ENTP",
    "ISFJ", "ISTJ", "ESFJ", "ESTJ",
    "ISFP", "ISTP", "ESFP", "ESTP",
})


class Outcome(str, Enum):
    """What the user did with a candidate card."""

    LIKE = "like"
    PASS = "pass"


class ChildrenPreference(str, Enum):
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class RelationshipIntent(str, Enum):
    CASUAL = "casual"
    SERIOUS = "serious"
    FRIENDS = "friends"
    OPEN = "open"


class Exclusivity(str, Enum):
    MONOGAMOUS = "monogamous"
    NON_MONOGAMOUS = "non-monogamous"
    OPEN = "open"


def _check_personality(code: str) -> None:
    if code != UNKNOWN_PERSONALITY and code not in PERSONALITY_TYPES:
        raise ValueError(
            f"Personality must be one of the 16 type codes or "
            f"{UNKNOWN_PERSONALITY!r}, got {code!r}"
        )


@dataclass(frozen=True)
class CandidateProfile:
    """A profile that can be shown to a user.

    Profiles arrive fully formed from the profile source and are never
    mutated by the ranking code.

    Attributes:
        profile_id: Unique identifier for the profile.
        name: Display name.
        age: Age in years.
        bio: Free-text bio. Its length feeds the bio-depth sub-score.
        tags: Free-form interest tags (compared case-insensitively).
        location: Human-readable location string.
        distance: Distance from the requesting user, in the same unit as
            :attr:`UserPreferences.max_distance`.
        personality: One of the 16 four-letter type codes, or
            :data:`UNKNOWN_PERSONALITY` when the profile has none.
        smoker: Whether the candidate smokes.
        cannabis: Whether the candidate uses cannabis.
        children: Whether the candidate wants children.
        intent: What kind of relationship the candidate is after.
        exclusivity: The candidate's exclusivity preference.
        gender: The candidate's gender identity.
        looking_for: Genders the candidate is open to.
        reflection: Optional short reflective answer.
    """

    profile_id: str
    name: str
    age: int
    bio: str
    tags: tuple[str, ...]
    location: str
    distance: float
    personality: str
    smoker: bool
    cannabis: bool
    children: ChildrenPreference
    intent: RelationshipIntent
    exclusivity: Exclusivity
    gender: str
    looking_for: frozenset[str]
    reflection: str | None = None

    def __post_init__(self) -> None:
        if not self.profile_id:
            raise ValueError("profile_id must be non-empty")
        if self.age < 0:
            raise ValueError(f"Age must be non-negative, got {self.age!r}")
        if self.distance < 0:
            raise ValueError(f"Distance must be non-negative, got {self.distance!r}")
        _check_personality(self.personality)
        # Accept plain lists/sets from callers but store immutable copies.
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "looking_for", frozenset(self.looking_for))
        object.__setattr__(self, "children", ChildrenPreference(self.children))
        object.__setattr__(self, "intent", RelationshipIntent(self.intent))
        object.__setattr__(self, "exclusivity", Exclusivity(self.exclusivity))


@dataclass(frozen=True)
class UserPreferences:
    """The requesting user's own stated values and what they are looking for.

    Attributes:
        tags: Tags the user wants to see in candidates.
        age: The user's target age.
        max_distance: Furthest acceptable candidate distance.
        personality: The user's own type code (or the sentinel).
        smoker: Whether the user smokes.
        cannabis: Whether the user uses cannabis.
        children: Whether the user wants children.
        intent: What kind of relationship the user is after.
        exclusivity: The user's exclusivity preference.
        gender: The user's own gender identity.
        looking_for: Genders the user is open to.
    """

    tags: tuple[str, ...]
    age: int
    max_distance: float
    personality: str
    smoker: bool
    cannabis: bool
    children: ChildrenPreference
    intent: RelationshipIntent
    exclusivity: Exclusivity
    gender: str
    looking_for: frozenset[str]

    def __post_init__(self) -> None:
        if self.age < 0:
            raise ValueError(f"Age must be non-negative, got {self.age!r}")
        if self.max_distance < 0:
            raise ValueError(
                f"max_distance must be non-negative, got {self.max_distance!r}"
            )
        _check_personality(self.personality)
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "looking_for", frozenset(self.looking_for))
        object.__setattr__(self, "children", ChildrenPreference(self.children))
        object.__setattr__(self, "intent", RelationshipIntent(self.intent))
        object.__setattr__(self, "exclusivity", Exclusivity(self.exclusivity))


@dataclass(frozen=True)
class InteractionSignal:
    """A single implicit-feedback event: the user looked at a candidate card.

    Attributes:
        candidate_id: The profile the user interacted with.
        dwell_ms: How long the card was on screen, in milliseconds.
        detail_view_opened: Whether the user opened the detail drawer.
        outcome: Like or pass.
        tags: The candidate's tags at the time of the interaction.
        timestamp_ms: When the interaction happened (epoch milliseconds).
    """

    candidate_id: str
    dwell_ms: int
    detail_view_opened: bool
    outcome: Outcome
    tags: tuple[str, ...]
    timestamp_ms: int

    def __post_init__(self) -> None:
        if not self.candidate_id:
            raise ValueError("candidate_id must be non-empty")
        if self.dwell_ms < 0:
            raise ValueError(f"dwell_ms must be non-negative, got {self.dwell_ms!r}")
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "outcome", Outcome(self.outcome))

    @property
    def identity(self) -> tuple[str, int]:
        """Stable key used to de-duplicate re-delivered signals."""
        return (self.candidate_id, self.timestamp_ms)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Every number that went into placing one candidate.

    Attributes:
        sub_scores: Named static sub-scores, each in [0, 1].
        static_score: Weighted combination of :attr:`sub_scores`.
        affinity: Behavioural affinity from the user's signal ledger.
        behavioral_weight: Share of the final score given to :attr:`affinity`.
        final_score: The blended score the ranker sorts on.
    """

    sub_scores: dict[str, float] = field(default_factory=dict)
    static_score: float = 0.0
    affinity: float = 0.5
    behavioral_weight: float = 0.0
    final_score: float = 0.0
