"""Tests for matching.models dataclasses."""

import dataclasses

import pytest

from matching.models import (
    UNKNOWN_PERSONALITY,
    CandidateProfile,
    ChildrenPreference,
    Exclusivity,
    InteractionSignal,
    Outcome,
    RelationshipIntent,
)


class TestCandidateProfile:
    def test_basic_creation(self, candidate: CandidateProfile) -> None:
        assert candidate.profile_id == "c1"
        assert candidate.tags == ("coffee", "hiking")
        assert candidate.looking_for == frozenset({"woman"})

    def test_enum_fields_are_coerced(self, candidate: CandidateProfile) -> None:
        assert candidate.children is ChildrenPreference.YES
        assert candidate.intent is RelationshipIntent.SERIOUS
        assert candidate.exclusivity is Exclusivity.MONOGAMOUS

    def test_is_immutable(self, candidate: CandidateProfile) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            candidate.age = 40  # type: ignore[misc]

    def test_unknown_personality_sentinel_accepted(self, make_candidate) -> None:
        profile = make_candidate(personality=UNKNOWN_PERSONALITY)
        assert profile.personality == "XXXX"

    @pytest.mark.parametrize("overrides", [
        {"profile_id": ""},
        {"age": -1},
        {"distance": -0.5},
        {"personality": "ABCD"},
        {"intent": "situationship"},
        {"children": "someday"},
        {"exclusivity": "poly"},
    ])
    def test_invalid_fields_raise(self, make_candidate, overrides) -> None:
        with pytest.raises(ValueError):
            make_candidate(**overrides)

    def test_reflection_defaults_to_none(self, candidate: CandidateProfile) -> None:
        assert candidate.reflection is None


class TestUserPreferences:
    def test_negative_max_distance_raises(self, make_prefs) -> None:
        with pytest.raises(ValueError):
            make_prefs(max_distance=-1)

    def test_invalid_personality_raises(self, make_prefs) -> None:
        with pytest.raises(ValueError):
            make_prefs(personality="infj")

    def test_looking_for_is_frozenset(self, make_prefs) -> None:
        prefs = make_prefs(looking_for=["man", "woman"])
        assert prefs.looking_for == frozenset({"man", "woman"})


class TestInteractionSignal:
    def test_outcome_is_string_enum(self, make_signal) -> None:
        signal = make_signal(outcome="pass")
        assert signal.outcome is Outcome.PASS
        assert signal.outcome == "pass"

    def test_identity(self, make_signal) -> None:
        signal = make_signal(candidate_id="c9", timestamp_ms=123)
        assert signal.identity == ("c9", 123)

    def test_equal_signals_are_equal(self, make_signal) -> None:
        assert make_signal() == make_signal()

    def test_negative_dwell_raises(self, make_signal) -> None:
        with pytest.raises(ValueError):
            make_signal(dwell_ms=-5)

    def test_empty_candidate_id_raises(self) -> None:
        with pytest.raises(ValueError):
            InteractionSignal("", 100, False, "like", ["x"], 1)
