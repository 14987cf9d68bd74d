"""Shared pytest fixtures for all matching tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from matching.models import CandidateProfile, InteractionSignal, UserPreferences


NOW_MS = 1_717_243_200_000  # 2024-06-01 12:00:00 UTC
DAY_MS = 24 * 60 * 60 * 1000

BIO_60 = "Coffee first, then galleries. Coffee first, then galleries. "

# ---------------------------------------------------------------------------
# Defaults: a woman looking for men, and a man looking for women
# ---------------------------------------------------------------------------

_PREFS_DEFAULTS: dict[str, Any] = {
    "tags": ["coffee", "art"],
    "age": 25,
    "max_distance": 10.0,
    "personality": "INFJ",
    "smoker": False,
    "cannabis": False,
    "children": "maybe",
    "intent": "serious",
    "exclusivity": "monogamous",
    "gender": "woman",
    "looking_for": {"man"},
}

_CANDIDATE_DEFAULTS: dict[str, Any] = {
    "profile_id": "c1",
    "name": "James",
    "age": 27,
    "bio": BIO_60,
    "tags": ["coffee", "hiking"],
    "location": "Manhattan, NY",
    "distance": 5.0,
    "personality": "ENFP",
    "smoker": False,
    "cannabis": True,
    "children": "yes",
    "intent": "serious",
    "exclusivity": "monogamous",
    "gender": "man",
    "looking_for": {"woman"},
}

_SIGNAL_DEFAULTS: dict[str, Any] = {
    "candidate_id": "c1",
    "dwell_ms": 4000,
    "detail_view_opened": False,
    "outcome": "like",
    "tags": ["coffee"],
    "timestamp_ms": NOW_MS - 1000,
}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_prefs() -> Callable[..., UserPreferences]:
    def _make(**overrides: Any) -> UserPreferences:
        return UserPreferences(**{**_PREFS_DEFAULTS, **overrides})
    return _make


@pytest.fixture
def make_candidate() -> Callable[..., CandidateProfile]:
    def _make(**overrides: Any) -> CandidateProfile:
        return CandidateProfile(**{**_CANDIDATE_DEFAULTS, **overrides})
    return _make


@pytest.fixture
def make_signal() -> Callable[..., InteractionSignal]:
    def _make(**overrides: Any) -> InteractionSignal:
        return InteractionSignal(**{**_SIGNAL_DEFAULTS, **overrides})
    return _make


# ---------------------------------------------------------------------------
# Ready-made objects
# ---------------------------------------------------------------------------


@pytest.fixture
def prefs(make_prefs) -> UserPreferences:
    """The requesting user: INFJ woman, 25, into coffee and art."""
    return make_prefs()


@pytest.fixture
def candidate(make_candidate) -> CandidateProfile:
    """A 27-year-old ENFP man 5 miles away who likes coffee and hiking."""
    return make_candidate()


@pytest.fixture
def sample_candidates(make_candidate) -> list[CandidateProfile]:
    """Eight eligible candidates spread over all four personality families."""
    return [
        make_candidate(profile_id="p1", tags=["coffee", "art"], personality="INFJ", age=25),
        make_candidate(profile_id="p2", tags=["coffee", "hiking"], personality="ENFP"),
        make_candidate(profile_id="p3", tags=["music", "guitar"], personality="ENFJ", age=23),
        make_candidate(profile_id="p4", tags=["fitness", "gym"], personality="ESTP", distance=12.3),
        make_candidate(profile_id="p5", tags=["art", "film"], personality="ISFP", distance=3.2),
        make_candidate(profile_id="p6", tags=["cocktails"], personality="ENTP", distance=9.5),
        make_candidate(profile_id="p7", tags=["reading", "design"], personality="ISTJ", age=22),
        make_candidate(profile_id="p8", tags=["cooking", "wine"], personality="ESFJ", age=30),
    ]
