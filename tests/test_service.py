"""Tests for MatchRankingServicer (gRPC service layer)."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import grpc
from google.protobuf import struct_pb2

from matching.ledger import SessionStats, SignalLedger
from matching.models import ScoreBreakdown
from matching.service import SERVICE_NAME, MatchRankingServicer, register_servicer
from matching.wire import dict_to_struct, struct_to_dict


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PREFS_DOC: dict[str, Any] = {
    "tags": ["coffee"],
    "age": 25,
    "max_distance": 10,
    "personality": "INFJ",
    "children": "maybe",
    "intent": "serious",
    "exclusivity": "monogamous",
    "gender": "woman",
    "looking_for": ["man"],
}

SIGNAL_DOC: dict[str, Any] = {
    "candidate_id": "c1",
    "dwell_ms": 3000,
    "outcome": "like",
    "tags": ["coffee"],
    "timestamp_ms": 1_717_243_200_000,
}


def _make_context() -> MagicMock:
    """Return a mock gRPC context."""
    ctx = MagicMock()
    ctx.set_code = MagicMock()
    ctx.set_details = MagicMock()
    return ctx


def _make_servicer(
    ranked_ids: list[str] | None = None,
    engine_raises: Exception | None = None,
) -> MatchRankingServicer:
    engine = MagicMock()
    if engine_raises:
        engine.get_ranked_candidates.side_effect = engine_raises
    else:
        engine.get_ranked_candidates.return_value = [
            MagicMock(profile_id=pid) for pid in (ranked_ids or ["p1", "p2", "p3"])
        ]
    store = MagicMock()
    store.is_swiping_too_fast.return_value = False
    return MatchRankingServicer(engine=engine, ledger_store=store)


def _call(method, payload: dict[str, Any], ctx: MagicMock | None = None) -> dict[str, Any]:
    response = method(dict_to_struct(payload), ctx or _make_context())
    assert isinstance(response, struct_pb2.Struct)
    return struct_to_dict(response)


# ---------------------------------------------------------------------------
# RankCandidates
# ---------------------------------------------------------------------------


class TestRankCandidates:
    def test_returns_ranked_ids(self) -> None:
        servicer = _make_servicer(["p3", "p1"])
        result = _call(servicer.RankCandidates, {"user_id": "u1", "preferences": PREFS_DOC})
        assert result == {"candidate_ids": ["p3", "p1"]}

    def test_passes_query_and_limit(self) -> None:
        servicer = _make_servicer()
        _call(servicer.RankCandidates, {
            "user_id": "u1", "preferences": PREFS_DOC, "query": "art", "limit": 5,
        })
        args, kwargs = servicer._engine.get_ranked_candidates.call_args
        assert args[0] == "u1"
        assert args[1].tags == ("coffee",)
        assert kwargs == {"query": "art", "limit": 5}

    def test_empty_user_id_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        _call(servicer.RankCandidates, {"user_id": "", "preferences": PREFS_DOC}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        servicer._engine.get_ranked_candidates.assert_not_called()

    def test_bad_preferences_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        prefs = dict(PREFS_DOC)
        del prefs["gender"]
        result = _call(servicer.RankCandidates, {"user_id": "u1", "preferences": prefs}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        assert result == {}

    def test_engine_error_sets_internal_status(self) -> None:
        servicer = _make_servicer(engine_raises=RuntimeError("boom"))
        ctx = _make_context()
        result = _call(servicer.RankCandidates, {"user_id": "u1", "preferences": PREFS_DOC}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INTERNAL)
        assert result == {}

    def test_engine_value_error_is_invalid_argument(self) -> None:
        servicer = _make_servicer(engine_raises=ValueError("limit must be non-negative"))
        ctx = _make_context()
        _call(servicer.RankCandidates, {"user_id": "u1", "preferences": PREFS_DOC}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        ctx.set_details.assert_called_with("limit must be non-negative")

    def test_non_string_query_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        _call(servicer.RankCandidates, {
            "user_id": "u1", "preferences": PREFS_DOC, "query": 42,
        }, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        servicer._engine.get_ranked_candidates.assert_not_called()


# ---------------------------------------------------------------------------
# RecordSignal
# ---------------------------------------------------------------------------


class TestRecordSignal:
    def test_records_and_reports(self, make_signal) -> None:
        servicer = _make_servicer()
        servicer._engine.record_signal.return_value = SignalLedger(signals=(make_signal(),))
        servicer._store.is_swiping_too_fast.return_value = True
        result = _call(servicer.RecordSignal, {"user_id": "u1", "signal": SIGNAL_DOC})
        assert result == {"signal_count": 1.0, "swiping_too_fast": True}
        user_id, signal = servicer._engine.record_signal.call_args.args
        assert user_id == "u1"
        assert signal.candidate_id == "c1"
        assert signal.dwell_ms == 3000

    def test_malformed_signal_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        _call(servicer.RecordSignal, {"user_id": "u1", "signal": {"candidate_id": "c1"}}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        servicer._engine.record_signal.assert_not_called()

    def test_store_error_sets_internal_status(self) -> None:
        servicer = _make_servicer()
        servicer._engine.record_signal.side_effect = RuntimeError("db error")
        ctx = _make_context()
        _call(servicer.RecordSignal, {"user_id": "u1", "signal": SIGNAL_DOC}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INTERNAL)


# ---------------------------------------------------------------------------
# ExplainScore / ResetLedger / GetSessionStats
# ---------------------------------------------------------------------------


class TestExplainScore:
    def test_returns_breakdown(self) -> None:
        servicer = _make_servicer()
        servicer._engine.explain.return_value = ScoreBreakdown(
            sub_scores={"tags": 0.5}, static_score=0.5, affinity=0.5,
            behavioral_weight=0.0, final_score=0.5,
        )
        result = _call(servicer.ExplainScore, {
            "user_id": "u1", "candidate_id": "c1", "preferences": PREFS_DOC,
        })
        assert result["final_score"] == 0.5
        assert result["sub_scores"] == {"tags": 0.5}

    def test_unknown_candidate_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        servicer._engine.explain.side_effect = ValueError("Unknown candidate 'c9'")
        ctx = _make_context()
        _call(servicer.ExplainScore, {
            "user_id": "u1", "candidate_id": "c9", "preferences": PREFS_DOC,
        }, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestResetLedger:
    def test_calls_engine(self) -> None:
        servicer = _make_servicer()
        assert _call(servicer.ResetLedger, {"user_id": "u1"}) == {}
        servicer._engine.reset.assert_called_once_with("u1")

    def test_error_sets_internal_status(self) -> None:
        servicer = _make_servicer()
        servicer._engine.reset.side_effect = RuntimeError("boom")
        ctx = _make_context()
        _call(servicer.ResetLedger, {"user_id": "u1"}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INTERNAL)


class TestGetSessionStats:
    def test_returns_stats(self) -> None:
        servicer = _make_servicer()
        servicer._engine.session_stats.return_value = SessionStats(
            likes=2, passes=1, avg_dwell_ms=2500.0, detail_views=1, total=3
        )
        result = _call(servicer.GetSessionStats, {
            "user_id": "u1", "day_start_ms": 0, "day_end_ms": 86_400_000,
        })
        assert result == {
            "likes": 2.0, "passes": 1.0, "avg_dwell_ms": 2500.0,
            "detail_views": 1.0, "total": 3.0,
        }
        servicer._engine.session_stats.assert_called_once_with("u1", 0, 86_400_000)

    def test_missing_range_is_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        _call(servicer.GetSessionStats, {"user_id": "u1", "day_start_ms": 0}, ctx)
        ctx.set_code.assert_called_with(grpc.StatusCode.INVALID_ARGUMENT)
        servicer._engine.session_stats.assert_not_called()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegisterServicer:
    def test_adds_generic_handler(self) -> None:
        server = MagicMock()
        register_servicer(_make_servicer(), server)
        server.add_generic_rpc_handlers.assert_called_once()
        (handlers,) = server.add_generic_rpc_handlers.call_args.args
        assert len(handlers) == 1
        assert SERVICE_NAME == "span.MatchRanking"
