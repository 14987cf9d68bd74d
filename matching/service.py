"""gRPC servicer: the entry point for all inbound calls from the app backend."""

from __future__ import annotations

import logging
import time
from typing import Any

import grpc
from google.protobuf import struct_pb2

from matching.engine import MatchEngine
from matching.ledger_store import LedgerStore
from matching.wire import (
    breakdown_to_dict,
    dict_to_struct,
    preferences_from_dict,
    signal_from_dict,
    struct_to_dict,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "span.MatchRanking"

_RPC_METHODS = (
    "RankCandidates",
    "RecordSignal",
    "ExplainScore",
    "ResetLedger",
    "GetSessionStats",
)

_RANK_WARN_THRESHOLD_MS = 200


class MatchRankingServicer:
    """Implements the ``span.MatchRanking`` gRPC service.

    Every RPC takes and returns a ``google.protobuf.Struct``; see
    :mod:`matching.wire` for the field layout. Register with a server via
    :func:`register_servicer`.

    Args:
        engine: The :class:`~matching.engine.MatchEngine`.
        ledger_store: The :class:`~matching.ledger_store.LedgerStore`.
    """

    def __init__(self, engine: MatchEngine, ledger_store: LedgerStore) -> None:
        self._engine = engine
        self._store = ledger_store

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def RankCandidates(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return ranked candidate IDs for a user.

        Request fields: ``user_id``, ``preferences``, optional ``query`` and
        ``limit``. Response: ``candidate_ids``.
        """
        data = struct_to_dict(request)
        user_id = data.get("user_id") or ""
        if not user_id:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details("user_id must be non-empty")
            return dict_to_struct({})

        start_ms = time.monotonic() * 1000
        try:
            prefs = preferences_from_dict(data.get("preferences") or {})
            limit = data.get("limit")
            query = data.get("query")
            if query is not None and not isinstance(query, str):
                raise ValueError(f"query must be a string, got {query!r}")
            ranked = self._engine.get_ranked_candidates(
                user_id,
                prefs,
                query=query,
                limit=int(limit) if limit is not None else None,
            )
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return dict_to_struct({})
        except Exception:
            logger.exception("Unexpected error ranking candidates for user=%r", user_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error ranking candidates.")
            return dict_to_struct({})
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _RANK_WARN_THRESHOLD_MS:
                logger.warning(
                    "RankCandidates for user=%r took %.1fms", user_id, elapsed_ms
                )
            else:
                logger.debug("RankCandidates for user=%r took %.1fms", user_id, elapsed_ms)

        return dict_to_struct({"candidate_ids": [c.profile_id for c in ranked]})

    def ExplainScore(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return the score breakdown of one candidate.

        Request fields: ``user_id``, ``candidate_id``, ``preferences``.
        """
        data = struct_to_dict(request)
        try:
            prefs = preferences_from_dict(data.get("preferences") or {})
            breakdown = self._engine.explain(
                data.get("user_id") or "", data.get("candidate_id") or "", prefs
            )
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return dict_to_struct({})
        except Exception:
            logger.exception("Error explaining score for request=%r", data)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error explaining score.")
            return dict_to_struct({})
        return dict_to_struct(breakdown_to_dict(breakdown))

    # ------------------------------------------------------------------
    # Ledger updates
    # ------------------------------------------------------------------

    def RecordSignal(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Record one interaction.

        Request fields: ``user_id``, ``signal``. Response: ``signal_count``
        (signals in the decayed ledger) and ``swiping_too_fast``.
        """
        data = struct_to_dict(request)
        user_id = data.get("user_id") or ""
        try:
            signal = signal_from_dict(data.get("signal") or {})
            ledger = self._engine.record_signal(user_id, signal)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return dict_to_struct({})
        except Exception:
            logger.exception("Error recording signal for user=%r", user_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error recording signal.")
            return dict_to_struct({})
        return dict_to_struct({
            "signal_count": len(ledger),
            "swiping_too_fast": self._store.is_swiping_too_fast(user_id),
        })

    def ResetLedger(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Clear a user's behavioural history (explicit reset or logout)."""
        data = struct_to_dict(request)
        try:
            self._engine.reset(data.get("user_id") or "")
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
        except Exception:
            logger.exception("Error resetting ledger for request=%r", data)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error resetting ledger.")
        return dict_to_struct({})

    def GetSessionStats(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Summarise a user's likes, passes and dwell over a time range.

        Request fields: ``user_id``, ``day_start_ms``, ``day_end_ms``.
        """
        data = struct_to_dict(request)
        try:
            start = data.get("day_start_ms")
            end = data.get("day_end_ms")
            if start is None or end is None:
                raise ValueError("day_start_ms and day_end_ms are required")
            stats = self._engine.session_stats(
                data.get("user_id") or "", int(start), int(end)
            )
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return dict_to_struct({})
        except Exception:
            logger.exception("Error computing session stats for request=%r", data)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error computing session stats.")
            return dict_to_struct({})
        return dict_to_struct({
            "likes": stats.likes,
            "passes": stats.passes,
            "avg_dwell_ms": stats.avg_dwell_ms,
            "detail_views": stats.detail_views,
            "total": stats.total,
        })


def register_servicer(servicer: MatchRankingServicer, server: grpc.Server) -> None:
    """Install *servicer*'s RPCs on *server* under :data:`SERVICE_NAME`."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=struct_pb2.Struct.FromString,
            response_serializer=struct_pb2.Struct.SerializeToString,
        )
        for name in _RPC_METHODS
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )
