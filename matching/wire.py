"""Wire conversions between ``google.protobuf.Struct`` messages and domain objects.

The ranking service and the backend both speak gRPC with ``Struct``
payloads, so no generated code is needed on either side. Field names on
the wire are snake_case.
"""

from __future__ import annotations

from typing import Any, Mapping

import grpc
from google.protobuf import json_format, struct_pb2

from matching.models import (
    UNKNOWN_PERSONALITY,
    CandidateProfile,
    InteractionSignal,
    ScoreBreakdown,
    UserPreferences,
)

BACKEND_SERVICE = "span.Backend"


class BackendStub:
    """Client stub for the backend document store.

    Mirrors the shape of a generated stub: each RPC is an attribute holding a
    unary-unary callable that takes and returns a ``Struct``.

    ==============  ==============================  =====================
    RPC             Request                         Response
    ==============  ==============================  =====================
    ListProfiles    ``{}``                          ``{profiles: [...]}``
    LoadSignals     ``{user_id}``                   ``{signals: [...]}``
    SaveSignals     ``{batches: [{user_id, ...}]}``  ``{}``
    ==============  ==============================  =====================

    Args:
        channel: An open :class:`grpc.Channel` to the backend.
    """

    def __init__(self, channel: grpc.Channel) -> None:
        self.ListProfiles = _unary(channel, "ListProfiles")
        self.LoadSignals = _unary(channel, "LoadSignals")
        self.SaveSignals = _unary(channel, "SaveSignals")


def _unary(channel: grpc.Channel, method: str) -> Any:
    return channel.unary_unary(
        f"/{BACKEND_SERVICE}/{method}",
        request_serializer=struct_pb2.Struct.SerializeToString,
        response_deserializer=struct_pb2.Struct.FromString,
    )


# ---------------------------------------------------------------------------
# Struct <-> dict
# ---------------------------------------------------------------------------


def struct_to_dict(msg: struct_pb2.Struct) -> dict[str, Any]:
    return json_format.MessageToDict(msg)


def dict_to_struct(data: Mapping[str, Any]) -> struct_pb2.Struct:
    msg = struct_pb2.Struct()
    msg.update(dict(data))
    return msg


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValueError(f"Missing required field {key!r}")
    return data[key]


def _as_int(data: Mapping[str, Any], key: str) -> int:
    value = _require(data, key)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field {key!r} must be a number, got {value!r}") from exc


def _as_float(data: Mapping[str, Any], key: str) -> float:
    value = _require(data, key)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field {key!r} must be a number, got {value!r}") from exc


def _as_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"Field {key!r} must be a boolean, got {value!r}")
    return value


def _as_str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Field {key!r} must be a list, got {value!r}")
    return [str(v) for v in value]


# ---------------------------------------------------------------------------
# Domain decoders / encoders
# ---------------------------------------------------------------------------


def candidate_from_dict(data: Mapping[str, Any]) -> CandidateProfile:
    """Decode a profile document.

    A missing or empty personality code becomes
    :data:`~matching.models.UNKNOWN_PERSONALITY`.

    Raises:
        ValueError: If a required field is missing or ill-typed.
    """
    return CandidateProfile(
        profile_id=str(_require(data, "id")),
        name=str(data.get("name", "")),
        age=_as_int(data, "age"),
        bio=str(data.get("bio", "")),
        tags=_as_str_list(data, "tags"),
        location=str(data.get("location", "")),
        distance=_as_float(data, "distance"),
        personality=str(data.get("personality") or UNKNOWN_PERSONALITY).upper(),
        smoker=_as_bool(data, "smoker"),
        cannabis=_as_bool(data, "cannabis"),
        children=_require(data, "children"),
        intent=_require(data, "intent"),
        exclusivity=_require(data, "exclusivity"),
        gender=str(_require(data, "gender")),
        looking_for=_as_str_list(data, "looking_for"),
        reflection=data.get("reflection"),
    )


def candidate_to_dict(candidate: CandidateProfile) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": candidate.profile_id,
        "name": candidate.name,
        "age": candidate.age,
        "bio": candidate.bio,
        "tags": list(candidate.tags),
        "location": candidate.location,
        "distance": candidate.distance,
        "personality": candidate.personality,
        "smoker": candidate.smoker,
        "cannabis": candidate.cannabis,
        "children": candidate.children.value,
        "intent": candidate.intent.value,
        "exclusivity": candidate.exclusivity.value,
        "gender": candidate.gender,
        "looking_for": sorted(candidate.looking_for),
    }
    if candidate.reflection is not None:
        data["reflection"] = candidate.reflection
    return data


def preferences_from_dict(data: Mapping[str, Any]) -> UserPreferences:
    """Decode the requesting user's preferences.

    Raises:
        ValueError: If a required field is missing or ill-typed.
    """
    return UserPreferences(
        tags=_as_str_list(data, "tags"),
        age=_as_int(data, "age"),
        max_distance=_as_float(data, "max_distance"),
        personality=str(data.get("personality") or UNKNOWN_PERSONALITY).upper(),
        smoker=_as_bool(data, "smoker"),
        cannabis=_as_bool(data, "cannabis"),
        children=_require(data, "children"),
        intent=_require(data, "intent"),
        exclusivity=_require(data, "exclusivity"),
        gender=str(_require(data, "gender")),
        looking_for=_as_str_list(data, "looking_for"),
    )


def signal_from_dict(data: Mapping[str, Any]) -> InteractionSignal:
    """Decode an interaction signal.

    Raises:
        ValueError: If a required field is missing or ill-typed.
    """
    return InteractionSignal(
        candidate_id=str(_require(data, "candidate_id")),
        dwell_ms=_as_int(data, "dwell_ms"),
        detail_view_opened=_as_bool(data, "detail_view_opened"),
        outcome=_require(data, "outcome"),
        tags=_as_str_list(data, "tags"),
        timestamp_ms=_as_int(data, "timestamp_ms"),
    )


def signal_to_dict(signal: InteractionSignal) -> dict[str, Any]:
    return {
        "candidate_id": signal.candidate_id,
        "dwell_ms": signal.dwell_ms,
        "detail_view_opened": signal.detail_view_opened,
        "outcome": signal.outcome.value,
        "tags": list(signal.tags),
        "timestamp_ms": signal.timestamp_ms,
    }


def breakdown_to_dict(breakdown: ScoreBreakdown) -> dict[str, Any]:
    return {
        "sub_scores": dict(breakdown.sub_scores),
        "static_score": breakdown.static_score,
        "affinity": breakdown.affinity,
        "behavioral_weight": breakdown.behavioral_weight,
        "final_score": breakdown.final_score,
    }
