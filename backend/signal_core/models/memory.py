"""Pattern, adjustment and model registry models.

JSON columns in the store are represented here as typed models and only
serialized at the storage boundary.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from signal_core.models.dataset import NormStats


class PatternStatus(str, Enum):
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class AdjustmentType(str, Enum):
    CONFIDENCE_SCALE = "confidence_scale"
    SIGNAL_SUPPRESS = "signal_suppress"


class AdjustmentStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    APPLIED = "applied"
    REJECTED = "rejected"


# Operator governance: which status changes are allowed
ALLOWED_TRANSITIONS: dict[AdjustmentStatus, set[AdjustmentStatus]] = {
    AdjustmentStatus.PROPOSED: {
        AdjustmentStatus.APPROVED,
        AdjustmentStatus.APPLIED,
        AdjustmentStatus.REJECTED,
    },
    AdjustmentStatus.APPROVED: {AdjustmentStatus.APPLIED, AdjustmentStatus.REJECTED},
    AdjustmentStatus.APPLIED: set(),
    AdjustmentStatus.REJECTED: set(),
}


class PatternCondition(BaseModel):
    """Predicate a pattern was mined under.

    Stored as a flat JSON object, e.g. {"signal": "BUY", "confidence_min": 0.7}
    or {"signal": "BUY", "rsi14_min": 0.7}.
    """

    model_config = ConfigDict(frozen=True)

    signal: str | None = None
    confidence_min: float | None = None
    confidence_max: float | None = None
    feature: str | None = None
    feature_min: float | None = None
    feature_max: float | None = None

    @property
    def key(self) -> str:
        """Adjustment grouping key: the signal type, or 'all'."""
        return self.signal or "all"

    def to_json(self) -> str:
        payload: dict[str, Any] = {}
        if self.signal is not None:
            payload["signal"] = self.signal
        if self.confidence_min is not None:
            payload["confidence_min"] = self.confidence_min
        if self.confidence_max is not None:
            payload["confidence_max"] = self.confidence_max
        if self.feature is not None:
            if self.feature_min is not None:
                payload[f"{self.feature}_min"] = self.feature_min
            if self.feature_max is not None:
                payload[f"{self.feature}_max"] = self.feature_max
        return json.dumps(payload, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "PatternCondition":
        """Parse a stored condition. Raises ValueError on malformed input."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Pattern condition must be an object, got {type(data).__name__}")

        fields: dict[str, Any] = {
            "signal": data.pop("signal", None),
            "confidence_min": data.pop("confidence_min", None),
            "confidence_max": data.pop("confidence_max", None),
        }
        for name, value in data.items():
            if name.endswith("_min"):
                fields["feature"] = name[: -len("_min")]
                fields["feature_min"] = value
            elif name.endswith("_max"):
                fields["feature"] = name[: -len("_max")]
                fields["feature_max"] = value
        return cls(**fields)


class Pattern(BaseModel):
    """Mined reliability statistic (L2 warm memory).

    A rolling snapshot keyed by name: each reflection run overwrites it.
    """

    id: int | None = None
    name: str
    condition: PatternCondition
    signal_type: str
    win_rate: float
    avg_return: float
    sample_count: int
    status: PatternStatus = PatternStatus.ACTIVE
    discovered_at: datetime | None = None


class ConfidenceScale(BaseModel):
    kind: Literal["confidence_scale"] = "confidence_scale"
    scale: float


class SignalSuppress(BaseModel):
    kind: Literal["signal_suppress"] = "signal_suppress"
    suppress: bool = True


AdjustmentPayload = Annotated[
    Union[ConfidenceScale, SignalSuppress], Field(discriminator="kind")
]

_payload_adapter: TypeAdapter[ConfidenceScale | SignalSuppress] = TypeAdapter(AdjustmentPayload)


def payload_to_json(payload: ConfidenceScale | SignalSuppress) -> str:
    """Serialize a payload without its tag; the tag lives in adjustment_type."""
    return payload.model_dump_json(exclude={"kind"})


def payload_from_json(adjustment_type: str, raw: str) -> ConfidenceScale | SignalSuppress:
    """Parse a stored payload. Raises ValueError on malformed input."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Adjustment payload must be an object, got {type(data).__name__}")
    return _payload_adapter.validate_python({**data, "kind": AdjustmentType(adjustment_type).value})


class Adjustment(BaseModel):
    """Proposed behavioral change (L3 cold memory)."""

    id: int | None = None
    pattern_id: int
    payload: AdjustmentPayload
    reason: str
    status: AdjustmentStatus = AdjustmentStatus.PROPOSED

    @property
    def adjustment_type(self) -> AdjustmentType:
        return AdjustmentType(self.payload.kind)


class ModelMeta(BaseModel):
    """Registry entry for a trained model."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    model_name: str
    version: int
    config: dict[str, Any] = Field(default_factory=dict)
    metrics: dict[str, Any] = Field(default_factory=dict)
    norm_stats: NormStats | None = None
    weights_path: str | None = None
    first_registered_at: datetime | None = None
    last_registered_at: datetime | None = None
