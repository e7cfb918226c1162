# service/schemas.py
from __future__ import annotations

from pydantic import BaseModel, Field


class SegmentIn(BaseModel):
    time_index: list[int]
    # null entries are missing observations
    prices: list[float | None]
    # fall back to config when omitted; max_splits=None means unbounded
    min_leaf_size: int | None = None
    max_splits: int | None = None


class SegmentOut(BaseModel):
    splits: list[int]
    partitions: list[list[int]]
    # null for a partition without any observed price
    regular_prices: list[float | None]

    latency_ms: dict[str, float] = Field(default_factory=dict)
