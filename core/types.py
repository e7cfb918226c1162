# core/types.py
from __future__ import annotations

from typing import TypedDict


class Segmentation(TypedDict):
    # what segment_frame returns
    partitions: list[list[int]]
    splits: list[int]


class PartitionSummary(TypedDict):
    start: int
    end: int
    n_obs: int
    n_missing: int
    regular_price: float
    min_price: float
