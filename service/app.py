# service/app.py
from __future__ import annotations

import json
import logging
import math
import time

from fastapi import FastAPI, HTTPException
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.responses import Response

from core.config import load_config
from core.regular import regular_prices
from core.segment.driver import segment
from core.validation import InvalidInput
from service.schemas import SegmentIn, SegmentOut

# ---------- app & logging ----------
app = FastAPI(title="depart-lite")

logger = logging.getLogger("depart-lite")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# ---------- config ----------
cfg = load_config()
_DEFAULT_LEAF = int(cfg.get("min_leaf_size", 28))
_DEFAULT_CAP = cfg.get("max_splits")
_WORKERS = int(cfg.get("workers", 1))

# ---------- Prometheus: PRIVATE registry to avoid duplicates on reload ----------
PROM_REG = CollectorRegistry()
REQS = Counter("requests_total", "Total requests", ["endpoint"], registry=PROM_REG)
REJECTED = Counter("segment_rejected_total", "Segment requests rejected as invalid", registry=PROM_REG)
SERVICE_LAT = Histogram(
    "request_service_ms",
    "End-to-end service latency (ms)",
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 5000),
    registry=PROM_REG,
)
SPLITS = Histogram(
    "segment_splits",
    "Accepted splits per segmented series",
    buckets=(0, 1, 2, 4, 8, 16, 32, 64),
    registry=PROM_REG,
)


def _finite_or_none(v: float) -> float | None:
    return v if math.isfinite(v) else None


# ---------- endpoints ----------
@app.get("/healthz")
def healthz() -> dict[str, str]:
    REQS.labels("healthz").inc()
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(PROM_REG), media_type=CONTENT_TYPE_LATEST)


@app.post("/segment", response_model=SegmentOut)
def segment_series(inp: SegmentIn) -> SegmentOut:
    REQS.labels("segment").inc()
    t0 = time.perf_counter()

    leaf = inp.min_leaf_size if inp.min_leaf_size is not None else _DEFAULT_LEAF
    cap = inp.max_splits if inp.max_splits is not None else _DEFAULT_CAP
    prices = [math.nan if v is None else float(v) for v in inp.prices]

    try:
        partitions, splits = segment(inp.time_index, prices, leaf, cap, workers=_WORKERS)
    except InvalidInput as e:
        REJECTED.inc()
        logger.info(json.dumps({"evt": "segment_rejected", "err": str(e)}))
        raise HTTPException(status_code=422, detail=str(e)) from e

    levels = regular_prices(partitions, inp.time_index, prices)

    service_ms = (time.perf_counter() - t0) * 1000.0
    SERVICE_LAT.observe(service_ms)
    SPLITS.observe(len(splits))

    logger.info(json.dumps({
        "evt": "segment",
        "n_points": len(inp.time_index),
        "min_leaf_size": leaf,
        "max_splits": cap,
        "n_splits": len(splits),
        "service_ms": round(service_ms, 3),
    }))
    return SegmentOut(
        splits=splits,
        partitions=partitions,
        regular_prices=[_finite_or_none(v) for v in levels],
        latency_ms={"service_ms": service_ms},
    )
