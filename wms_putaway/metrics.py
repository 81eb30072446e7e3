# wms_putaway/metrics.py
from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)

# ---- 上架 ----
PUTAWAY_COMMITS = Counter("putaway_committed_total", "Putaway transactions committed")
PUTAWAY_FAILURES = Counter(
    "putaway_failures_total", "Putaway calls rejected or rolled back", ["code"]
)
PUTAWAY_LATENCY = Histogram(
    "putaway_latency_seconds",
    "Putaway transaction latency (seconds)",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# ---- 整单自动上架：result = processed | failed | no_capacity ----
BULK_LINES = Counter("bulk_putaway_lines_total", "Bulk putaway lines by result", ["result"])

# ---- 到货落暂存位 ----
RECEIVED = Counter("shipments_received_total", "Shipments received into holding locations")

router = APIRouter(tags=["metrics"])


def _collect() -> bytes:
    # gunicorn 多 worker：PROMETHEUS_MULTIPROC_DIR 下各进程分片合并后导出
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest(REGISTRY)


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=_collect(), media_type=CONTENT_TYPE_LATEST)
