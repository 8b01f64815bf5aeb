"""Prometheus metrics helpers."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

CHUNK_OUTCOMES = Counter(
    "pipeline_chunks_total",
    "Chunks by terminal pipeline state",
    labelnames=("outcome",),
)

STAGE_LATENCY = Histogram(
    "pipeline_stage_latency_seconds",
    "Latency of collaborator calls per pipeline stage",
    labelnames=("stage",),
)

FILTER_DECISIONS = Counter(
    "output_filter_decisions_total",
    "Output filter verdicts",
    labelnames=("reason",),
)

BACKLOG_DROPPED = Counter(
    "pipeline_backlog_dropped_total",
    "Queued chunks dropped because the backlog was full",
)

BACKLOG_DEPTH = Gauge(
    "pipeline_backlog_depth",
    "Chunks waiting for the pipeline worker",
)


@contextmanager
def observe_stage(stage: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        STAGE_LATENCY.labels(stage=stage).observe(time.perf_counter() - start)


def serve_metrics(port: int, addr: str = "0.0.0.0") -> None:
    start_http_server(port, addr=addr)
