"""
Per-client transport statistics collected through aiohttp trace hooks.

Every transport call counts, retries included, so `requests` can exceed the
number of terminal calls made on Request builders.
"""

import time
from collections import Counter
from dataclasses import dataclass, field

from aiohttp import TraceConfig


@dataclass
class ClientStats:
    requests: int = 0
    in_flight: int = 0
    errors: int = 0
    total_time: float = 0.0
    min_latency: float | None = None
    max_latency: float | None = None
    status_counts: Counter = field(default_factory=Counter)
    method_counts: Counter = field(default_factory=Counter)

    @property
    def mean_latency(self) -> float | None:
        completed = self.requests - self.in_flight - self.errors
        if completed <= 0:
            return None
        return self.total_time / completed

    def record_start(self, method: str) -> None:
        self.requests += 1
        self.in_flight += 1
        self.method_counts[method.upper()] += 1

    def record_end(self, status: int | None, latency: float) -> None:
        self.in_flight -= 1
        self.total_time += latency
        if status is not None:
            self.status_counts[status] += 1
        if self.min_latency is None or latency < self.min_latency:
            self.min_latency = latency
        if self.max_latency is None or latency > self.max_latency:
            self.max_latency = latency

    def record_error(self) -> None:
        self.in_flight -= 1
        self.errors += 1


# ─────────────────────────────────────────────────────────────
# Trace hooks (MUST be async — aiohttp will await them)
# ─────────────────────────────────────────────────────────────

def build_trace_config(stats: ClientStats) -> TraceConfig:
    """
    Build an aiohttp TraceConfig wired to the given stats object.
    """
    trace_config = TraceConfig()

    async def _on_start(session, context, params):
        context.start_time = time.monotonic()
        stats.record_start(params.method)

    async def _on_end(session, context, params):
        status = getattr(params.response, "status", None)
        stats.record_end(status, time.monotonic() - context.start_time)

    async def _on_exc(session, context, params):
        stats.record_error()

    trace_config.on_request_start.append(_on_start)
    trace_config.on_request_end.append(_on_end)
    trace_config.on_request_exception.append(_on_exc)

    return trace_config
