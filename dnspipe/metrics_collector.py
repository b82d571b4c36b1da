"""Count queries, errors, concurrency and response latency."""

from __future__ import annotations

import bisect
import math
import time
from collections.abc import Iterable

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

LATENCY_BUCKETS_MS = (1, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000)


class Histogram:
    """Counts observations into buckets bounded above (plus one unbounded)."""

    def __init__(self, buckets: Iterable[float]) -> None:
        self.buckets = tuple(sorted(buckets))
        self._counts = [0] * (len(self.buckets) + 1)
        self.count = 0
        self.sum = 0.0

    def observe(self, value: float) -> None:
        self._counts[bisect.bisect_left(self.buckets, value)] += 1
        self.count += 1
        self.sum += value

    def cumulative(self) -> list[tuple[float, int]]:
        """Return ``(upper_bound, observations <= bound)`` pairs, ending at infinity."""
        result = []
        total = 0
        for bound, n in zip(self.buckets + (math.inf,), self._counts):
            total += n
            result.append((bound, total))
        return result


class Collector:
    """Records metrics about the queries that pass through the rest of the chain."""

    def __init__(self) -> None:
        self.query_total = 0
        self.err_total = 0
        self.thread = 0
        self.response_latency = Histogram(LATENCY_BUCKETS_MS)

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        self.thread += 1
        try:
            self.query_total += 1
            start = time.monotonic()
            try:
                await exec_chain_node(qctx, next)
            except Exception:
                self.err_total += 1
                raise
            finally:
                if qctx.r is not None:
                    self.response_latency.observe(int((time.monotonic() - start) * 1000))
        finally:
            self.thread -= 1