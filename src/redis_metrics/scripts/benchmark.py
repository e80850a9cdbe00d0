#!/usr/bin/env python3
"""
redis-metrics throughput benchmark

Runs batches of concurrent counter operations against a live Redis server
and reports operations per second for each scenario.

Exit code:
  0 = all scenarios completed
  1 = a scenario failed

Typical usage:
  redis-metrics-benchmark --url redis://127.0.0.1:6379 --iterations 10000
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import secrets
import sys
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from redis.exceptions import RedisError

from redis_metrics.core.errors import MetricsError
from redis_metrics.services.metrics import RedisMetrics

logger = logging.getLogger(__name__)

MILLISECONDS_PER_SECOND = 1000.0
DEFAULT_CONCURRENCY = 50

Operation = Callable[[], Awaitable[object]]


@dataclass
class Scenario:
    name: str
    operation: Operation


@dataclass
class ScenarioResult:
    name: str
    iterations: int
    elapsed_ms: float

    @property
    def ops_per_second(self) -> int:
        if self.elapsed_ms <= 0:
            return 0
        return int(self.iterations / self.elapsed_ms * MILLISECONDS_PER_SECOND)

    def __str__(self) -> str:
        return (
            f"{self.name} {self.iterations} took {self.elapsed_ms:.1f} milliseconds, "
            f"{self.ops_per_second} ops/sec"
        )


def say(msg: str) -> None:
    print(f"[benchmark] {msg}")


def build_scenarios(metrics: RedisMetrics) -> list[Scenario]:
    simple = metrics.counter("simple")
    hourly = metrics.counter("hour", {"timeGranularity": "hour"})

    def random_name() -> str:
        return secrets.token_hex(16)

    return [
        Scenario("incr simple", simple.incr),
        Scenario("count simple", simple.count),
        Scenario("incr hour", hourly.incr),
        Scenario("count hour", hourly.count),
        Scenario("incr random simple", lambda: metrics.counter(random_name()).incr()),
        Scenario(
            "incr random hour",
            lambda: metrics.counter(random_name(), {"timeGranularity": "hour"}).incr(),
        ),
    ]


async def run_scenario(
    scenario: Scenario, iterations: int, concurrency: int = DEFAULT_CONCURRENCY
) -> ScenarioResult:
    """Run ``iterations`` operations with at most ``concurrency`` in flight.

    Each in-flight command holds its own pooled connection, so the bound also
    caps the number of sockets opened against Redis.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    limiter = asyncio.Semaphore(concurrency)

    async def bounded() -> None:
        async with limiter:
            await scenario.operation()

    start = time.perf_counter()
    await asyncio.gather(*(bounded() for _ in range(iterations)))
    elapsed_ms = (time.perf_counter() - start) * MILLISECONDS_PER_SECOND
    return ScenarioResult(scenario.name, iterations, elapsed_ms)


async def run_benchmark(
    metrics: RedisMetrics,
    iterations: int,
    flush: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[ScenarioResult]:
    if flush:
        say("Flushing all keys before running")
        await metrics.client.flushall()

    results = []
    for scenario in build_scenarios(metrics):
        result = await run_scenario(scenario, iterations, concurrency)
        say(str(result))
        results.append(result)
    return results


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark redis-metrics counters.")
    parser.add_argument("--url", default=None, help="Redis URL (defaults to REDIS_URL).")
    parser.add_argument(
        "--iterations", type=int, default=10_000, help="Operations per scenario."
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help="Maximum operations in flight at once.",
    )
    parser.add_argument(
        "--flush",
        action="store_true",
        help="Run FLUSHALL before benchmarking. Destroys every key in the database.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)
    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    return args


async def _main(args: argparse.Namespace) -> int:
    async with RedisMetrics(url=args.url) as metrics:
        try:
            await run_benchmark(
                metrics, args.iterations, flush=args.flush, concurrency=args.concurrency
            )
        except (MetricsError, RedisError) as exc:
            logger.error("Benchmark failed: %s", exc)
            return 1
    say("All done!")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
