# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from redis.exceptions import ResponseError

from redis_metrics.services import counter as counter_module
from redis_metrics.services import keys as keys_module
from redis_metrics.services import lua

FROZEN_NOW = datetime(2015, 1, 2, 10, 30, 45, tzinfo=UTC)


class InMemoryRedis:
    """Asynchronous stand-in for the subset of Redis used by counters.

    Every executed command is recorded in ``commands``. Command names listed
    in ``fail_on`` raise ``ResponseError`` like a failing server would.
    """

    def __init__(self) -> None:
        self.strings: dict[str, int] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.commands: list[tuple[Any, ...]] = []
        self.transactions = 0
        self.fail_on: set[str] = set()

    def run(self, name: str, *args: Any, **kwargs: Any) -> Any:
        self.commands.append((name, *args))
        if name in self.fail_on:
            raise ResponseError(f"ERR simulated {name} failure")
        return getattr(self, f"_{name}")(*args, **kwargs)

    # Command implementations

    def _get(self, key: str) -> str | None:
        value = self.strings.get(key)
        return None if value is None else str(value)

    def _mget(self, keys: list[str]) -> list[str | None]:
        return [self._get(key) for key in keys]

    def _incrby(self, key: str, amount: int) -> int:
        self.strings[key] = self.strings.get(key, 0) + int(amount)
        return self.strings[key]

    def _zincrby(self, key: str, amount: int, member: str) -> float:
        zset = self.zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + float(amount)
        return zset[member]

    def _zscore(self, key: str, member: str) -> float | None:
        return self.zsets.get(key, {}).get(member)

    def _zrange(
        self, key: str, start: int, end: int, desc: bool = False, withscores: bool = False
    ) -> list[Any]:
        items = sorted(self.zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]))
        if desc:
            items.reverse()
        stop = None if end == -1 else end + 1
        selected = items[start:stop]
        return selected if withscores else [member for member, _ in selected]

    def _zrevrange(self, key: str, start: int, end: int, withscores: bool = False) -> list[Any]:
        return self._zrange(key, start, end, desc=True, withscores=withscores)

    def _expire(self, key: str, seconds: int) -> int:
        self.ttls[key] = int(seconds)
        return 1

    def _eval(self, script: str, numkeys: int, *args: Any) -> Any:
        if script == lua.INCRBY_EXPIRE:
            key, amount, ttl = args
            value = self._incrby(key, amount)
            self._expire(key, ttl)
            return value
        if script == lua.ZINCRBY_EXPIRE:
            key, amount, member, ttl = args
            score = self._zincrby(key, amount, member)
            self._expire(key, ttl)
            # Lua returns sorted set scores as bulk strings.
            return f"{score:g}"
        raise ResponseError("NOSCRIPT No matching script")

    def _flushall(self) -> bool:
        self.strings.clear()
        self.zsets.clear()
        self.ttls.clear()
        return True

    # Async client surface

    async def get(self, key: str) -> Any:
        return self.run("get", key)

    async def mget(self, keys: list[str]) -> Any:
        return self.run("mget", list(keys))

    async def incrby(self, key: str, amount: int) -> Any:
        return self.run("incrby", key, amount)

    async def zincrby(self, key: str, amount: int, member: str) -> Any:
        return self.run("zincrby", key, amount, member)

    async def zscore(self, key: str, member: str) -> Any:
        return self.run("zscore", key, member)

    async def zrange(self, key: str, start: int, end: int, **kwargs: Any) -> Any:
        return self.run("zrange", key, start, end, **kwargs)

    async def zrevrange(self, key: str, start: int, end: int, **kwargs: Any) -> Any:
        return self.run("zrevrange", key, start, end, **kwargs)

    async def eval(self, script: str, numkeys: int, *args: Any) -> Any:
        return self.run("eval", script, numkeys, *args)

    async def flushall(self) -> Any:
        return self.run("flushall")

    def pipeline(self, transaction: bool = True) -> InMemoryPipeline:
        return InMemoryPipeline(self)


class InMemoryPipeline:
    """Queues commands and runs them in order on ``execute``."""

    def __init__(self, store: InMemoryRedis) -> None:
        self._store = store
        self._queue: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> InMemoryPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._queue.clear()

    def _add(self, name: str, *args: Any, **kwargs: Any) -> InMemoryPipeline:
        self._queue.append((name, args, kwargs))
        return self

    def incrby(self, key: str, amount: int) -> InMemoryPipeline:
        return self._add("incrby", key, amount)

    def zincrby(self, key: str, amount: int, member: str) -> InMemoryPipeline:
        return self._add("zincrby", key, amount, member)

    def zscore(self, key: str, member: str) -> InMemoryPipeline:
        return self._add("zscore", key, member)

    def eval(self, script: str, numkeys: int, *args: Any) -> InMemoryPipeline:
        return self._add("eval", script, numkeys, *args)

    async def execute(self) -> list[Any]:
        """Run every queued command; like EXEC, failures do not roll back.

        The first command error is raised after the whole batch has run.
        """
        store = self._store
        store.transactions += 1
        results: list[Any] = []
        try:
            for name, args, kwargs in self._queue:
                try:
                    results.append(store.run(name, *args, **kwargs))
                except ResponseError as exc:
                    results.append(exc)
        finally:
            self._queue.clear()
        for result in results:
            if isinstance(result, ResponseError):
                raise result
        return results


@pytest.fixture()
def store() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture()
def frozen_now(monkeypatch: pytest.MonkeyPatch) -> Iterator[datetime]:
    """Pin "now" for key derivation and queries."""
    monkeypatch.setattr(keys_module, "utcnow", lambda: FROZEN_NOW)
    monkeypatch.setattr(counter_module, "utcnow", lambda: FROZEN_NOW)
    yield FROZEN_NOW
