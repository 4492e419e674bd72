"""Shared test fixtures: an in-memory spy pool that records every statement."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from promptdeck.dao import PoolConfig, PostgresDAO

Responder = Callable[[str, tuple], "tuple[list[dict], str]"]


def default_responder(sql: str, params: tuple) -> tuple[list[dict], str]:
    return [], "SELECT 0"


class FakeStatement:
    def __init__(self, conn: "FakeConnection", sql: str) -> None:
        self._conn = conn
        self._sql = sql
        self._status = ""

    async def fetch(self, *params: Any) -> list[dict]:
        self._conn.record(self._sql, params)
        if self._conn.delay:
            await asyncio.sleep(self._conn.delay)
        rows, status = self._conn.pool.responder(self._sql, params)
        self._status = status
        return rows

    def get_statusmsg(self) -> str:
        return self._status


class FakeConnection:
    """Stands in for ``asyncpg.Connection``; forwards statements to the pool's log."""

    def __init__(self, pool: "FakePool", conn_id: int) -> None:
        self.pool = pool
        self.id = conn_id
        self.delay = pool.delay

    def record(self, sql: str, params: tuple) -> None:
        self.pool.statements.append((self.id, sql, tuple(params)))

    async def prepare(self, sql: str) -> FakeStatement:
        return FakeStatement(self, sql)

    async def execute(self, sql: str) -> str:
        self.record(sql, ())
        failure = self.pool.control_failures.get(sql)
        if failure is not None:
            raise failure
        return sql


class FakePool:
    """Bounded pool with ``asyncpg.Pool``'s acquire/release/close surface."""

    def __init__(self, max_size: int = 10, delay: float = 0.0) -> None:
        self.max_size = max_size
        self.delay = delay
        self.responder: Responder = default_responder
        self.statements: list[tuple[int, str, tuple]] = []
        self.control_failures: dict[str, BaseException] = {}
        self.acquired = 0
        self.released = 0
        self.close_calls = 0
        self._sem = asyncio.Semaphore(max_size)
        self._next_id = 0

    async def acquire(self, *, timeout: float | None = None) -> FakeConnection:
        await asyncio.wait_for(self._sem.acquire(), timeout)
        self._next_id += 1
        self.acquired += 1
        return FakeConnection(self, self._next_id)

    async def release(self, conn: FakeConnection) -> None:
        self.released += 1
        self._sem.release()

    async def close(self) -> None:
        self.close_calls += 1

    def get_size(self) -> int:
        return self.acquired - self.released

    def get_idle_size(self) -> int:
        return 0

    def get_max_size(self) -> int:
        return self.max_size

    @property
    def sql(self) -> list[str]:
        """Statement texts in the order they were issued."""
        return [sql for _, sql, _ in self.statements]


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def dao(pool: FakePool) -> PostgresDAO:
    return PostgresDAO(pool, PoolConfig(connection_timeout_ms=50))


@pytest.fixture
def make_pool() -> Callable[..., FakePool]:
    return FakePool
