"""
PostgreSQL DAO

在连接池之上提供通用的参数化查询、行级 CRUD、表结构查询以及事务作用域
"""

import asyncio
import copy
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

import asyncpg
from loguru import logger

from . import query_builder as qb
from .database import PoolConfig, create_pool
from .exceptions import (
    DriverError,
    PoolClosedError,
    PoolTimeout,
    TransactionError,
    ValidationError,
)

T = TypeVar("T")

# 当前上下文中正在进行的事务：(连接池, 开启事务的任务)，用于拒绝嵌套事务
_active_transaction: ContextVar[Optional[tuple[Any, Optional[asyncio.Task]]]] = ContextVar(
    "promptdeck_active_transaction", default=None
)


@dataclass
class QueryResult:
    """单条语句的执行结果"""

    rows: list[dict] = field(default_factory=list)
    row_count: int = 0
    command: str = ""


def _row_count(status: Optional[str], rows: list[dict]) -> int:
    """从命令状态（如 ``INSERT 0 3``、``UPDATE 2``）解析影响行数"""
    if status:
        tail = status.rsplit(" ", 1)[-1]
        if tail.isdigit():
            return int(tail)
    return len(rows)


def _driver_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if message:
        return message
    if isinstance(exc, OSError) or not exc.args:
        return str(exc) or exc.__class__.__name__
    return str(exc.args[0])


class PostgresDAO:
    """
    PostgreSQL 数据访问对象

    单次调用从连接池获取连接并在结束后归还；通过 ``transaction()`` 得到的
    句柄绑定到同一个连接，句柄上的所有操作共享该事务。

    表名、列名和 ORDER BY 属于可信标识符，直接拼接进 SQL（经过白名单校验），
    只有值会被参数绑定。
    """

    PREVIEW_LENGTH = 100

    def __init__(self, pool: Any, config: Optional[PoolConfig] = None):
        self._pool = pool
        self.config = config or PoolConfig()
        self.is_connected = False
        self._closed = False
        # 事务句柄专用
        self._conn: Any = None
        self._scope_open = False

    # ============ 连接管理 ============

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None

    def _ensure_open(self) -> None:
        if self._closed:
            raise PoolClosedError("Database pool has been closed")

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[Any]:
        """从连接池获取连接，任何退出路径都会归还"""
        self._ensure_open()
        try:
            conn = await self._pool.acquire(timeout=self.config.acquire_timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                f"⏳ 获取数据库连接超时 ({self.config.connection_timeout_ms}ms)"
            )
            raise PoolTimeout(
                f"Timed out after {self.config.connection_timeout_ms}ms waiting for a connection"
            ) from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            message = _driver_message(e)
            logger.error(f"❌ 获取数据库连接失败: {message}")
            raise DriverError(message, sqlstate=getattr(e, "sqlstate", None)) from e
        try:
            yield conn
        finally:
            await self._pool.release(conn)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        """事务句柄复用绑定的连接，否则从连接池获取"""
        if self._conn is not None:
            if not self._scope_open:
                raise TransactionError("Transaction scope has already ended")
            yield self._conn
        else:
            async with self._acquire() as conn:
                yield conn

    # ============ 初始化 / 关闭 ============

    async def initialize(self) -> bool:
        """测试数据库连通性"""
        try:
            result = await self.run_query("SELECT NOW() AS current_time, version() AS version")
            row = result.rows[0]
            version = " ".join(str(row["version"]).split(" ")[:2])
            logger.info("✅ Database connected successfully")
            logger.info(f"📅 Server time: {row['current_time']}")
            logger.info(f"🗄️ PostgreSQL version: {version}")
            self.is_connected = True
            return True
        except Exception as e:
            logger.error(f"❌ Database connection failed: {e}")
            self.is_connected = False
            raise

    async def close(self) -> None:
        """关闭连接池中的所有连接"""
        if self._conn is not None:
            raise TransactionError("Cannot close the pool from inside a transaction")
        self._ensure_open()
        try:
            await self._pool.close()
        except Exception as e:
            logger.error(f"❌ Error closing database connections: {e}")
            raise
        finally:
            self._closed = True
            self.is_connected = False
        logger.info("🔒 Database connections closed")

    def get_pool_status(self) -> dict:
        """连接池状态（仅用于诊断）"""
        if self._closed:
            return {"total_count": 0, "idle_count": 0, "max_size": 0, "is_connected": False}
        return {
            "total_count": self._pool.get_size(),
            "idle_count": self._pool.get_idle_size(),
            "max_size": self._pool.get_max_size(),
            "is_connected": self.is_connected,
        }

    # ============ 查询执行 ============

    async def _execute(self, conn: Any, sql: str, params: Sequence[Any]) -> QueryResult:
        start = time.perf_counter()
        succeeded = False
        try:
            stmt = await conn.prepare(sql)
            records = await stmt.fetch(*params)
            status = stmt.get_statusmsg()
            succeeded = True
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            message = _driver_message(e)
            logger.error(f"❌ Query execution error: {message}")
            logger.error(f"Query: {sql}")
            logger.error(f"Params: {list(params)}")
            raise DriverError(message, sqlstate=getattr(e, "sqlstate", None)) from e
        finally:
            duration = (time.perf_counter() - start) * 1000
            statement = qb.preview(sql, self.PREVIEW_LENGTH)
            outcome = "executed" if succeeded else "failed"
            logger.bind(duration_ms=round(duration, 1), statement=statement, ok=succeeded).debug(
                f"🔍 Query {outcome} in {duration:.1f}ms: {statement}"
            )

        rows = [dict(r) for r in records]
        return QueryResult(rows=rows, row_count=_row_count(status, rows), command=status or "")

    async def run_query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        执行一条参数化语句

        Args:
            sql: 使用 ``$1``、``$2`` 占位符的 SQL
            params: 与占位符一一对应的参数

        Returns:
            QueryResult（行列表 + 影响行数）
        """
        async with self._connection() as conn:
            return await self._execute(conn, sql, params)

    # ============ 查询 ============

    async def select_many(
        self,
        table: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        """获取表中符合条件的所有行"""
        sql, params = qb.build_select(table, where, order_by, limit, offset, columns)
        result = await self.run_query(sql, params)
        return result.rows

    async def select_one(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> Optional[dict]:
        """获取单行，不存在时返回 None"""
        rows = await self.select_many(table, where=where, columns=columns, limit=1)
        return rows[0] if rows else None

    # ============ 写入 ============

    async def insert_one(
        self,
        table: str,
        data: Mapping[str, Any],
        returning: Optional[Sequence[str]] = None,
    ) -> Optional[dict]:
        """插入单行，返回 RETURNING 投影后的行"""
        sql, params = qb.build_insert(table, data, returning)
        result = await self.run_query(sql, params)
        return result.rows[0] if result.rows else None

    async def insert_many(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        returning: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        """一条语句插入多行（所有行的列必须一致）"""
        sql, params = qb.build_insert_many(table, rows, returning)
        result = await self.run_query(sql, params)
        return result.rows

    async def update_many(
        self,
        table: str,
        data: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        returning: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        """更新符合条件的行；where 为空时更新全表"""
        sql, params = qb.build_update(table, data, where, returning)
        result = await self.run_query(sql, params)
        return result.rows

    async def update_batch(
        self,
        table: str,
        updates: Sequence[Mapping[str, Any]],
        returning: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        """
        在同一事务中执行多组 ``{"data": ..., "where": ...}`` 更新

        任意一组失败则整批回滚；某组没有匹配到行不算失败。
        """
        if not updates:
            raise ValidationError("Update array must be a non-empty array")
        for item in updates:
            if "data" not in item:
                raise ValidationError("Each update item requires a 'data' mapping")

        async def apply(tx: "PostgresDAO") -> list[dict]:
            results: list[dict] = []
            for item in updates:
                rows = await tx.update_many(table, item["data"], item.get("where"), returning)
                results.extend(rows)
            return results

        # 已在事务中时直接复用当前事务
        if self.in_transaction:
            return await apply(self)
        return await self.run_transaction(apply)

    async def delete_many(
        self,
        table: str,
        where: Mapping[str, Any],
        returning: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        """删除符合条件的行（where 必填）"""
        sql, params = qb.build_delete(table, where, returning)
        result = await self.run_query(sql, params)
        return result.rows

    # ============ 表结构 ============

    async def table_exists(self, table: str, schema: str = "public") -> bool:
        sql = """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = $1
                AND table_name = $2
            ) AS exists
        """
        result = await self.run_query(sql, [schema, table])
        return bool(result.rows[0]["exists"])

    async def describe_table(self, table: str, schema: str = "public") -> list[dict]:
        """获取表的列信息（按列顺序）"""
        sql = """
            SELECT
                column_name,
                data_type,
                is_nullable,
                column_default,
                character_maximum_length
            FROM information_schema.columns
            WHERE table_schema = $1
            AND table_name = $2
            ORDER BY ordinal_position
        """
        result = await self.run_query(sql, [schema, table])
        return result.rows

    # ============ 事务 ============

    def _opened_in_current_task(self) -> bool:
        """同一连接池的事务是否已由当前任务开启（子任务不继承）"""
        active = _active_transaction.get()
        if active is None:
            return False
        pool, task = active
        return pool is self._pool and task is asyncio.current_task()

    def _bind(self, conn: Any) -> "PostgresDAO":
        handle = copy.copy(self)
        handle._conn = conn
        handle._scope_open = True
        return handle

    async def _control(self, conn: Any, command: str) -> None:
        """执行 BEGIN / COMMIT"""
        try:
            await conn.execute(command)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            message = _driver_message(e)
            logger.error(f"❌ {command} failed: {message}")
            raise DriverError(message, sqlstate=getattr(e, "sqlstate", None)) from e

    async def _rollback(self, conn: Any, error: BaseException) -> None:
        try:
            await conn.execute("ROLLBACK")
        except Exception as rollback_error:
            logger.error(f"❌ Rollback failed: {rollback_error}")
        logger.error(f"❌ Transaction rolled back: {error!r}")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["PostgresDAO"]:
        """
        事务作用域

        获取连接 → BEGIN → 执行 → 成功 COMMIT / 异常 ROLLBACK → 归还连接。
        产出的句柄绑定到该连接，作用域结束后不可再使用。不支持嵌套事务。

        Example:
            async with dao.transaction() as tx:
                user = await tx.insert_one("users", {"name": "Ada"})
                await tx.insert_one("profiles", {"user_id": user["id"]})
        """
        if self._conn is not None or self._opened_in_current_task():
            raise TransactionError("Nested transactions are not supported")

        async with self._acquire() as conn:
            await self._control(conn, "BEGIN")
            handle = self._bind(conn)
            token = _active_transaction.set((self._pool, asyncio.current_task()))
            try:
                yield handle
                await self._control(conn, "COMMIT")
            except BaseException as e:
                await self._rollback(conn, e)
                raise
            finally:
                handle._scope_open = False
                _active_transaction.reset(token)

    async def run_transaction(self, operations: Callable[["PostgresDAO"], Awaitable[T]]) -> T:
        """以回调形式执行事务，回调接收绑定到事务连接的句柄"""
        async with self.transaction() as tx:
            return await operations(tx)


async def create_dao(config: PoolConfig) -> PostgresDAO:
    """
    创建并初始化 DAO

    Raises:
        PoolTimeout / DriverError / OSError: 数据库不可达
    """
    pool = await create_pool(config)
    dao = PostgresDAO(pool, config)
    try:
        await dao.initialize()
    except BaseException:
        await pool.close()
        raise
    return dao
