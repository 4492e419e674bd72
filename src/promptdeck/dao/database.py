"""
PostgreSQL 连接池

负责创建 asyncpg 连接池，并监听连接的建立与移除（仅用于诊断日志）
"""

from dataclasses import dataclass
from typing import Any, Optional

import asyncpg
from loguru import logger


@dataclass(frozen=True)
class PoolConfig:
    """连接池配置"""

    host: str = "localhost"
    port: int = 5432
    database: str = "promptdeck"
    user: str = "postgres"
    password: str = "password"
    min_size: int = 1
    max_size: int = 20
    idle_timeout_ms: int = 30000
    connection_timeout_ms: int = 2000

    @property
    def acquire_timeout(self) -> float:
        """获取连接的超时时间（秒）"""
        return self.connection_timeout_ms / 1000

    @property
    def idle_timeout(self) -> float:
        return self.idle_timeout_ms / 1000

    def safe_dsn(self) -> str:
        """日志用 DSN（隐藏密码）"""
        return f"postgresql://{self.user}:***@{self.host}:{self.port}/{self.database}"


def _on_connection_removed(conn: Any) -> None:
    logger.info("🔌 Client removed from PostgreSQL pool")


async def _on_connection_created(conn: asyncpg.Connection) -> None:
    """新连接建立时的回调"""
    logger.info("🔗 New client connected to PostgreSQL database")
    conn.add_termination_listener(_on_connection_removed)


async def create_pool(config: PoolConfig, init: Optional[Any] = None) -> asyncpg.Pool:
    """
    创建连接池

    Args:
        config: 连接池配置
        init: 新连接建立时的回调，默认只记录日志

    Returns:
        已初始化的 asyncpg 连接池
    """
    max_size = max(1, config.max_size)
    pool = await asyncpg.create_pool(
        host=config.host,
        port=config.port,
        database=config.database,
        user=config.user,
        password=config.password,
        min_size=min(max(0, config.min_size), max_size),
        max_size=max_size,
        max_inactive_connection_lifetime=config.idle_timeout,
        timeout=config.acquire_timeout,
        init=init or _on_connection_created,
    )
    logger.info(f"🗄️ 连接池已创建: {config.safe_dsn()} (max={max_size})")
    return pool
