"""
数据访问对象层 (DAO)

基于 asyncpg 连接池的通用参数化查询、CRUD 与事务作用域
"""

from .database import PoolConfig, create_pool
from .exceptions import (
    DAOError,
    DriverError,
    PoolClosedError,
    PoolTimeout,
    TransactionError,
    ValidationError,
)
from .postgres_dao import PostgresDAO, QueryResult, create_dao

__all__ = [
    # 连接池
    "PoolConfig",
    "create_pool",
    # DAO
    "PostgresDAO",
    "QueryResult",
    "create_dao",
    # 异常
    "DAOError",
    "DriverError",
    "PoolClosedError",
    "PoolTimeout",
    "TransactionError",
    "ValidationError",
]
