"""DAO 层异常定义"""

from typing import Optional


class DAOError(Exception):
    """Base exception for all data access errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DAOError):
    """调用方违反前置条件（在发送任何语句之前抛出）"""


class PoolTimeout(DAOError):
    """在配置的超时时间内没有可用连接"""


class DriverError(DAOError):
    """数据库拒绝或执行语句失败"""

    def __init__(self, message: str, sqlstate: Optional[str] = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class TransactionError(DAOError):
    """事务作用域使用不当（嵌套事务、作用域结束后继续使用句柄）"""


class PoolClosedError(DAOError):
    """连接池已关闭"""
