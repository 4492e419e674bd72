"""Pydantic 数据模型定义"""

from typing import Any, Optional

from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class EchoResponse(BaseModel):
    """回显请求体"""
    received: Any = None


class ErrorResponse(BaseModel):
    error: str = "internal server error"


class PoolStatus(BaseModel):
    """连接池状态"""
    total_count: int = 0
    idle_count: int = 0
    max_size: int = 0
    is_connected: bool = False


class HealthResponse(BaseModel):
    status: str
    app: str
    database: Optional[PoolStatus] = None   # 数据库未初始化时为空
    ai_client: bool = False                 # 是否配置了 OpenAI 客户端
