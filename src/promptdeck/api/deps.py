"""路由依赖：从 app.state 取出启动阶段创建的 DAO 与 AI 客户端"""

from typing import Optional

from fastapi import Request

from ..dao import PostgresDAO
from ..llm import OpenAIClient


def get_dao(request: Request) -> Optional[PostgresDAO]:
    return getattr(request.app.state, "dao", None)


def get_ai_client(request: Request) -> OpenAIClient:
    client = getattr(request.app.state, "ai_client", None)
    if client is None:
        raise RuntimeError("OpenAI client is not configured")
    return client
