"""API 路由定义"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ..config import get_settings
from ..dao import PostgresDAO
from ..llm import OpenAIClient
from ..models import (
    EchoResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    PoolStatus,
)
from ..services import get_greeting
from .deps import get_ai_client, get_dao


# ============ 路由器 ============

router = APIRouter(tags=["server"])
test_router = APIRouter(prefix="/api/test", tags=["test"])


# ============ 基础接口 ============

@router.get("/", response_model=MessageResponse)
async def index():
    return {"message": "server running"}


@router.post("/echo", response_model=EchoResponse)
async def echo(payload: Any = Body(default=None)):
    """原样返回请求体"""
    return {"received": payload}


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, dao: Optional[PostgresDAO] = Depends(get_dao)):
    """健康检查（包含连接池状态）"""
    settings = get_settings()
    database = PoolStatus(**dao.get_pool_status()) if dao is not None else None
    return HealthResponse(
        status="healthy",
        app=settings.app_name,
        database=database,
        ai_client=getattr(request.app.state, "ai_client", None) is not None,
    )


# ============ 问候 ============

@test_router.get("/greeting")
async def greeting(name: Optional[str] = None, client: OpenAIClient = Depends(get_ai_client)):
    """调用 OpenAI 生成问候语"""
    try:
        return await get_greeting(client, name)
    except Exception as e:
        logger.error(f"Error in /api/test/greeting: {e!r}")
        return JSONResponse(status_code=500, content=ErrorResponse().model_dump())
