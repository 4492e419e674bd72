"""FastAPI 应用入口"""

# 必须在所有其他导入之前加载环境变量
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .api import router, test_router
from .config import get_settings
from .dao import create_dao
from .llm import create_ai_client
from .log import setup_logging
from .models import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("🚀 promptdeck 后端启动中...")
    logger.info(f"📝 Debug模式: {settings.debug}")

    # 数据库初始化失败只记录错误，不阻止服务启动
    app.state.dao = None
    try:
        app.state.dao = await create_dao(settings.pool_config())
    except Exception as e:
        logger.error(f"❌ Failed to initialize database connection: {e}")

    app.state.ai_client = None
    try:
        app.state.ai_client = create_ai_client(settings)
    except Exception as e:
        logger.warning(f"⚠️ Failed to initialize default OpenAI client: {e}")

    yield

    if app.state.dao is not None:
        await app.state.dao.close()
    logger.info("👋 promptdeck 后端关闭")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=ErrorResponse().model_dump())


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    settings = get_settings()

    app = FastAPI(
        title="promptdeck API",
        description="问候接口（OpenAI）与通用 PostgreSQL 数据访问层",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS 配置
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(Exception, internal_error_handler)

    # 注册路由
    app.include_router(router)
    app.include_router(test_router)

    return app


# 创建应用实例
app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("promptdeck.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    run()
