"""配置管理模块"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .dao.database import PoolConfig


class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    app_name: str = "promptdeck"
    debug: bool = True
    port: int = 5000
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # 数据库配置
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "promptdeck"
    db_user: str = "postgres"
    db_password: str = "password"
    db_max_connections: int = 20
    db_min_connections: int = 1
    db_idle_timeout: int = 30000        # 毫秒
    db_connection_timeout: int = 2000   # 毫秒，获取连接的最长等待时间

    # OpenAI 配置
    openai_api_key: Optional[str] = None
    openai_organization: Optional[str] = None
    openai_base_url: Optional[str] = None

    # 默认模型配置
    default_model: str = "gpt-5-nano"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # 忽略未定义的环境变量
    )

    def pool_config(self) -> PoolConfig:
        """构造连接池配置"""
        return PoolConfig(
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
            user=self.db_user,
            password=self.db_password,
            min_size=self.db_min_connections,
            max_size=self.db_max_connections,
            idle_timeout_ms=self.db_idle_timeout,
            connection_timeout_ms=self.db_connection_timeout,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
