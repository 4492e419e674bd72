"""LLM 客户端封装 - 使用 OpenAI SDK"""

from typing import Any, Callable, Optional

import openai
from openai import AsyncOpenAI
import logging

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-5-nano"


class AIClientError(Exception):
    """OpenAI API 调用失败"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OpenAIClient:
    """
    OpenAI 客户端

    对 AsyncOpenAI 的薄封装：统一日志与错误包装，不包含额外业务逻辑
    """

    def __init__(
        self,
        api_key: Optional[str],
        organization: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: str = DEFAULT_CHAT_MODEL,
    ):
        if not api_key:
            raise ValueError("OpenAI API key is required")

        self.client = AsyncOpenAI(
            api_key=api_key,
            organization=organization,
            base_url=base_url,
        )
        self.organization = organization
        self.default_model = default_model

        logger.info("🤖 OpenAI Client initialized successfully")
        if organization:
            logger.info(f"🏢 Organization: {organization}")

    async def chat_completion(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """
        发送聊天请求

        Args:
            messages: 消息列表 [{"role": "user", "content": "..."}]
            model: 模型ID，默认 gpt-5-nano
            max_tokens: 最大生成 token 数（对应 max_completion_tokens）

        Returns:
            SDK 返回的 ChatCompletion 对象
        """
        if not messages:
            raise ValueError("Messages array is required and cannot be empty")

        params: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": messages,
        }
        if max_tokens:
            params["max_completion_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            logger.error(f"❌ Chat Completion Error: {e}")
            raise self._handle_error(e)

        usage = getattr(response, "usage", None)
        total_tokens = getattr(usage, "total_tokens", None) or "N/A"
        logger.info(f"✅ Chat Completion Success - Tokens used: {total_tokens}")
        return response

    async def stream_chat_completion(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        on_chunk: Optional[Callable[[str, str], None]] = None,
    ) -> str:
        """流式聊天，返回完整内容；on_chunk(本次增量, 累计内容)"""
        if not messages:
            raise ValueError("Messages array is required and cannot be empty")

        model = model or self.default_model
        logger.info(f"🌊 Starting streaming chat completion - Model: {model}")
        full_content = ""
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content or ""
                if content:
                    full_content += content
                    if on_chunk:
                        on_chunk(content, full_content)
        except Exception as e:
            logger.error(f"❌ Streaming Chat Error: {e}")
            raise self._handle_error(e)

        logger.info(f"✅ Streaming completed - Total content length: {len(full_content)}")
        return full_content

    async def create_embeddings(self, input: str | list[str], model: str = "text-embedding-3-small") -> Any:
        if not input:
            raise ValueError("Input is required for embeddings")
        try:
            response = await self.client.embeddings.create(model=model, input=input)
        except Exception as e:
            logger.error(f"❌ Embeddings Error: {e}")
            raise self._handle_error(e)
        logger.info(f"✅ Embeddings Success - Generated {len(response.data)} embedding(s)")
        return response

    async def list_models(self) -> list[Any]:
        try:
            page = await self.client.models.list()
        except Exception as e:
            logger.error(f"❌ List Models Error: {e}")
            raise self._handle_error(e)
        models = list(page.data)
        logger.info(f"✅ Found {len(models)} available models")
        return models

    async def get_model(self, model_id: str) -> Any:
        if not model_id:
            raise ValueError("Model ID is required")
        try:
            return await self.client.models.retrieve(model_id)
        except Exception as e:
            logger.error(f"❌ Get Model Error: {e}")
            raise self._handle_error(e)

    async def test_connection(self) -> bool:
        """测试 API 连通性（不抛异常）"""
        try:
            await self.list_models()
            logger.info("✅ OpenAI connection test successful")
            return True
        except Exception as e:
            logger.error(f"❌ OpenAI connection test failed: {e}")
            return False

    @staticmethod
    def _handle_error(error: Exception) -> Exception:
        """API 错误统一包装，其它异常原样返回"""
        if isinstance(error, openai.APIStatusError):
            body = error.body if isinstance(error.body, dict) else {}
            detail = body.get("message")
            return AIClientError(f"OpenAI API Error: {detail or error.message or 'Unknown error'}")
        if isinstance(error, openai.APIError):
            return AIClientError(f"OpenAI API Error: {error.message or 'Unknown error'}")
        return error


def create_ai_client(settings: Any) -> Optional[OpenAIClient]:
    """根据配置创建客户端；未配置 API key 时返回 None"""
    if not settings.openai_api_key:
        logger.warning("⚠️ OpenAI API key not found in configuration")
        logger.warning("💡 Set OPENAI_API_KEY in your .env file to use the default client")
        return None
    return OpenAIClient(
        api_key=settings.openai_api_key,
        organization=settings.openai_organization,
        base_url=settings.openai_base_url,
        default_model=settings.default_model,
    )
