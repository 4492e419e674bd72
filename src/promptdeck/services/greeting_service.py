"""问候服务"""

from typing import Any, Optional

from ..llm import OpenAIClient

GREETING_MODEL = "gpt-5-nano"
SYSTEM_PROMPT = "You are a friendly assistant that provides greetings."


def build_greeting_messages(name: Optional[str]) -> list[dict]:
    greeting_name = name or "World"
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": f"Generate a greeting message for {greeting_name}."},
    ]


async def get_greeting(client: OpenAIClient, name: Optional[str] = None) -> dict[str, Any]:
    """生成问候语，返回可直接 JSON 序列化的 chat completion"""
    response = await client.chat_completion(build_greeting_messages(name), model=GREETING_MODEL)
    if hasattr(response, "model_dump"):
        return response.model_dump(mode="json")
    return dict(response)
