"""补全后端集成层。

该包下的模块负责：
- 定义后端抽象接口 (base)。
- 提供 OpenAI 兼容接口的具体实现 (openai_client)。
"""

from chat_core.config.settings import settings
from chat_core.providers.base import CompletionBackend
from chat_core.providers.openai_client import OpenAIClient


def create_provider() -> CompletionBackend:
    """根据配置创建补全后端实例。"""

    return OpenAIClient(
        base_url=settings.openai_api_base_url,
        api_key=settings.openai_api_key,
        timeout=settings.http_timeout,
    )
