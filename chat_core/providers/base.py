"""补全后端抽象接口。

编排层不直接依赖具体厂商的 HTTP 接口，而是依赖此协议：

- 每个后端实现一个 CompletionBackend（如 OpenAIClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并把响应 JSON 解析为 ChatResult。
- 任何失败都以 CompletionBackendError 抛出，不区分后端自身的错误码。
"""

from typing import Optional, Protocol

from chat_core.domain.models import ChatRequest, ChatResult


class CompletionBackend(Protocol):
    """补全后端客户端协议。

    实现者需要提供：
    - name: 后端名称，用于日志。
    - chat(req, timeout): 执行一次非流式补全调用，返回统一的 ChatResult。
      timeout 为本次调用的截止时间（秒），None 表示使用客户端默认值。
    """

    name: str

    def chat(self, req: ChatRequest, timeout: Optional[float] = None) -> ChatResult:
        ...
