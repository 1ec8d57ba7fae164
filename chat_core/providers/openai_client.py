"""OpenAI 兼容补全后端适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 chat/completions 的 HTTP 请求：
   - URL: {base_url}/chat/completions
   - 认证: Authorization: Bearer <api_key>
3. 调用 HTTP 接口，把网络错误、非 2xx 状态、无法解析的响应
   统一包装为 CompletionBackendError。
4. 将响应 JSON 解析为 ChatResult。是否有候选回答由编排层判断。
"""

from typing import Any, Dict, Optional

import httpx

from chat_core.domain.exceptions import CompletionBackendError, ValidationError
from chat_core.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult, ChatUsage


class OpenAIClient:
    """OpenAI 兼容后端客户端实现。"""

    name = "openai"

    def __init__(self, base_url: str, api_key: str, timeout: float = 45.0):
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout

    def chat(self, req: ChatRequest, timeout: Optional[float] = None) -> ChatResult:
        """执行一次非流式补全调用。"""

        if not self._base_url:
            raise ValidationError(code="MISSING_BASE_URL", message="OPENAI_API_BASE_URL not set")
        payload = self._build_payload(req)
        try:
            with httpx.Client(timeout=timeout or self._timeout, trust_env=False) as client:
                resp = client.post(
                    f"{self._base_url.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            # DNS 失败、连接/读取超时等
            raise CompletionBackendError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code < 200 or resp.status_code > 299:
            raise CompletionBackendError(
                code="API_ERROR",
                message=f"completion request failed: status {resp.status_code}",
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionBackendError(code="DECODE_ERROR", message=str(e))
        if not isinstance(data, dict):
            raise CompletionBackendError(code="DECODE_ERROR", message="response is not a JSON object")
        try:
            return self._parse_response(data, req)
        except (AttributeError, TypeError, ValueError) as e:
            raise CompletionBackendError(code="DECODE_ERROR", message=f"malformed response: {e}")

    @staticmethod
    def _build_payload(req: ChatRequest) -> Dict[str, Any]:
        return {
            "model": req.model,
            "messages": [{"role": m.role, "content": m.content} for m in req.messages],
            "temperature": req.temperature,
        }

    @staticmethod
    def _parse_response(data: Dict[str, Any], req: ChatRequest) -> ChatResult:
        choices: list[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            choices.append(
                ChatChoice(
                    index=i,
                    message=ChatMessage(
                        role=msg.get("role") or "assistant",
                        content=msg.get("content") or "",
                    ),
                    finish_reason=ch.get("finish_reason"),
                )
            )
        usage_raw = data.get("usage") or {}
        usage = ChatUsage(
            prompt_tokens=usage_raw.get("prompt_tokens", 0),
            completion_tokens=usage_raw.get("completion_tokens", 0),
            total_tokens=usage_raw.get("total_tokens", 0),
        )
        return ChatResult(model=req.model, choices=choices, usage=usage, raw=data)
