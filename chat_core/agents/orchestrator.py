"""补全编排模块。

把会话存储的读写与一次补全后端调用组合成一个逻辑操作：
校验所有权 -> 读取完整消息日志 -> 调用后端 -> 追加助手回复并 touch 会话。

用户这一轮的消息不在这里追加，调用方需要先调用 append_message。
各步骤之间没有回滚：后端失败时，已追加的用户消息会保留下来且没有助手回复，
这是对调用方可见的部分失败状态。本模块也不做任何自动重试。
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from chat_core.domain.conversation import ConversationStore
from chat_core.domain.exceptions import BusinessError, CompletionBackendError
from chat_core.domain.models import ChatMessage, ChatRequest, ChatResult, ChatUsage, Message
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.base import CompletionBackend


class CompletionOrchestrator:
    def __init__(self, store: ConversationStore, backend: CompletionBackend):
        self._store = store
        self._backend = backend

    def run_completion(
        self,
        user: str,
        chat_id: str,
        model: str,
        temperature: float,
        timeout: Optional[float] = None,
    ) -> Tuple[Message, ChatUsage]:
        """对会话现有消息执行一次补全，并把回复追加到日志尾部。

        Args:
            user: 已验证的用户身份
            chat_id: 会话ID
            model: 已校验的模型名
            temperature: 已 clamp 的温度
            timeout: 本次后端调用的超时（秒），None 使用后端默认值

        Returns:
            (已存储的助手消息, token 统计) 的元组

        Raises:
            UnauthorizedError: 调用者不拥有该会话
            BackingStoreError: 读写存储失败
            CompletionBackendError: 后端失败或没有返回候选回答
        """
        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "chat_id": chat_id,
            "model": model,
        }

        # 1-2. 校验所有权并读取日志（get_chat 内部做所有权校验）
        view = self._store.get_chat(user, chat_id)
        chat_messages = self._project(view.messages)
        self._log(logging.INFO, "Loaded chat history", log_ctx, messages=len(chat_messages))

        # 3. 调用后端
        req = ChatRequest(model=model, messages=chat_messages, temperature=temperature)
        try:
            result: ChatResult = self._backend.chat(req, timeout=timeout)
        except BusinessError as e:
            self._log(logging.ERROR, "Completion failed", log_ctx, code=e.code, error=e.message)
            raise
        if not result.choices:
            self._log(logging.ERROR, "Completion returned no choices", log_ctx)
            raise CompletionBackendError(code="NO_CHOICES", message="no choices returned", chat_id=chat_id)
        reply = result.choices[0].message
        usage = result.usage or ChatUsage()
        self._log(
            logging.INFO,
            "Token usage",
            log_ctx,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )

        # 4. 追加回复（append_message 会用回复内容 touch 会话）
        role = reply.role
        if role != "assistant":
            self._log(logging.WARNING, "Normalized reply role", log_ctx, reply_role=role)
            role = "assistant"
        stored = self._store.append_message(user, chat_id, role, reply.content)

        elapsed = time.time() - start_time
        self._log(logging.INFO, "Completed chat completion", log_ctx, elapsed_seconds=round(elapsed, 2))
        return stored, usage

    @staticmethod
    def _project(messages: List[Message]) -> List[ChatMessage]:
        return [ChatMessage(role=m.role, content=m.content) for m in messages]

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
