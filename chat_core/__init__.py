"""Chat Core 顶层包。

该包提供多会话聊天服务的核心实现，
包括配置加载、领域模型、会话存储、补全后端适配、
补全编排与会话偏好解析等能力。
"""

from chat_core.agents.orchestrator import CompletionOrchestrator
from chat_core.infrastructure.storage.redis_store import RedisConversationStore
from chat_core.sessions.preferences import PreferenceResolver

__all__ = ["CompletionOrchestrator", "RedisConversationStore", "PreferenceResolver"]
