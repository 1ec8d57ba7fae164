"""对外 API 服务模块。

提供简化的函数接口供展示层（HTTP 路由、模板）调用，
返回值均为可直接序列化为 JSON 的字典。
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from chat_core.agents.orchestrator import CompletionOrchestrator
from chat_core.config.settings import settings
from chat_core.domain.conversation import ConversationStore
from chat_core.domain.exceptions import BusinessError, ValidationError
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.redis_store import RedisConversationStore, connect_redis
from chat_core.providers import create_provider
from chat_core.sessions.preferences import PreferenceResolver, SessionPreferences


@dataclass
class ChatService:
    store: ConversationStore
    orchestrator: CompletionOrchestrator
    resolver: PreferenceResolver


_service: Optional[ChatService] = None


def get_default_service() -> ChatService:
    """获取默认的服务实例（单例），首次调用时按配置连接 Redis 与补全后端。"""
    global _service
    if _service is None:
        settings.validate_required()
        config = settings.chat_config()
        client = connect_redis(settings.redis_url, settings.redis_socket_timeout)
        store = RedisConversationStore(client, config)
        _service = ChatService(
            store=store,
            orchestrator=CompletionOrchestrator(store, create_provider()),
            resolver=PreferenceResolver(config),
        )
    return _service


def open_chat(user: str, chat_id: Optional[str] = None) -> Dict[str, Any]:
    """打开一个会话；未指定 chat_id 时返回最近的会话（没有则新建）。

    Returns:
        包含当前会话、最近会话列表和可选模型的字典
    """
    svc = get_default_service()
    if not chat_id:
        chat_id = svc.store.ensure_chat(user).id
    view = svc.store.get_chat(user, chat_id)
    chats = svc.store.list_chats(user)
    return {
        "chat": view.to_dict(),
        "chats": [c.to_dict() for c in chats],
        "models": list(svc.resolver.allowed_models),
    }


def create_chat(user: str, title: str = "") -> Dict[str, Any]:
    return get_default_service().store.new_chat(user, title).to_dict()


def list_chats(user: str) -> list[Dict[str, Any]]:
    return [c.to_dict() for c in get_default_service().store.list_chats(user)]


def send_message(
    user: str,
    chat_id: str,
    content: str,
    preferences: Optional[Mapping[str, Any]] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """追加用户消息并运行一次补全。

    Args:
        user: 已验证的用户身份
        chat_id: 会话ID
        content: 用户输入内容，去除首尾空白后不能为空
        preferences: 会话中保存的偏好（model / temperature，类型不固定）
        timeout: 补全调用超时（秒）

    Returns:
        包含用户消息、助手消息和使用统计的字典

    Raises:
        各种 domain.exceptions 中定义的异常；补全失败时用户消息已经保存
    """
    if not chat_id:
        raise ValidationError(code="MISSING_CHAT", message="missing chat")
    content = (content or "").strip()
    if not content:
        raise ValidationError(code="EMPTY_MESSAGE", message="empty message")
    svc = get_default_service()
    resolved = svc.resolver.resolve(SessionPreferences.from_mapping(preferences))
    user_message = svc.store.append_message(user, chat_id, "user", content)
    try:
        assistant_message, usage = svc.orchestrator.run_completion(
            user, chat_id, resolved.model, resolved.temperature, timeout=timeout
        )
    except BusinessError as e:
        logger.error(f"Completion failed: {e}", extra={"extra": {
            "chat_id": chat_id,
            "code": e.code,
        }})
        raise
    return {
        "user": user_message.to_dict(),
        "assistant": assistant_message.to_dict(),
        "usage": usage.to_dict(),
    }


def update_preferences(values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """校验调用方提交的偏好，返回归一化后的 {model, temperature}。"""
    resolved = get_default_service().resolver.resolve(SessionPreferences.from_mapping(values))
    return resolved.to_dict()
