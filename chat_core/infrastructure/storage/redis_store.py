"""基于 Redis 的会话存储。

四类键，均由标识符确定：

- userchats:<user>      用户的会话索引（list，最近访问在前，无重复）
- chatmeta:<chat>       会话摘要（ChatSummary JSON）
- chatmessages:<chat>   消息日志（list，RPUSH 追加，存储顺序即追加顺序）
- chatowner:<chat>      所有者身份（字符串）

摘要、所有权记录与索引提升总是放在同一个 MULTI/EXEC 事务里写入，
要么全部可见，要么都不可见。touch 的“读-改-写”不加版本校验，
并发 touch 时后写者覆盖先写者。
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional
from uuid import uuid4

import redis

from chat_core.config.settings import ChatConfig
from chat_core.domain.conversation import ConversationStore
from chat_core.domain.exceptions import BackingStoreError, UnauthorizedError, ValidationError
from chat_core.domain.models import ROLES, ChatSummary, ChatView, Message
from chat_core.infrastructure.logging.logger import logger


def user_chats_key(user: str) -> str:
    return f"userchats:{user}"


def chat_meta_key(chat_id: str) -> str:
    return f"chatmeta:{chat_id}"


def chat_messages_key(chat_id: str) -> str:
    return f"chatmessages:{chat_id}"


def chat_owner_key(chat_id: str) -> str:
    return f"chatowner:{chat_id}"


def summarize_title(content: str, max_length: int = 32) -> str:
    """取去除首尾空白后内容的前 max_length 个字符（硬截断，不考虑词边界）。"""

    return content.strip()[:max_length]


def connect_redis(url: str, socket_timeout: float = 5.0) -> redis.Redis:
    """解析 URL 并创建客户端，ping 失败直接报错。

    不开启 retry_on_timeout：重试策略属于调用方。
    """

    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            retry_on_timeout=False,
        )
        client.ping()
    except (redis.RedisError, ValueError) as e:
        raise BackingStoreError(code="STORE_CONNECT_ERROR", message=str(e))
    logger.info("Redis connected", extra={"extra": {"redis_url": _redact_url(url)}})
    return client


def _redact_url(url: str) -> str:
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


@contextmanager
def _store_errors(code: str, **extra) -> Iterator[None]:
    """把 redis 异常统一包装成 BackingStoreError。

    decode_responses=True 时非 UTF-8 的值会在客户端解码阶段抛出 UnicodeDecodeError，
    同样视为存储读取失败。
    """

    try:
        yield
    except redis.RedisError as e:
        raise BackingStoreError(code=code, message=str(e), **extra) from e
    except UnicodeDecodeError as e:
        raise BackingStoreError(code="STORE_READ_ERROR", message=f"undecodable value: {e}", **extra) from e


class RedisConversationStore(ConversationStore):
    def __init__(
        self,
        client: redis.Redis,
        config: Optional[ChatConfig] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        # client 需使用 decode_responses=True
        self._redis = client
        self._config = config or ChatConfig()
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ---- 会话 ----

    def ensure_chat(self, user: str) -> ChatSummary:
        summaries = self.list_chats(user)
        if summaries:
            return summaries[0]
        return self.new_chat(user, self._config.default_title)

    def new_chat(self, user: str, title: str = "") -> ChatSummary:
        if not title.strip():
            title = self._config.default_title
        summary = ChatSummary(id=str(uuid4()), title=title, updated_at=self._now())
        self._save_chat_meta(user, summary)
        logger.info("Created new chat", extra={"extra": {"chat_id": summary.id, "user": user}})
        return summary

    def list_chats(self, user: str) -> List[ChatSummary]:
        """读取最近的会话摘要。

        单条摘要缺失或损坏时跳过并记录警告，不影响其他条目；
        读取索引本身失败则直接抛出。
        """

        with _store_errors("STORE_READ_ERROR", user=user):
            ids = self._redis.lrange(user_chats_key(user), 0, self._config.chat_list_limit - 1)
        summaries: List[ChatSummary] = []
        for chat_id in ids:
            summary = self._resolve_summary(chat_id)
            if summary is not None:
                summaries.append(summary)
        return summaries

    def get_chat(self, user: str, chat_id: str) -> ChatView:
        self.verify_owner(user, chat_id)
        summary = self._read_summary(chat_id)
        return ChatView(summary=summary, messages=self.list_messages(chat_id))

    # ---- 消息 ----

    def append_message(self, user: str, chat_id: str, role: str, content: str) -> Message:
        """把消息追加到日志尾部并 touch 会话，返回带时间戳的已存储消息。"""

        if role not in ROLES:
            raise ValidationError(code="INVALID_ROLE", message=f"unsupported role: {role!r}")
        self.verify_owner(user, chat_id)
        message = Message(role=role, content=content, created_at=self._now())
        with _store_errors("STORE_WRITE_ERROR", chat_id=chat_id):
            self._redis.rpush(chat_messages_key(chat_id), message.to_json())
        self.touch_chat(user, chat_id, content)
        return message

    def list_messages(self, chat_id: str) -> List[Message]:
        with _store_errors("STORE_READ_ERROR", chat_id=chat_id):
            values = self._redis.lrange(chat_messages_key(chat_id), 0, -1)
        messages: List[Message] = []
        for value in values:
            try:
                messages.append(Message.from_json(value))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(
                    "Skipped unreadable message",
                    extra={"extra": {"chat_id": chat_id, "error": str(e)}},
                )
        return messages

    def touch_chat(self, user: str, chat_id: str, content: str) -> ChatSummary:
        """刷新 updated_at，必要时推导标题，并把会话提升到索引最前。"""

        summary = self._read_summary(chat_id)
        if summary.title == self._config.default_title and content.strip():
            summary.title = summarize_title(content, self._config.title_max_length)
        summary.updated_at = self._now()
        self._save_chat_meta(user, summary)
        return summary

    # ---- 所有权 ----

    def verify_owner(self, user: str, chat_id: str) -> None:
        with _store_errors("STORE_READ_ERROR", chat_id=chat_id):
            owner = self._redis.get(chat_owner_key(chat_id))
        if owner is None or owner != user:
            raise UnauthorizedError(chat_id)

    # ---- 内部 ----

    def _read_summary(self, chat_id: str) -> ChatSummary:
        with _store_errors("STORE_READ_ERROR", chat_id=chat_id):
            data = self._redis.get(chat_meta_key(chat_id))
        if data is None:
            raise BackingStoreError(code="CHAT_META_MISSING", message=f"chat metadata missing: {chat_id}", chat_id=chat_id)
        try:
            return ChatSummary.from_json(data)
        except (ValueError, KeyError, TypeError) as e:
            raise BackingStoreError(code="STORE_READ_ERROR", message=str(e), chat_id=chat_id)

    def _resolve_summary(self, chat_id: str) -> Optional[ChatSummary]:
        """列表用：读取失败返回 None（跳过），并记录一条非致命诊断。"""

        try:
            return self._read_summary(chat_id)
        except BackingStoreError as e:
            logger.warning(
                "Skipped unreadable chat summary",
                extra={"extra": {"chat_id": chat_id, "code": e.code, "error": e.message}},
            )
            return None

    def _save_chat_meta(self, user: str, summary: ChatSummary) -> None:
        with _store_errors("STORE_WRITE_ERROR", chat_id=summary.id):
            with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(chat_meta_key(summary.id), summary.to_json())
                pipe.set(chat_owner_key(summary.id), user)
                pipe.lrem(user_chats_key(user), 0, summary.id)
                pipe.lpush(user_chats_key(user), summary.id)
                pipe.execute()
