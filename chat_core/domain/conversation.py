"""会话存储协议。

编排层与 API 层只依赖 ConversationStore，不关心底层键值存储。
所有方法都以已验证的用户身份（不透明字符串）为第一个参数，
读写前都会做所有权校验。

存储操作没有单独的超时参数：截止时间由客户端连接时设置的
socket_timeout / socket_connect_timeout 统一约束（见 connect_redis），
超时以 BackingStoreError 抛出。只有补全调用支持按次传入 timeout。
"""

from typing import List, Protocol

from chat_core.domain.models import ChatSummary, ChatView, Message


class ConversationStore(Protocol):
    def ensure_chat(self, user: str) -> ChatSummary:
        ...

    def new_chat(self, user: str, title: str = "") -> ChatSummary:
        ...

    def list_chats(self, user: str) -> List[ChatSummary]:
        ...

    def get_chat(self, user: str, chat_id: str) -> ChatView:
        ...

    def append_message(self, user: str, chat_id: str, role: str, content: str) -> Message:
        ...

    def touch_chat(self, user: str, chat_id: str, content: str) -> ChatSummary:
        ...
