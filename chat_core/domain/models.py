"""统一的会话与补全数据模型。

本模块定义了存储层、编排层与 Provider 之间共享的标准数据结构：

- ChatSummary / Message / ChatView: 持久化的会话摘要、消息与只读组合视图。
- ChatMessage / ChatRequest / ChatResult: 发给补全后端的请求与解析后的响应。

序列化格式（JSON 字段名、时间戳格式）也集中在这里，
存储层只负责读写字符串，不关心字段细节。
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional


# 持久化消息允许的角色
Role = Literal["user", "assistant"]
ROLES = ("user", "assistant")

DEFAULT_CHAT_TITLE = "New chat"


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601，使用 Z 后缀。"""

    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).astimezone(timezone.utc)


@dataclass
class ChatSummary:
    """会话摘要：id 创建后不可变，title 最多推导一次，updated_at 每次 touch 刷新。"""

    id: str
    title: str
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "updatedAt": format_timestamp(self.updated_at)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "ChatSummary":
        data = json.loads(raw)
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            updated_at=parse_timestamp(data["updatedAt"]),
        )


@dataclass(frozen=True)
class Message:
    """一条已存储的消息，写入后不再修改。"""

    role: Role
    content: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "createdAt": format_timestamp(self.created_at)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "Message":
        data = json.loads(raw)
        return cls(
            role=data["role"],
            content=data.get("content") or "",
            created_at=parse_timestamp(data["createdAt"]),
        )


@dataclass
class ChatView:
    """只读组合：一个摘要加上按追加顺序排列的全部消息。"""

    summary: ChatSummary
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass
class ChatMessage:
    """发给补全后端的一条消息，只包含 role/content。"""

    role: str
    content: str


@dataclass
class ChatRequest:
    """一次完整的补全请求。

    model 由调用方给出（经过 PreferenceResolver 校验），
    Provider 适配层负责把本结构转换成后端的 JSON 请求体。
    """

    model: str
    messages: List[ChatMessage]
    temperature: float = 0.5


@dataclass
class ChatUsage:
    """补全后端返回的 token 统计信息。"""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ChatChoice:
    """单个候选回答（只使用 index=0 的一条）。"""

    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次补全调用的结果。

    - choices: 候选回答，可能为空（由编排层判定为后端错误）。
    - usage: token 使用统计。
    - raw: 原始响应 JSON，用于调试。
    """

    model: str
    choices: List[ChatChoice]
    usage: ChatUsage = field(default_factory=ChatUsage)
    raw: Optional[dict] = None
