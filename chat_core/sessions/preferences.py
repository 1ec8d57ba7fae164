"""会话偏好（模型 / 温度）的校验与归一化。

纯函数，无 I/O。会话里读出的值类型不固定（字符串、数字或缺失），
在边界处由 SessionPreferences.from_mapping 一次性解码成强类型结构，
默认值统一在 PreferenceResolver.resolve 中补齐。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from chat_core.config.settings import ChatConfig


MIN_TEMPERATURE = 0.1
MAX_TEMPERATURE = 1.0
DEFAULT_TEMPERATURE = 0.5


def resolve_model(requested: Optional[str], allowed_models: Sequence[str]) -> str:
    """校验请求的模型名。

    - 为空或不在允许列表中：回退到允许列表第一项。
    - 允许列表本身为空：原样返回请求（可能为空字符串）。
    """

    requested = requested or ""
    if not allowed_models:
        return requested
    if requested in allowed_models:
        return requested
    return allowed_models[0]


def clamp_temperature(value: float) -> float:
    """把温度限制在 [0.1, 1.0]，越界取最近的边界。NaN 视为未设置，返回默认值。"""

    if math.isnan(value):
        return DEFAULT_TEMPERATURE
    if value < MIN_TEMPERATURE:
        return MIN_TEMPERATURE
    if value > MAX_TEMPERATURE:
        return MAX_TEMPERATURE
    return value


def parse_temperature(raw: Any, default: float = DEFAULT_TEMPERATURE) -> float:
    """把松散类型的温度值转成 float，无法解析时返回 default（尚未 clamp）。"""

    if isinstance(raw, bool) or raw is None:
        return default
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip())
        except ValueError:
            return default
    if math.isnan(value):
        return default
    return value


def session_name(instance_name: str) -> str:
    """由实例名得到会话 cookie 名，例如 "Smart Chat" -> "smart-chat-session"。"""

    clean = instance_name.strip().lower()
    if not clean:
        return "session"
    return f"{clean.replace(' ', '-')}-session"


@dataclass(frozen=True)
class SessionPreferences:
    """调用方保存的偏好，字段缺失即为 None。"""

    model: Optional[str] = None
    temperature: Optional[float] = None

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> SessionPreferences:
        values = values or {}
        model = values.get("model")
        model = model.strip() if isinstance(model, str) and model.strip() else None
        raw_temp = values.get("temperature")
        temperature = None
        if raw_temp is not None and not (isinstance(raw_temp, str) and not raw_temp.strip()):
            temperature = parse_temperature(raw_temp)
        return cls(model=model, temperature=temperature)


@dataclass(frozen=True)
class ResolvedPreferences:
    model: str
    temperature: float

    def to_dict(self) -> dict:
        return {"model": self.model, "temperature": self.temperature}


class PreferenceResolver:
    """按启动时的 ChatConfig 校验偏好。"""

    def __init__(self, config: ChatConfig):
        self._config = config

    @property
    def allowed_models(self) -> Sequence[str]:
        return self._config.allowed_models

    def resolve(self, prefs: Optional[SessionPreferences] = None) -> ResolvedPreferences:
        prefs = prefs or SessionPreferences()
        temperature = prefs.temperature
        if temperature is None:
            temperature = self._config.default_temperature
        return ResolvedPreferences(
            model=resolve_model(prefs.model, self._config.allowed_models),
            temperature=clamp_temperature(temperature),
        )
