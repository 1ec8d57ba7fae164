"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。

Settings 只在进程启动时读取一次；存储层与偏好解析器只接收
由 settings.chat_config() 生成的不可变 ChatConfig，不做任何全局查找。
"""

import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chat_core.domain.exceptions import ValidationError
from chat_core.domain.models import DEFAULT_CHAT_TITLE


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


def split_csv(value: str) -> List[str]:
    """逗号分隔字符串 -> 去空白、去空项的列表。"""

    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class ChatConfig:
    """启动时构造、显式传入各组件的不可变配置。"""

    allowed_models: Tuple[str, ...] = ()
    instance_name: str = ""
    chat_list_limit: int = 20
    default_title: str = DEFAULT_CHAT_TITLE
    title_max_length: int = 32
    default_temperature: float = 0.5


class ChatSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 键值存储 ----
    redis_url: str = Field(default="", description="Redis 连接 URL，例如 redis://localhost:6379/0")
    redis_socket_timeout: float = Field(default=5.0, gt=0, description="Redis 读写超时（秒）")

    # ---- 实例 ----
    instance_name: str = Field(default="", description="实例名称，用于展示与会话 cookie 命名")

    # ---- 补全后端（OpenAI 兼容接口） ----
    openai_api_base_url: str = Field(default="", description="补全后端基础URL")
    openai_api_key: str = Field(default="", description="补全后端 API 密钥")
    openai_api_models: str = Field(default="", description="允许使用的模型，逗号分隔，第一个为默认")
    http_timeout: float = Field(default=45.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 会话 ----
    chat_list_limit: int = Field(default=20, ge=1, le=100, description="会话列表最多返回的条数")
    default_title: str = Field(default=DEFAULT_CHAT_TITLE, description="新会话的默认标题")
    title_max_length: int = Field(default=32, ge=1, description="由首条消息推导标题时截取的字符数")
    default_temperature: float = Field(default=0.5, description="会话未设置温度时的默认值")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("default_title")
    @classmethod
    def validate_default_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_title must not be blank")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    @property
    def models(self) -> List[str]:
        return split_csv(self.openai_api_models)

    def missing_required(self) -> List[str]:
        """返回缺失的必填环境变量名。"""

        missing = []
        if not self.redis_url:
            missing.append("REDIS_URL")
        if not self.instance_name:
            missing.append("INSTANCE_NAME")
        if not self.openai_api_base_url:
            missing.append("OPENAI_API_BASE_URL")
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.models:
            missing.append("OPENAI_API_MODELS")
        return missing

    def validate_required(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ValidationError(
                code="MISSING_CONFIG",
                message=f"missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

    def chat_config(self) -> ChatConfig:
        return ChatConfig(
            allowed_models=tuple(self.models),
            instance_name=self.instance_name,
            chat_list_limit=self.chat_list_limit,
            default_title=self.default_title,
            title_max_length=self.title_max_length,
            default_temperature=self.default_temperature,
        )


settings = ChatSettings()
