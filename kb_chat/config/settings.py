"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("KB_CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
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


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Agent 端点 ----
    agent_base_url: str = Field(
        default="http://localhost:3000",
        description="Agent / 知识库接口所在服务的基础 URL",
    )
    agent_path: str = Field(default="/api/agent", description="Agent 调用端点路径")
    agent_id: str = Field(
        default="6938377d1f3e985c1e365a16",
        description="远端 Agent 标识，随每次请求发送",
    )

    # ---- 知识库 (RAG) ----
    rag_path: str = Field(default="/api/rag", description="知识库上传/删除端点路径")
    rag_id: Optional[str] = Field(default=None, description="知识库标识 ragId")

    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    upload_timeout: float = Field(default=120.0, ge=1.0, description="文件上传超时时间（秒）")

    # ---- 邮件对话框 ----
    email_close_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="邮件发送成功后自动关闭对话框的延迟（秒）",
    )

    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("agent_id")
    @classmethod
    def validate_agent_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("agent_id must not be empty")
        return v.strip()

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


settings = Settings()
