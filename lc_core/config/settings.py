"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
config.yaml 默认位于用户配置目录下的 lc/config.yaml，
可以通过 LC_CONFIG_FILE 环境变量显式指定。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lc_core.domain.exceptions import ConfigError


APP_DIR_NAME = "lc"
CONFIG_FILE_NAME = "config.yaml"
MEMORY_FILE_NAME = "conversation_memory.json"

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_HISTORY = 10
DEFAULT_SYSTEM_PROMPT = """You are a professional Linux command-line assistant named lc. Your task is to answer users' questions about Linux commands, operations, and issues. Please follow these guidelines:

  1. Answer user questions directly, without using any Markdown formatting or text formatting (such as bold, italics, etc.).
  2. Keep answers concise and clear, suitable for display on a command-line interface.
  3. If the user provides command examples, carefully analyze and explain the role of each part.
  4. If errors or problems are encountered, provide possible causes and solutions.
  5. Use clear steps or numbered lists to explain complex processes.
  6. If you need to display code or commands, write them directly without using code block formatting.
  7. Avoid using emojis or other special characters that may display abnormally on the command line.
  8. If the user's question is unclear, politely request more information.
  9. Provide practical advice, including command best practices and security precautions.
  10. If the user requests an operation that may be risky, remind them of the potential consequences.
  11. Pay attention to the user's questions and requests, which are always in the Query. Please be sure to check them. The content in the Input is background or reference information.

  Remember, you must check the requirements in the received Query and the information in the Input, and your response will be displayed directly on the command-line interface, so keep the format simple and the content clear."""

# 写回 config.yaml、允许通过 --set 修改的配置项
PERSISTED_KEYS = (
    "openai_api_key",
    "openai_base_url",
    "default_model",
    "system_prompt",
    "max_history",
    "use_system_prompt",
)

DEFAULTS: Dict[str, Any] = {
    "openai_api_key": "",
    "openai_base_url": DEFAULT_BASE_URL,
    "default_model": DEFAULT_MODEL,
    "system_prompt": DEFAULT_SYSTEM_PROMPT,
    "max_history": DEFAULT_MAX_HISTORY,
    "use_system_prompt": True,
}


def config_dir() -> Path:
    """返回 lc 的配置目录（不会自动创建）。

    Windows 使用 %APPDATA%，其他平台优先 $XDG_CONFIG_HOME，否则 ~/.config。
    """

    if os.name == "nt":
        base = os.getenv("APPDATA")
    else:
        base = os.getenv("XDG_CONFIG_HOME")
        if not base:
            try:
                base = str(Path.home() / ".config")
            except RuntimeError:
                base = None
    if not base:
        raise ConfigError(code="CONFIG_ERROR", message="Failed to determine config directory")
    return Path(base) / APP_DIR_NAME


def config_path() -> Path:
    explicit = os.getenv("LC_CONFIG_FILE")
    if explicit:
        return Path(explicit).expanduser()
    return config_dir() / CONFIG_FILE_NAME


def memory_path() -> Path:
    return config_dir() / MEMORY_FILE_NAME


def _load_config_from_yaml(path: Optional[Path] = None) -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""

    if path is None:
        try:
            path = config_path()
        except ConfigError as exc:
            warnings.warn(exc.message)
            return {}
    try:
        if path.exists():
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if isinstance(data, dict):
                return data
            warnings.warn(f"Config file {path} is not a mapping, ignored")
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


def _write_config(data: Dict[str, Any], target: Path) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            yaml.safe_dump(data, allow_unicode=True, sort_keys=False),
            encoding="utf-8",
        )
    except OSError as e:
        raise ConfigError(code="CONFIG_ERROR", message=f"Failed to write config file {target}: {e}")


class Settings(BaseSettings):
    """lc 配置。

    Transport / Store 只读取这些字段，从不修改；
    只有 CLI 的 --set / --reset-config 会改写配置文件。
    """

    openai_api_key: str = Field(default="", description="OpenAI 兼容接口的 API 密钥")
    openai_base_url: str = Field(default=DEFAULT_BASE_URL, description="API 基础URL")
    default_model: str = Field(default=DEFAULT_MODEL, description="默认模型名")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="系统提示词")
    max_history: int = Field(
        default=DEFAULT_MAX_HISTORY,
        ge=0,
        description="记忆模式下保留的最大轮数（一轮 = user + assistant），0 表示不保留",
    )
    use_system_prompt: bool = Field(default=True, description="是否发送系统提示词")

    connect_timeout: float = Field(default=30.0, gt=0, description="连接超时（秒）")
    write_timeout: float = Field(default=30.0, gt=0, description="写超时（秒）")
    read_timeout: float = Field(default=120.0, gt=0, description="读超时（秒）")

    log_dir: Optional[str] = Field(default=None, description="JSON 日志目录，为空时不写文件日志")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @staticmethod
    def yaml_config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key", "openai_base_url", "default_model")
    @classmethod
    def strip_value(cls, v: str) -> str:
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
            cls.yaml_config_source,
            file_secret_settings,
        )

    def persisted(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in PERSISTED_KEYS}

    def save(self, path: Optional[Path] = None) -> Path:
        """把可持久化的配置项写回 config.yaml。"""

        target = Path(path) if path else config_path()
        _write_config(self.persisted(), target)
        return target

    def set_value(self, key: str, value: str, path: Optional[Path] = None) -> None:
        """校验并修改单个配置项，然后写回。

        只改写配置文件中的这一项；来自环境变量或 .env 的值不会落盘。
        """

        if key not in PERSISTED_KEYS:
            raise ConfigError(code="CONFIG_ERROR", message=f"Unknown config key: {key}")
        try:
            setattr(self, key, value)
        except ValidationError as e:
            raise ConfigError(code="CONFIG_ERROR", message=f"Invalid value for {key}: {value!r}", errors=e.errors())
        target = Path(path) if path else config_path()
        data = {k: v for k, v in _load_config_from_yaml(target).items() if k in PERSISTED_KEYS}
        data[key] = getattr(self, key)
        _write_config(data, target)

    def show(self) -> str:
        prompt = self.system_prompt
        if len(prompt) > 50:
            prompt = prompt[:47] + "..."
        lines = [
            "Current Configuration:",
            f"  openai_api_key: {'[HIDDEN]' if self.openai_api_key else '[NOT SET]'}",
            f"  openai_base_url: {self.openai_base_url}",
            f"  default_model: {self.default_model}",
            f"  max_history: {self.max_history}",
            f"  use_system_prompt: {'true' if self.use_system_prompt else 'false'}",
            f"  system_prompt: {prompt}",
        ]
        return "\n".join(lines)


def load_settings() -> Settings:
    """加载配置；校验失败时给出警告并回退到默认值。"""

    try:
        return Settings()
    except ValidationError as exc:
        warnings.warn(f"Error loading config: {exc}. Using default configuration.")
        return Settings.model_construct(**DEFAULTS)


def reset_config(path: Optional[Path] = None) -> Settings:
    """把配置文件重置为默认值。"""

    cfg = Settings.model_construct(**DEFAULTS)
    cfg.save(path)
    return cfg
