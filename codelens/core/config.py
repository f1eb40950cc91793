"""
Application configuration with layered loading.

Configuration precedence (highest to lowest):
1. Environment variables (a .env file at the project root is loaded first)
2. config.yml values
3. Default values defined here

Secrets (Telegram token, completion API key) have no defaults. They are
checked once at startup by Settings.validate_required().
"""
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from codelens.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists() or (parent / "config.example.yml").exists():
            return parent
    return Path(os.getenv("CODELENS_ROOT", os.getcwd()))


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file if it exists."""
    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}")
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {config_path}: {e}")
        return {}


def _get_nested(d: Dict, *keys, default=None):
    """Safely get a nested dictionary value."""
    for key in keys:
        if isinstance(d, dict):
            d = d.get(key, default)
        else:
            return default
    return d if d is not None else default


def _env_or_yaml(env_key: str, yaml_config: Dict, *yaml_keys, default=None):
    """Get value from environment variable, falling back to YAML config, then default."""
    env_value = os.getenv(env_key)
    if env_value is not None:
        return env_value

    yaml_value = _get_nested(yaml_config, *yaml_keys)
    if yaml_value is not None:
        return yaml_value

    return default


def _split_list(value, sep: str = ",") -> List[str]:
    """Normalize a list-ish config value (YAML list or separated string)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(sep) if part.strip()]


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


PROJECT_ROOT = _find_project_root()


class TelegramConfig(BaseModel):
    """Telegram bot configuration."""
    bot_token: str = ""
    parse_mode: Optional[str] = "Markdown"
    concurrent_updates: bool = True


class LLMConfig(BaseModel):
    """Completion service configuration."""
    api_key: str = ""
    base_url: str = "https://api.deepseek.com/v1"
    model_name: str = "deepseek-coder"
    max_tokens: int = 2048
    temperature: float = 0.7
    timeout: float = 120.0


class OCRConfig(BaseModel):
    """Tesseract OCR configuration."""
    languages: List[str] = Field(default_factory=lambda: ["eng", "rus"])
    ready_timeout: float = 30.0


class ConversationConfig(BaseModel):
    """Conversation and prompt configuration."""
    sessions_dir: Path = PROJECT_ROOT / "sessions"
    max_prompt_chars: int = 16000
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx", ".json", ".txt"]
    )
    serialize_per_chat: bool = True


class DeliveryConfig(BaseModel):
    """Outbound message pacing."""
    chunk_size: int = 4000
    chunk_delay: float = 0.5


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


class Settings(BaseModel):
    """
    Application settings with layered configuration.

    Configuration is loaded from (in order of precedence):
    1. Environment variables
    2. config.yml
    3. Default values
    """

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def validate_required(self) -> None:
        """Fail fast when a required secret is missing."""
        missing = []
        if not self.telegram.bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.llm.api_key:
            missing.append("DEEPSEEK_API_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Build settings from the current environment and config.yml."""
    env_file = PROJECT_ROOT / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    y = _load_yaml_config(config_path or PROJECT_ROOT / "config.yml")

    parse_mode = _env_or_yaml("TELEGRAM_PARSE_MODE", y, "telegram", "parse_mode", default="Markdown")
    log_file = _env_or_yaml("CODELENS_LOG_FILE", y, "logging", "file", default=None)

    return Settings(
        telegram=TelegramConfig(
            bot_token=_env_or_yaml("TELEGRAM_BOT_TOKEN", y, "telegram", "bot_token", default=""),
            parse_mode=parse_mode or None,
            concurrent_updates=_as_bool(_get_nested(y, "telegram", "concurrent_updates", default=True)),
        ),
        llm=LLMConfig(
            api_key=_env_or_yaml("DEEPSEEK_API_KEY", y, "llm", "api_key", default=""),
            base_url=_env_or_yaml("LLM_BASE_URL", y, "llm", "base_url", default="https://api.deepseek.com/v1"),
            model_name=_env_or_yaml("LLM_MODEL_NAME", y, "llm", "model_name", default="deepseek-coder"),
            max_tokens=int(_env_or_yaml("LLM_MAX_TOKENS", y, "llm", "max_tokens", default=2048)),
            temperature=float(_env_or_yaml("LLM_TEMPERATURE", y, "llm", "temperature", default=0.7)),
            timeout=float(_env_or_yaml("LLM_TIMEOUT", y, "llm", "timeout", default=120.0)),
        ),
        ocr=OCRConfig(
            languages=_split_list(_env_or_yaml("OCR_LANGUAGES", y, "ocr", "languages", default="eng+rus"), sep="+"),
            ready_timeout=float(_get_nested(y, "ocr", "ready_timeout", default=30.0)),
        ),
        conversation=ConversationConfig(
            sessions_dir=Path(_env_or_yaml(
                "CODELENS_SESSIONS_PATH", y, "conversation", "sessions_dir",
                default=str(PROJECT_ROOT / "sessions"),
            )),
            max_prompt_chars=int(_get_nested(y, "conversation", "max_prompt_chars", default=16000)),
            allowed_extensions=_split_list(_get_nested(
                y, "conversation", "allowed_extensions",
                default=".js,.mjs,.cjs,.jsx,.ts,.tsx,.json,.txt",
            )),
            serialize_per_chat=_as_bool(_get_nested(y, "conversation", "serialize_per_chat", default=True)),
        ),
        delivery=DeliveryConfig(
            chunk_size=int(_get_nested(y, "delivery", "chunk_size", default=4000)),
            chunk_delay=float(_get_nested(y, "delivery", "chunk_delay", default=0.5)),
        ),
        logging=LoggingConfig(
            level=_env_or_yaml("CODELENS_LOG_LEVEL", y, "logging", "level", default="INFO"),
            format=_get_nested(
                y, "logging", "format",
                default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
            file=Path(log_file) if log_file else None,
        ),
    )
