"""
Configuration Management for Workboard

Loads configuration from ~/.workboard/config.json and environment variables.
A .env file in the working directory is honoured.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger("workboard.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".workboard"
CONFIG_PATH = CONFIG_DIR / "config.json"
DEFAULT_DATABASE_URL = f"sqlite:///{CONFIG_DIR / 'signals.db'}"


@dataclass
class LLMConfig:
    """LLM provider configuration for the task classifier"""
    provider: str = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash-exp"
    timeout: float = 20.0

    @property
    def model(self) -> str:
        """Model name for the active provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, "")


@dataclass
class SlackConfig:
    """Slack Web API access"""
    api_base: str = "https://slack.com/api"
    timeout: float = 10.0
    target_user_id: str = ""
    mention_mode: str = "fallback"  # "fallback" or "strict"
    max_conversations: int = 20
    history_limit: int = 120
    max_workers: int = 1  # 1 = serial fetch


@dataclass
class TranslationConfig:
    """Optional machine translation endpoint (LibreTranslate compatible)"""
    api_url: str = ""
    api_key: str = ""
    timeout: float = 3.5


@dataclass
class StoreConfig:
    """Signal store database"""
    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False


@dataclass
class SecurityConfig:
    """Key used to decrypt stored access tokens"""
    encryption_key: str = ""


@dataclass
class SyncConfig:
    """Sync run bounds"""
    default_window_hours: int = 24 * 30
    backfill_placeholders: bool = False
    max_live_signals: int = 80
    max_returned_signals: int = 120


@dataclass
class WorkboardConfig:
    """Main Workboard configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        timeout=float(llm_data.get("timeout", defaults.timeout)),
    )


def _parse_slack_config(data: dict) -> SlackConfig:
    """Parse slack section from config dict"""
    slack_data = data.get("slack", {})
    defaults = SlackConfig()
    return SlackConfig(
        api_base=slack_data.get("api_base", defaults.api_base),
        timeout=float(slack_data.get("timeout", defaults.timeout)),
        target_user_id=slack_data.get("target_user_id", ""),
        mention_mode=slack_data.get("mention_mode", defaults.mention_mode),
        max_conversations=int(slack_data.get("max_conversations", defaults.max_conversations)),
        history_limit=int(slack_data.get("history_limit", defaults.history_limit)),
        max_workers=int(slack_data.get("max_workers", defaults.max_workers)),
    )


def _parse_translation_config(data: dict) -> TranslationConfig:
    """Parse translation section from config dict"""
    translation_data = data.get("translation", {})
    return TranslationConfig(
        api_url=translation_data.get("api_url", ""),
        api_key=translation_data.get("api_key", ""),
        timeout=float(translation_data.get("timeout", 3.5)),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        database_url=store_data.get("database_url", DEFAULT_DATABASE_URL),
        echo=bool(store_data.get("echo", False)),
    )


def _parse_sync_config(data: dict) -> SyncConfig:
    """Parse sync section from config dict"""
    sync_data = data.get("sync", {})
    defaults = SyncConfig()
    return SyncConfig(
        default_window_hours=int(sync_data.get("default_window_hours", defaults.default_window_hours)),
        backfill_placeholders=bool(sync_data.get("backfill_placeholders", False)),
        max_live_signals=int(sync_data.get("max_live_signals", defaults.max_live_signals)),
        max_returned_signals=int(sync_data.get("max_returned_signals", defaults.max_returned_signals)),
    )


def load_config() -> WorkboardConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (including a local .env file)
    2. Config file (~/.workboard/config.json)
    3. Default values
    """
    load_dotenv()
    config = WorkboardConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.slack = _parse_slack_config(data)
            config.translation = _parse_translation_config(data)
            config.store = _parse_store_config(data)
            config.security = SecurityConfig(
                encryption_key=data.get("security", {}).get("encryption_key", ""),
            )
            config.sync = _parse_sync_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("SLACK_TARGET_USER_ID"):
        config.slack.target_user_id = os.getenv("SLACK_TARGET_USER_ID")
    if os.getenv("WORKBOARD_MENTION_MODE"):
        config.slack.mention_mode = os.getenv("WORKBOARD_MENTION_MODE")
    if os.getenv("WORKBOARD_SLACK_WORKERS"):
        config.slack.max_workers = int(os.getenv("WORKBOARD_SLACK_WORKERS"))

    if os.getenv("TRANSLATE_API_URL"):
        config.translation.api_url = os.getenv("TRANSLATE_API_URL")
    if os.getenv("WORKBOARD_DATABASE_URL"):
        config.store.database_url = os.getenv("WORKBOARD_DATABASE_URL")
    if os.getenv("WORKBOARD_BACKFILL_PLACEHOLDERS"):
        config.sync.backfill_placeholders = os.getenv("WORKBOARD_BACKFILL_PLACEHOLDERS").lower() in ("1", "true", "yes")

    # Secret overrides (tracked so save_config never writes them to disk)
    _env_secret_map = {
        "APP_ENCRYPTION_KEY": (config.security, "encryption_key"),
        "TRANSLATE_API_KEY": (config.translation, "api_key"),
    }
    for env_var, (section, attr) in _env_secret_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(section, attr, val)
            config._env_sourced_keys.add(attr)

    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "OPENAI_API_KEY": "openai_api_key",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "WORKBOARD_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    model_override = os.getenv("WORKBOARD_CLASSIFIER_MODEL")
    if model_override:
        setattr(config.llm, f"{config.llm.provider}_model", model_override)

    return config


def save_config(config: WorkboardConfig) -> None:
    """Save configuration to file.

    Secrets that were sourced from environment variables are written as
    empty strings so that they are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    def _secret(attr: str, value: str) -> str:
        return "" if attr in env_sourced else value

    data = {
        "llm": {
            "provider": config.llm.provider,
            "anthropic_api_key": _secret("anthropic_api_key", config.llm.anthropic_api_key),
            "anthropic_model": config.llm.anthropic_model,
            "openai_api_key": _secret("openai_api_key", config.llm.openai_api_key),
            "openai_model": config.llm.openai_model,
            "google_api_key": _secret("google_api_key", config.llm.google_api_key),
            "google_model": config.llm.google_model,
            "timeout": config.llm.timeout,
        },
        "slack": {
            "api_base": config.slack.api_base,
            "timeout": config.slack.timeout,
            "target_user_id": config.slack.target_user_id,
            "mention_mode": config.slack.mention_mode,
            "max_conversations": config.slack.max_conversations,
            "history_limit": config.slack.history_limit,
            "max_workers": config.slack.max_workers,
        },
        "translation": {
            "api_url": config.translation.api_url,
            "api_key": _secret("api_key", config.translation.api_key),
            "timeout": config.translation.timeout,
        },
        "store": {
            "database_url": config.store.database_url,
            "echo": config.store.echo,
        },
        "security": {
            "encryption_key": _secret("encryption_key", config.security.encryption_key),
        },
        "sync": {
            "default_window_hours": config.sync.default_window_hours,
            "backfill_placeholders": config.sync.backfill_placeholders,
            "max_live_signals": config.sync.max_live_signals,
            "max_returned_signals": config.sync.max_returned_signals,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
