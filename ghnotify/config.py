from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any, Mapping

import yaml

from .errors import ConfigError


DEFAULT_DATABASE_URL = "sqlite://./data/notify.db"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_USER_AGENT = "ghnotify/0.1"


@dataclass
class GitHubConfig:
    token: str
    api_url: str


@dataclass
class TelegramConfig:
    bot_token: str
    chat_id: str
    api_url: str


@dataclass
class Settings:
    poll_interval_seconds: int
    http_timeout_seconds: int
    database_url: str
    user_agent: str


@dataclass
class Config:
    github: GitHubConfig
    telegram: TelegramConfig
    settings: Settings


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


def _require_dict(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _read_yaml(path: str | None, explicit: bool) -> dict[str, Any]:
    if not path:
        return {}
    if not os.path.exists(path):
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read config {path}: {exc}") from exc

    data = _expand_env(raw)
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping")
    return data


def load_config(
    path: str | None = None,
    explicit: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load config from an optional YAML file, falling back to environment variables.

    Values in the file win; unexpanded ``${VAR}`` placeholders count as unset.
    """
    env = os.environ if environ is None else environ
    data = _read_yaml(path, explicit)

    github_raw = _require_dict(data.get("github"), "github")
    telegram_raw = _require_dict(data.get("telegram"), "telegram")
    settings_raw = _require_dict(data.get("settings"), "settings")

    github = GitHubConfig(
        token=_required(github_raw.get("token"), env, "GITHUB_TOKEN", "github.token"),
        api_url=_url(
            _optional(github_raw.get("api_url"), env, "GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
            "github.api_url",
        ),
    )
    telegram = TelegramConfig(
        bot_token=_required(telegram_raw.get("bot_token"), env, "TELEGRAM_BOT_TOKEN", "telegram.bot_token"),
        chat_id=_required(telegram_raw.get("chat_id"), env, "TELEGRAM_CHAT_ID", "telegram.chat_id"),
        api_url=_url(
            _optional(telegram_raw.get("api_url"), env, "TELEGRAM_API_URL", DEFAULT_TELEGRAM_API_URL),
            "telegram.api_url",
        ),
    )
    settings = Settings(
        poll_interval_seconds=_positive_int(
            _optional(settings_raw.get("poll_interval_seconds"), env, "POLL_INTERVAL_SECONDS", "60"),
            "settings.poll_interval_seconds",
        ),
        http_timeout_seconds=_positive_int(
            _optional(settings_raw.get("http_timeout_seconds"), env, "HTTP_TIMEOUT_SECONDS", "15"),
            "settings.http_timeout_seconds",
        ),
        database_url=_optional(settings_raw.get("database_url"), env, "DATABASE_URL", DEFAULT_DATABASE_URL),
        user_agent=_clean(settings_raw.get("user_agent")) or DEFAULT_USER_AGENT,
    )

    return Config(github=github, telegram=telegram, settings=settings)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or "${" in text:
        return None
    return text


def _optional(value: Any, env: Mapping[str, str], env_name: str, default: str) -> str:
    cleaned = _clean(value)
    if cleaned is not None:
        return cleaned
    from_env = _clean(env.get(env_name))
    if from_env is not None:
        return from_env
    return default


def _required(value: Any, env: Mapping[str, str], env_name: str, name: str) -> str:
    cleaned = _clean(value)
    if cleaned is not None:
        return cleaned
    from_env = _clean(env.get(env_name))
    if from_env is None:
        raise ConfigError(f"missing {name} (or {env_name})")
    return from_env


def _positive_int(value: str, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid {name}: {value}") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be > 0")
    return parsed


def _url(value: str, name: str) -> str:
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ConfigError(f"{name} must be an http(s) URL")
    return value
