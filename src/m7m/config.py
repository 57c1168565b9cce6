"""Process settings for the flow runner.

Configuration is loaded from:
- environment variables (prefix ``M7M_``)
- and a local `.env` file (if present)

Flow documents carry their own credentials; the Telegram settings here are
only used by notifiers that leave ``token`` or ``chat_id`` out.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunnerSettings(BaseSettings):
    """Settings for the flow runner.

    Environment variables:
    - M7M_LOG_LEVEL          (optional)
    - M7M_LOG_FORMAT         (optional, ``json`` or ``text``)
    - M7M_HTTP_TIMEOUT_SECONDS
    - M7M_TELEGRAM_TOKEN     (optional)
    - M7M_TELEGRAM_CHAT_ID   (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `RunnerSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="WARNING",
        description="Root logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log line format on stdout",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to every single HTTP request",
    )
    user_agent: str = Field(
        default="m7m",
        description="User-Agent header sent with flow HTTP requests",
    )

    telegram_token: str = Field(
        default="",
        description="Bot token used by telegram notifiers that do not declare one",
    )
    telegram_chat_id: str = Field(
        default="",
        description="Chat id used by telegram notifiers that do not declare one",
    )
    telegram_base_url: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )

    model_config = SettingsConfigDict(
        env_prefix="M7M_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level
