"""
Configuration management for the messaging core.

Settings cover the remote store, fallback behaviour, typing presence timing,
uploads and display locale.
"""

import os
from typing import List

from pydantic import BaseModel, Field, field_validator

SUPPORTED_LOCALES = ("pt-BR", "en")


class ChatConfig(BaseModel):
    """Configuration model for the chat client."""

    # Remote store
    api_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the remote admin API"
    )

    remote_enabled: bool = Field(
        default=True,
        description="Try the remote store first; when False every call goes to the mirror"
    )

    request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for remote calls; expiry is handled like an unreachable store"
    )

    # Typing presence
    typing_timeout_seconds: float = Field(
        default=2.0,
        description="Inactivity window after which a typing entry expires"
    )

    typing_poll_interval_seconds: float = Field(
        default=1.0,
        description="Interval between typing indicator refreshes"
    )

    # Uploads
    upload_delay_seconds: float = Field(
        default=0.5,
        description="Simulated transfer latency for attachments"
    )

    upload_base_path: str = Field(
        default="/uploads",
        description="URL prefix under which uploaded files are served"
    )

    max_upload_bytes: int = Field(
        default=25 * 1024 * 1024,
        description="Largest accepted attachment in bytes"
    )

    # Display
    locale: str = Field(
        default="pt-BR",
        description="Locale for relative times, day dividers and labels"
    )

    hidden_roles: List[str] = Field(
        default_factory=lambda: ["admin"],
        description="Roles never offered as chat partners"
    )

    seed_mirror: bool = Field(
        default=False,
        description="Start the mirror store with sample users and conversations"
    )

    # Logging settings
    log_message_content: bool = Field(
        default=False,
        description="Whether to log message bodies (privacy consideration)"
    )

    @field_validator('request_timeout_seconds', 'typing_timeout_seconds', 'typing_poll_interval_seconds')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("timeouts and intervals must be positive")
        return v

    @field_validator('upload_delay_seconds')
    @classmethod
    def validate_upload_delay(cls, v):
        if v < 0:
            raise ValueError("upload_delay_seconds must be non-negative")
        return v

    @field_validator('max_upload_bytes')
    @classmethod
    def validate_max_upload_bytes(cls, v):
        if v <= 0:
            raise ValueError("max_upload_bytes must be positive")
        return v

    @field_validator('locale')
    @classmethod
    def validate_locale(cls, v):
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"locale must be one of {', '.join(SUPPORTED_LOCALES)}")
        return v

    @field_validator('api_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


def _as_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


def load_config() -> ChatConfig:
    """
    Load configuration from environment variables or defaults.

    Environment variables supported:
    - CHAT_API_URL: Remote admin API base URL
    - CHAT_REMOTE_ENABLED: Use the remote store (true/false)
    - CHAT_REQUEST_TIMEOUT: Remote call timeout in seconds
    - CHAT_TYPING_TIMEOUT: Typing inactivity window in seconds
    - CHAT_TYPING_POLL_INTERVAL: Typing poll interval in seconds
    - CHAT_UPLOAD_DELAY: Simulated upload latency in seconds
    - CHAT_UPLOAD_BASE_PATH: URL prefix for uploaded files
    - CHAT_MAX_UPLOAD_BYTES: Maximum attachment size
    - CHAT_LOCALE: pt-BR or en
    - CHAT_HIDDEN_ROLES: Comma-separated roles hidden from the user picker
    - CHAT_SEED_MIRROR: Seed the mirror with sample data (true/false)
    - CHAT_LOG_CONTENT: Log message content (true/false)

    Returns:
        ChatConfig: Configured settings instance
    """
    config_data = {}

    if api_url := os.getenv('CHAT_API_URL'):
        config_data['api_url'] = api_url

    if remote_enabled := os.getenv('CHAT_REMOTE_ENABLED'):
        config_data['remote_enabled'] = _as_bool(remote_enabled)

    if timeout := os.getenv('CHAT_REQUEST_TIMEOUT'):
        config_data['request_timeout_seconds'] = float(timeout)

    if typing_timeout := os.getenv('CHAT_TYPING_TIMEOUT'):
        config_data['typing_timeout_seconds'] = float(typing_timeout)

    if poll_interval := os.getenv('CHAT_TYPING_POLL_INTERVAL'):
        config_data['typing_poll_interval_seconds'] = float(poll_interval)

    if upload_delay := os.getenv('CHAT_UPLOAD_DELAY'):
        config_data['upload_delay_seconds'] = float(upload_delay)

    if upload_base := os.getenv('CHAT_UPLOAD_BASE_PATH'):
        config_data['upload_base_path'] = upload_base

    if max_upload := os.getenv('CHAT_MAX_UPLOAD_BYTES'):
        config_data['max_upload_bytes'] = int(max_upload)

    if locale := os.getenv('CHAT_LOCALE'):
        config_data['locale'] = locale

    if hidden_roles := os.getenv('CHAT_HIDDEN_ROLES'):
        config_data['hidden_roles'] = [r.strip() for r in hidden_roles.split(',') if r.strip()]

    if seed_mirror := os.getenv('CHAT_SEED_MIRROR'):
        config_data['seed_mirror'] = _as_bool(seed_mirror)

    if log_content := os.getenv('CHAT_LOG_CONTENT'):
        config_data['log_message_content'] = _as_bool(log_content)

    return ChatConfig(**config_data)
