"""Configuration management using Pydantic Settings.

This module provides type-safe configuration management with automatic
environment variable loading and validation using Pydantic Settings.

The configuration is organized into logical groups:
- APIConfig: Talenta API location, timeouts and retry tuning
- CredentialsConfig: Bearer token sources
- RecorderConfig: Capture device, chunk interval and MIME preferences
- LoggingConfig: Logging levels, files, and debugging options
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseModel):
    """Talenta API configuration."""

    base_url: str = "http://localhost:5000"
    request_timeout: float = 30.0  # Seconds before a remote call counts as failed

    # Retries apply to idempotent fetches only
    retry_count: int = 3
    retry_base_delay: float = 0.5
    retry_max_delay: float = 10.0


class CredentialsConfig(BaseModel):
    """API credentials and authentication settings."""

    api_token: str = ""
    token_file: Path = Path("data/.talenta_token")


class RecorderConfig(BaseModel):
    """Audio capture configuration."""

    chunk_interval_seconds: float = 1.0
    mime_candidates: list[str] = [
        "audio/webm;codecs=opus",
        "audio/webm",
        "audio/mp4",
    ]
    ffmpeg_binary: str = "ffmpeg"
    input_format: str = "pulse"
    input_device: str = "default"
    sample_rate: int = 44100


class LoggingConfig(BaseModel):
    """Logging configuration for console and file output."""

    console_level: str = "INFO"
    file_level: str = "DEBUG"
    log_file: Path = Path("talenta.log")
    real_time_debug: bool = True


class Settings(BaseSettings):
    """Main application settings with environment variable support.

    Environment variables can be set using flat naming or nested naming:
    - Flat: TALENTA_API_URL, TALENTA_TOKEN, CONSOLE_LOG_LEVEL
    - Nested: API__BASE_URL, CREDENTIALS__API_TOKEN, LOGGING__CONSOLE_LEVEL

    The .env file is automatically loaded for development convenience.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Nested configuration groups
    api: APIConfig = APIConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    recorder: RecorderConfig = RecorderConfig()
    logging: LoggingConfig = LoggingConfig()

    # Top-level settings
    data_dir: Path = Path("data")

    @model_validator(mode="before")
    @classmethod
    def transform_flat_env_vars(cls, data: Any) -> Any:
        """Map flat environment variables onto the nested structure.

        Handles flat env vars (TALENTA_API_URL) and maps them to the
        nested structure expected by the models (api.base_url).
        """
        if not isinstance(data, dict):
            return data

        mappings = {
            "api": {
                "talenta_api_url": "base_url",
                "talenta_api_timeout": "request_timeout",
                "talenta_api_retry_count": "retry_count",
            },
            "credentials": {
                "talenta_token": "api_token",
                "talenta_token_file": "token_file",
            },
            "recorder": {
                "ffmpeg_binary": "ffmpeg_binary",
                "audio_input_format": "input_format",
                "audio_input_device": "input_device",
            },
            "logging": {
                "console_log_level": "console_level",
                "file_log_level": "file_level",
                "log_file": "log_file",
                "log_real_time_debug": "real_time_debug",
            },
        }

        transformed: dict[str, dict[str, Any]] = {}
        for section, mapping in mappings.items():
            for env_key, field_key in mapping.items():
                if env_key in data:
                    transformed.setdefault(section, {})[field_key] = data.pop(env_key)

        for section, values in transformed.items():
            existing = data.get(section)
            if isinstance(existing, dict):
                data[section] = {**existing, **values}
            else:
                data[section] = values

        return data


# Singleton instance for application use
settings = Settings()
