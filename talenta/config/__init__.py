"""Configuration module for Talenta.

This module provides a type-safe configuration system using Pydantic Settings
and the Loguru-based logging helpers used across the package.

Public API:
----------
settings: Settings instance
    Pydantic settings object with nested configuration

get_logger(name: str) -> Logger
    Get a context-aware logger for your module

setup_loguru_logger(verbose: bool = False) -> None
    Configure Loguru logger for the application

resilient_operation(operation_name: str)
    Decorator for handling errors in remote API calls

configure_httpx_logging() -> None
    Route httpx logging through Loguru

Usage:
------
```python
from talenta.config import settings, get_logger

timeout = settings.api.request_timeout
logger = get_logger(__name__)
logger.info("Starting upload")
```
"""

from .logging import (
    configure_httpx_logging,
    get_logger,
    resilient_operation,
    setup_loguru_logger,
)
from .settings import Settings, settings

__all__ = [
    "Settings",
    "configure_httpx_logging",
    "get_logger",
    "resilient_operation",
    "settings",
    "setup_loguru_logger",
]
