"""Async helpers for CLI commands to eliminate duplication."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, cast

from rich.console import Console

from talenta.application.use_cases import ReconciliationController
from talenta.domain.repositories import AudioStoreProtocol
from talenta.infrastructure.cli.ui import command_error_handler
from talenta.infrastructure.connectors import TalentaApiConnector
from talenta.infrastructure.media import TempFileObjectUrls

console = Console()


def create_audio_store() -> AudioStoreProtocol:
    """Remote store used by CLI commands."""
    return TalentaApiConnector()


@asynccontextmanager
async def audio_session(audio_id: str) -> AsyncIterator[ReconciliationController]:
    """Load an audio entity into a controller and clean up afterwards."""
    store = create_audio_store()
    object_urls = TempFileObjectUrls()
    try:
        yield await ReconciliationController.load(audio_id, store, object_urls)
    finally:
        object_urls.close()
        aclose = getattr(store, "aclose", None)
        if aclose is not None:
            await aclose()


def async_operation(
    progress_text: str = "Processing...",
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., None]]:
    """Decorator for async operations shown behind a spinner.

    Args:
        progress_text: Text to show during operation
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., None]:
        @command_error_handler
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> None:
            with console.status(f"[bold blue]{progress_text}"):
                coro = func(*args, **kwargs)
                asyncio.run(cast("Coroutine[Any, Any, Any]", coro))

        return wrapper

    return decorator


def interactive_async_operation() -> Callable[
    [Callable[..., Awaitable[Any]]], Callable[..., None]
]:
    """Decorator for interactive async operations with custom progress handling.

    For operations that manage their own display (like recording).
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., None]:
        @command_error_handler
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> None:
            coro = func(*args, **kwargs)
            asyncio.run(cast("Coroutine[Any, Any, Any]", coro))

        return wrapper

    return decorator
