"""
Concurrency utilities for the prompt router.

Blocking SDK clients (the Anthropic enhancer) run in a shared thread pool so
a routing call never stalls the event loop while it waits on upstream I/O.
"""

import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def install_uvloop() -> None:
    """
    Install uvloop as the default asyncio event loop.

    Safe to call multiple times - only installs once.
    """
    try:
        import uvloop
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
        logger.info("uvloop_installed", version=uvloop.__version__)
    except ImportError:
        logger.warning("uvloop_not_available", message="Falling back to standard asyncio")


class ExecutorPool:
    """
    Lazily created thread pool for I/O-bound blocking calls.

    Used for synchronous provider SDKs. HTTP adapters use httpx's async
    client directly and never touch this pool.
    """

    def __init__(self, max_thread_workers: Optional[int] = None):
        """
        Initialize executor pool.

        Args:
            max_thread_workers: Number of threads (default: CPU count * 5)
        """
        cpu_count = os.cpu_count() or 4
        self.max_thread_workers = max_thread_workers or (cpu_count * 5)
        self._thread_pool: Optional[ThreadPoolExecutor] = None

        logger.info("executor_pool_configured", thread_workers=self.max_thread_workers)

    @property
    def thread_pool(self) -> ThreadPoolExecutor:
        """Get or create thread pool."""
        if self._thread_pool is None:
            self._thread_pool = ThreadPoolExecutor(
                max_workers=self.max_thread_workers,
                thread_name_prefix="router-io-",
            )
            logger.debug("thread_pool_created", workers=self.max_thread_workers)
        return self._thread_pool

    async def run_in_thread(
        self,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Execute I/O-bound function in thread pool.

        Args:
            func: Function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Result from function execution
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.thread_pool,
            lambda: func(*args, **kwargs),
        )

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the thread pool."""
        if self._thread_pool:
            self._thread_pool.shutdown(wait=wait)
            self._thread_pool = None
            logger.info("thread_pool_shutdown")


# Global executor pool instance
_global_executor_pool: Optional[ExecutorPool] = None


def get_executor_pool() -> ExecutorPool:
    """Get global executor pool singleton."""
    global _global_executor_pool

    if _global_executor_pool is None:
        from prompt_router.config.settings import get_settings

        _global_executor_pool = ExecutorPool(
            max_thread_workers=get_settings().max_thread_workers,
        )

    return _global_executor_pool


async def run_io_bound(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Convenience function for I/O-bound operations.

    Example:
        message = await run_io_bound(client.messages.create, model=model, ...)
    """
    pool = get_executor_pool()
    return await pool.run_in_thread(func, *args, **kwargs)


async def cleanup_executors() -> None:
    """Cleanup global executor pool."""
    global _global_executor_pool

    if _global_executor_pool:
        _global_executor_pool.shutdown()
        _global_executor_pool = None
