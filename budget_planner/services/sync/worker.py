"""
Sync Worker

A long-lived event loop on a daemon thread. Remote writes, remote
loads and remote subscriptions all run here, so:
- A mutation only enqueues its remote write and returns immediately
- Polling subscriptions outlive whichever loop (if any) started the session
- A slow or retrying remote delays replication, never the caller

The loop is started lazily on first use and stopped by `stop()`.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Callable, Coroutine, Optional

import structlog


logger = structlog.get_logger("budget_planner.sync")


class SyncWorker:
    """Runs coroutines on a private event loop thread."""

    def __init__(self, name: str = "budget-planner-sync"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def in_worker_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def start(self) -> asyncio.AbstractEventLoop:
        """Start the loop thread if needed and return its loop."""
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                ready = threading.Event()

                def run() -> None:
                    asyncio.set_event_loop(loop)
                    loop.call_soon(ready.set)
                    loop.run_forever()

                thread = threading.Thread(target=run, name=self._name, daemon=True)
                thread.start()
                ready.wait()
                self._loop = loop
                self._thread = thread
                logger.debug("sync_worker_started", thread=self._name)
            return self._loop

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        """Schedule a coroutine on the worker loop without waiting for it."""
        return asyncio.run_coroutine_threadsafe(coro, self.start())

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a plain callable on the worker loop and wait for its result."""
        if self.in_worker_thread():
            return fn(*args)

        async def invoke() -> Any:
            return fn(*args)

        return self.submit(invoke()).result()

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel outstanding tasks, then stop and close the loop."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return

        async def cancel_tasks() -> None:
            tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        asyncio.run_coroutine_threadsafe(cancel_tasks(), loop).result(timeout)
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not thread.is_alive():
            loop.close()
        logger.debug("sync_worker_stopped", thread=self._name)
