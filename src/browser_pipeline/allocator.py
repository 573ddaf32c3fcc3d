"""Browser process lifecycle and command dispatch."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any, Callable, Optional, TypeVar

from .browser.base import BrowserBackend
from .config import ClientConfig
from .errors import CancellationError
from .scope import Scope

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

STOP_TIMEOUT = 10.0


class Allocator:
    """Own one browser process and the thread that talks to it.

    Every backend call is funnelled through a single dispatch thread, which
    keeps thread-affine drivers such as Playwright's sync API on the thread
    that created them. Callers receive a :class:`~concurrent.futures.Future`
    per command and wait on it through their own scope.
    """

    def __init__(
        self,
        scope: Scope,
        backend: BrowserBackend,
        config: Optional[ClientConfig] = None,
    ) -> None:
        self.scope = scope
        self.config = config or ClientConfig()
        self._backend = backend
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="browser-dispatch")
        self._lock = threading.Lock()
        self._stop_future: Optional[Future[None]] = None
        self._started = False

    @property
    def backend(self) -> BrowserBackend:
        return self._backend

    def start(self) -> None:
        if self._started:
            return
        self.scope.on_cancel(self._shutdown)
        self.scope.wait_for(self.submit(self._backend.start))
        self._started = True
        LOGGER.debug("Allocator started with %s", type(self._backend).__name__)

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Queue ``fn`` on the dispatch thread."""

        with self._lock:
            if self._stop_future is not None:
                self.scope.raise_if_cancelled()
                raise CancellationError("allocator closed")
            return self._executor.submit(fn, *args, **kwargs)

    def close(self, wait: bool = True) -> None:
        """Cancel the allocator scope and stop the browser. Idempotent."""

        self.scope.cancel()
        stop_future = self._stop_future
        if wait and stop_future is not None:
            wait_futures([stop_future], timeout=STOP_TIMEOUT)

    def __enter__(self) -> "Allocator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _shutdown(self) -> None:
        with self._lock:
            if self._stop_future is not None:
                return
            self._stop_future = self._executor.submit(self._stop_backend)
        self._executor.shutdown(wait=False)

    def _stop_backend(self) -> None:
        LOGGER.debug("Stopping browser backend")
        try:
            self._backend.stop()
        except Exception:
            LOGGER.warning("Browser backend did not stop cleanly", exc_info=True)


def new_allocator(
    scope: Scope,
    config: Optional[ClientConfig] = None,
    *,
    backend: Optional[BrowserBackend] = None,
) -> tuple[Allocator, Callable[[], None]]:
    """Start a browser under a child of ``scope``.

    Returns the allocator and an idempotent cancel function that stops it.
    """

    from .factory import build_backend

    config = config or ClientConfig()
    allocator = Allocator(
        scope.child(name="allocator"),
        backend or build_backend(config.browser),
        config,
    )
    try:
        allocator.start()
    except BaseException:
        allocator.close()
        raise
    return allocator, allocator.close
