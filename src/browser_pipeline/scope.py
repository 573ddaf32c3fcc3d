"""Cancellable, deadline-bearing execution scopes.

A :class:`Scope` is the cancellation token shared by everything that runs
under it. Scopes nest: cancelling a parent cancels every descendant, and a
child's deadline is clamped so it never outlives its parent's.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Callable, Optional, TypeVar

from .errors import CancellationError, DeadlineExceeded

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Scope:
    """Cancellation scope with an optional deadline."""

    def __init__(
        self,
        parent: Optional["Scope"] = None,
        timeout: Optional[float] = None,
        *,
        name: str = "scope",
    ) -> None:
        self.name = name
        self._parent = parent
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: Optional[CancellationError] = None
        self._callbacks: list[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
        self._deadline = deadline

        self._detach_parent: Optional[Callable[[], None]] = None
        if parent is not None:
            self._detach_parent = parent.on_cancel(self._cancel_from_parent)
        if self._deadline is not None and not self._event.is_set():
            delay = max(0.0, self._deadline - time.monotonic())
            self._timer = threading.Timer(delay, self._expire)
            self._timer.daemon = True
            self._timer.start()

    # Public API --------------------------------------------------------------

    @property
    def parent(self) -> Optional["Scope"]:
        return self._parent

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic timestamp at which the scope expires, if any."""

        return self._deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._expire()
            return True
        return False

    @property
    def error(self) -> Optional[CancellationError]:
        """The error describing why the scope ended, or ``None`` while live."""

        if self.cancelled:
            return self._error
        return None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline; ``None`` for unbounded scopes."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def child(self, timeout: Optional[float] = None, *, name: str = "scope") -> "Scope":
        return Scope(self, timeout, name=name)

    def cancel(self, error: Optional[CancellationError] = None) -> None:
        """Cancel the scope and all of its descendants. Safe to call repeatedly."""

        with self._lock:
            if self._event.is_set():
                return
            self._error = error or CancellationError(f"{self.name} cancelled")
            self._event.set()
            callbacks = list(reversed(self._callbacks))
            self._callbacks.clear()
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        if self._detach_parent is not None:
            self._detach_parent()
        LOGGER.debug("%s cancelled: %s", self.name, self._error)
        for callback in callbacks:
            try:
                callback()
            except Exception:  # pragma: no cover - a failing hook must not block the rest
                LOGGER.exception("Cancellation callback failed in %s", self.name)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` to run on cancellation.

        Runs immediately when the scope is already cancelled. Returns a function
        that unregisters the callback.
        """

        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def _remove() -> None:
                    with self._lock:
                        try:
                            self._callbacks.remove(callback)
                        except ValueError:
                            pass

                return _remove
        callback()
        return lambda: None

    def raise_if_cancelled(self) -> None:
        """Raise a fresh copy of :attr:`error`, chained to it, once the scope ended."""

        if self.cancelled:
            error = self._error
            assert error is not None
            # The stored error is shared with every descendant and thread.
            raise type(error)(str(error)) from error

    def wait(self, seconds: Optional[float] = None) -> bool:
        """Block for up to ``seconds``; return ``True`` if the scope ended."""

        if seconds is not None:
            remaining = self.remaining()
            if remaining is not None:
                seconds = min(seconds, remaining)
        self._event.wait(seconds)
        return self.cancelled

    def wait_for(self, future: "Future[T]") -> T:
        """Return the future's result, or raise as soon as the scope ends."""

        waiter = threading.Event()
        future.add_done_callback(lambda _: waiter.set())
        remove = self.on_cancel(waiter.set)
        try:
            while not future.done():
                if self.cancelled:
                    future.cancel()
                    self.raise_if_cancelled()
                waiter.wait(self.remaining())
        finally:
            remove()
        return future.result()

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._event.is_set() else "live"
        return f"<Scope {self.name} {state} remaining={self.remaining()}>"

    # Internal helpers --------------------------------------------------------

    def _expire(self) -> None:
        self.cancel(DeadlineExceeded(f"{self.name} deadline exceeded"))

    def _cancel_from_parent(self) -> None:
        assert self._parent is not None
        self.cancel(self._parent._error)
