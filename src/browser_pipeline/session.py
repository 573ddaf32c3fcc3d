"""Live browser sessions bound to a cancellation scope."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, MutableMapping, Optional, TypeVar

from .allocator import Allocator
from .browser.base import PageDriver
from .config import ClientConfig
from .errors import CancellationError
from .models import DeviceMetricsOverride, ImageFormat, LayoutMetrics, NodeInfo, Region
from .scope import Scope

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class SessionLogAdapter(logging.LoggerAdapter):
    """Prefix every record with the session id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['session']}] {msg}", kwargs


class Session:
    """One live connection to a browser page.

    Every command waits on the session's scope, so cancelling the scope (or
    letting its deadline pass) unblocks the caller right away even while the
    browser is still busy.
    """

    def __init__(
        self,
        allocator: Allocator,
        driver: PageDriver,
        scope: Scope,
        *,
        session_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.scope = scope
        self.allocator = allocator
        self._driver = driver
        self.log = SessionLogAdapter(logger or LOGGER, {"session": self.id[:8]})

    @property
    def config(self) -> ClientConfig:
        return self.allocator.config

    # Page commands -----------------------------------------------------------

    def navigate(self, url: str) -> None:
        self._call(
            self._driver.navigate,
            url,
            wait_until=self.config.pipeline.navigation_wait_until,
            timeout=self.scope.remaining(),
        )

    def query(self, selector: str) -> list[NodeInfo]:
        return self._call(self._driver.query, selector)

    def scroll_into_view(self, selector: str, index: int) -> NodeInfo:
        return self._call(self._driver.scroll_into_view, selector, index)

    def click(self, x: float, y: float) -> None:
        self._call(self._driver.click, x, y)

    def get_layout_metrics(self) -> LayoutMetrics:
        return self._call(self._driver.get_layout_metrics)

    def set_device_metrics_override(self, override: DeviceMetricsOverride) -> None:
        self._call(self._driver.set_device_metrics_override, override)

    def capture_screenshot(
        self,
        *,
        format: ImageFormat = ImageFormat.PNG,
        quality: Optional[int] = None,
        clip: Optional[Region] = None,
    ) -> bytes:
        return self._call(self._driver.capture_screenshot, format=format, quality=quality, clip=clip)

    # Scope handling ----------------------------------------------------------

    def with_deadline(self, seconds: float) -> tuple["Session", Callable[[], None]]:
        """Derive a session sharing this page under a shorter deadline."""

        scope = self.scope.child(seconds, name=f"deadline {seconds}s")
        derived = Session(
            self.allocator,
            self._driver,
            scope,
            session_id=self.id,
            logger=self.log.logger,
        )
        return derived, scope.cancel

    def close(self) -> None:
        self.scope.cancel()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self.scope.raise_if_cancelled()
        return self.scope.wait_for(self.allocator.submit(fn, *args, **kwargs))


def new_session(
    allocator: Allocator,
    *,
    logger: Optional[logging.Logger] = None,
) -> tuple[Session, Callable[[], None]]:
    """Open a new page under a child of the allocator's scope."""

    scope = allocator.scope.child(name="session")
    try:
        driver = scope.wait_for(allocator.submit(allocator.backend.new_page))
    except BaseException:
        scope.cancel()
        raise
    session = Session(allocator, driver, scope, logger=logger)

    def _release() -> None:
        try:
            allocator.submit(driver.close)
        except CancellationError:
            LOGGER.debug("Allocator already closed; page released with the browser")

    scope.on_cancel(_release)
    session.log.debug("Session opened")
    return session, session.close


def with_deadline(session: Session, seconds: float) -> tuple[Session, Callable[[], None]]:
    """Module-level spelling of :meth:`Session.with_deadline`."""

    return session.with_deadline(seconds)
