"""In-memory browser backend that serves static page fixtures."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..errors import DriverError
from ..models import (
    DeviceMetricsOverride,
    ImageFormat,
    LayoutMetrics,
    NodeInfo,
    Rect,
    Region,
)
from .base import BrowserBackend, PageDriver

LOGGER = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = b"\x89PNG\r\n\x1a\nscripted"


class NodeFixture(BaseModel):
    """Element of a scripted page. Selectors are matched literally."""

    selector: str
    visible: bool = True
    box: Rect = Field(default_factory=lambda: Rect(width=100, height=20))
    value: Optional[str] = None
    text: Optional[str] = None
    appear_after: float = Field(default=0.0, description="Seconds after load before it exists.")
    visible_after: float = Field(default=0.0, description="Seconds after load before it shows.")
    reveals: list[str] = Field(
        default_factory=list,
        description="Selectors made visible when this node is clicked.",
    )


class PageFixture(BaseModel):
    """Static description of a page served by :class:`ScriptedBackend`."""

    nodes: list[NodeFixture] = Field(default_factory=list)
    content_size: Rect = Field(default_factory=lambda: Rect(width=1280, height=720))
    screenshot: bytes = PLACEHOLDER_IMAGE
    load_delay: float = 0.0


class ScriptedPage(PageDriver):
    """Page driver over a mapping of URL to :class:`PageFixture`."""

    def __init__(self, pages: Mapping[str, PageFixture]) -> None:
        self._pages = dict(pages)
        self._current: Optional[PageFixture] = None
        self._loaded_at = 0.0
        self._revealed: set[str] = set()
        self._scroll_y = 0.0
        self._lock = threading.Lock()
        self.calls: list[tuple[str, object]] = []
        self.overrides: list[DeviceMetricsOverride] = []
        self.clicks: list[tuple[float, float]] = []
        self.closed = False

    def navigate(self, url: str, *, wait_until: str, timeout: Optional[float]) -> None:
        self._record("navigate", url)
        page = self._pages.get(url)
        if page is None:
            raise DriverError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if page.load_delay:
            if timeout is not None and timeout < page.load_delay:
                time.sleep(timeout)
                raise DriverError(f"Timeout {timeout:.3f}s exceeded navigating to {url}")
            time.sleep(page.load_delay)
        self._current = page
        self._loaded_at = time.monotonic()
        self._revealed = set()
        self._scroll_y = 0.0

    def query(self, selector: str) -> list[NodeInfo]:
        self._record("query", selector)
        return [self._describe(node, index) for index, node in enumerate(self._matches(selector))]

    def scroll_into_view(self, selector: str, index: int) -> NodeInfo:
        self._record("scroll_into_view", (selector, index))
        matches = self._matches(selector)
        if index >= len(matches):
            raise DriverError(f"Element {selector!r}[{index}] detached before scrolling")
        self._scroll_y = max(0.0, matches[index].box.y - 100)
        return self._describe(matches[index], index)

    def click(self, x: float, y: float) -> None:
        self._record("click", (x, y))
        self.clicks.append((x, y))
        for node in self._page().nodes:
            if not self._exists(node):
                continue
            box = self._viewport_box(node)
            if box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height:
                self._revealed.update(node.reveals)

    def get_layout_metrics(self) -> LayoutMetrics:
        self._record("get_layout_metrics", None)
        return LayoutMetrics(content_size=self._page().content_size)

    def set_device_metrics_override(self, override: DeviceMetricsOverride) -> None:
        self._record("set_device_metrics_override", override)
        self.overrides.append(override)

    def capture_screenshot(
        self,
        *,
        format: ImageFormat,
        quality: Optional[int],
        clip: Optional[Region],
    ) -> bytes:
        self._record("capture_screenshot", (format, quality, clip))
        return self._page().screenshot

    def close(self) -> None:
        self._record("close", None)
        self.closed = True

    def _page(self) -> PageFixture:
        if self._current is None:
            raise DriverError("No page loaded")
        return self._current

    def _matches(self, selector: str) -> list[NodeFixture]:
        return [
            node
            for node in self._page().nodes
            if node.selector == selector and self._exists(node)
        ]

    def _exists(self, node: NodeFixture) -> bool:
        return time.monotonic() - self._loaded_at >= node.appear_after

    def _visible(self, node: NodeFixture) -> bool:
        if node.selector in self._revealed:
            return True
        elapsed = time.monotonic() - self._loaded_at
        return node.visible and elapsed >= node.visible_after

    def _viewport_box(self, node: NodeFixture) -> Rect:
        return Rect(
            x=node.box.x,
            y=node.box.y - self._scroll_y,
            width=node.box.width,
            height=node.box.height,
        )

    def _describe(self, node: NodeFixture, index: int) -> NodeInfo:
        return NodeInfo(
            index=index,
            visible=self._visible(node),
            box=self._viewport_box(node),
            page_box=node.box,
            value=node.value,
            text=node.text,
        )

    def _record(self, name: str, payload: object) -> None:
        with self._lock:
            self.calls.append((name, payload))


class ScriptedBackend(BrowserBackend):
    """Backend that hands out :class:`ScriptedPage` drivers."""

    def __init__(self, pages: Mapping[str, PageFixture]) -> None:
        self._pages = dict(pages)
        self.started = False
        self.pages: list[ScriptedPage] = []

    def start(self) -> None:
        LOGGER.debug("Starting scripted browser with %d page(s)", len(self._pages))
        self.started = True

    def new_page(self) -> PageDriver:
        if not self.started:
            raise DriverError("Browser is not started")
        page = ScriptedPage(self._pages)
        self.pages.append(page)
        return page

    def stop(self) -> None:
        self.started = False


def load_fixture(path: Path) -> dict[str, PageFixture]:
    """Read a YAML document mapping URLs to page fixtures."""

    import yaml

    raw = yaml.safe_load(path.read_text()) or {}
    return {url: PageFixture.model_validate(page) for url, page in raw.items()}
