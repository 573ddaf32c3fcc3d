"""Browser backend abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..models import (
    DeviceMetricsOverride,
    ImageFormat,
    LayoutMetrics,
    NodeInfo,
    Region,
)


class PageDriver(ABC):
    """Primitive commands against one browser page.

    Implementations are only ever called from their allocator's dispatch
    thread and report failures as :class:`~browser_pipeline.errors.DriverError`.
    """

    @abstractmethod
    def navigate(self, url: str, *, wait_until: str, timeout: Optional[float]) -> None:
        """Load ``url`` and return once the ``wait_until`` signal fires."""

    @abstractmethod
    def query(self, selector: str) -> list[NodeInfo]:
        """Describe every element matching ``selector`` in document order."""

    @abstractmethod
    def scroll_into_view(self, selector: str, index: int) -> NodeInfo:
        """Scroll the ``index``-th match into view and measure it again."""

    @abstractmethod
    def click(self, x: float, y: float) -> None:
        """Dispatch a left click at viewport coordinates."""

    @abstractmethod
    def get_layout_metrics(self) -> LayoutMetrics:
        """Return the live layout metrics of the page."""

    @abstractmethod
    def set_device_metrics_override(self, override: DeviceMetricsOverride) -> None:
        """Override the emulated device metrics."""

    @abstractmethod
    def capture_screenshot(
        self,
        *,
        format: ImageFormat,
        quality: Optional[int],
        clip: Optional[Region],
    ) -> bytes:
        """Return encoded image bytes for ``clip`` (or the viewport)."""

    @abstractmethod
    def close(self) -> None:
        """Release the page."""


class BrowserBackend(ABC):
    """Lifecycle of one browser process."""

    @abstractmethod
    def start(self) -> None:
        """Launch or attach to the browser."""

    @abstractmethod
    def new_page(self) -> PageDriver:
        """Open a fresh page in its own browsing context."""

    @abstractmethod
    def stop(self) -> None:
        """Close the browser and release the process."""
