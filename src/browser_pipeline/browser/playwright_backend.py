"""Playwright-powered browser backend."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from playwright.sync_api import Error, sync_playwright

from ..config import BrowserConfig
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

_DESCRIBE_JS = """
(el, index) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    const visible = rect.width > 0 && rect.height > 0
        && style.display !== "none" && style.visibility !== "hidden";
    return {
        index: index,
        visible: visible,
        box: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
        page_box: {
            x: rect.x + window.scrollX,
            y: rect.y + window.scrollY,
            width: rect.width,
            height: rect.height,
        },
        value: "value" in el && el.value !== undefined && el.value !== null ? String(el.value) : null,
        text: el.textContent,
    };
}
"""

_QUERY_JS = f"""
(selector) => {{
    const describe = {_DESCRIBE_JS};
    return Array.from(document.querySelectorAll(selector)).map((el, i) => describe(el, i));
}}
"""

_SCROLL_JS = f"""
([selector, index]) => {{
    const describe = {_DESCRIBE_JS};
    const el = document.querySelectorAll(selector)[index];
    if (!el) {{
        return null;
    }}
    el.scrollIntoView({{block: "center", inline: "center"}});
    return describe(el, index);
}}
"""


class PlaywrightPage(PageDriver):
    """Page driver backed by a Playwright page and its raw CDP session."""

    def __init__(self, context: Any, page: Any, cdp: Any) -> None:
        self._context = context
        self._page = page
        self._cdp = cdp

    def navigate(self, url: str, *, wait_until: str, timeout: Optional[float]) -> None:
        LOGGER.debug("Navigating to %s (wait_until=%s)", url, wait_until)
        try:
            self._page.goto(url, wait_until=wait_until, timeout=_to_timeout(timeout))
        except Error as exc:
            raise DriverError(str(exc)) from exc

    def query(self, selector: str) -> list[NodeInfo]:
        try:
            nodes = self._page.evaluate(_QUERY_JS, selector)
        except Error as exc:
            raise DriverError(str(exc)) from exc
        return [NodeInfo.model_validate(node) for node in nodes]

    def scroll_into_view(self, selector: str, index: int) -> NodeInfo:
        try:
            node = self._page.evaluate(_SCROLL_JS, [selector, index])
        except Error as exc:
            raise DriverError(str(exc)) from exc
        if node is None:
            raise DriverError(f"Element {selector!r}[{index}] detached before scrolling")
        return NodeInfo.model_validate(node)

    def click(self, x: float, y: float) -> None:
        try:
            self._page.mouse.click(x, y)
        except Error as exc:
            raise DriverError(str(exc)) from exc

    def get_layout_metrics(self) -> LayoutMetrics:
        result = self._send("Page.getLayoutMetrics")
        # Newer Chromium reports device pixels in contentSize and CSS pixels
        # in cssContentSize.
        content = result.get("cssContentSize") or result["contentSize"]
        return LayoutMetrics(
            layout_viewport=result.get("cssLayoutViewport") or result.get("layoutViewport", {}),
            visual_viewport=result.get("cssVisualViewport") or result.get("visualViewport", {}),
            content_size=Rect(
                x=content.get("x", 0),
                y=content.get("y", 0),
                width=content["width"],
                height=content["height"],
            ),
        )

    def set_device_metrics_override(self, override: DeviceMetricsOverride) -> None:
        self._send(
            "Emulation.setDeviceMetricsOverride",
            {
                "width": override.width,
                "height": override.height,
                "deviceScaleFactor": override.device_scale_factor,
                "mobile": override.mobile,
                "screenOrientation": {
                    "type": override.screen_orientation.type,
                    "angle": override.screen_orientation.angle,
                },
            },
        )

    def capture_screenshot(
        self,
        *,
        format: ImageFormat,
        quality: Optional[int],
        clip: Optional[Region],
    ) -> bytes:
        params: dict[str, Any] = {"format": format.value}
        if quality is not None and format.lossy:
            params["quality"] = quality
        if clip is not None:
            params["clip"] = {
                "x": clip.x,
                "y": clip.y,
                "width": clip.width,
                "height": clip.height,
                "scale": clip.scale,
            }
        result = self._send("Page.captureScreenshot", params)
        return base64.b64decode(result.get("data", ""))

    def close(self) -> None:
        LOGGER.debug("Closing Playwright page")
        try:
            self._cdp.detach()
        except Error:
            LOGGER.debug("CDP session already detached")
        try:
            self._context.close()
        except Error as exc:
            raise DriverError(str(exc)) from exc

    def _send(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            return self._cdp.send(method, params or {})
        except Error as exc:
            raise DriverError(f"{method} failed: {exc}") from exc


class PlaywrightBackend(BrowserBackend):
    """Browser backend that launches Chromium through Playwright."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None

    def start(self) -> None:
        LOGGER.debug("Starting Playwright browser")
        self._playwright = sync_playwright().start()
        try:
            if self._config.remote_url:
                LOGGER.info("Attaching to browser at %s", self._config.remote_url)
                self._browser = self._playwright.chromium.connect_over_cdp(
                    self._config.remote_url
                )
            else:
                launch_kwargs: dict[str, Any] = {
                    "headless": self._config.headless,
                    "args": list(self._config.args),
                }
                if self._config.executable_path:
                    launch_kwargs["executable_path"] = str(self._config.executable_path)
                self._browser = self._playwright.chromium.launch(**launch_kwargs)
        except Error as exc:
            self.stop()
            raise DriverError(f"Failed to start browser: {exc}") from exc

    def new_page(self) -> PageDriver:
        if not self._browser:
            raise DriverError("Browser is not started")
        viewport = {"width": self._config.viewport_width, "height": self._config.viewport_height}
        try:
            context = self._browser.new_context(viewport=viewport)
            page = context.new_page()
            cdp = context.new_cdp_session(page)
        except Error as exc:
            raise DriverError(str(exc)) from exc
        return PlaywrightPage(context, page, cdp)

    def stop(self) -> None:
        LOGGER.debug("Stopping Playwright browser")
        try:
            if self._browser:
                self._browser.close()
        finally:
            if self._playwright:
                self._playwright.stop()
        self._browser = None
        self._playwright = None


def _to_timeout(timeout: Optional[float]) -> int:
    # Playwright treats 0 as "no timeout"; an exhausted budget must still time out.
    if timeout is None:
        return 0
    return max(1, int(timeout * 1000))
