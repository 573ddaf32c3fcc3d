"""Full-document viewport reconciliation.

The emulated viewport normally reflects the initial window size, so a "full
page" capture would stop at the fold. Before capturing, measure the whole
document and stretch the emulated viewport over it.

Note: the override is session-wide and is not reverted. Later captures in the
same session see the stretched viewport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import InvalidRegion
from .models import DeviceMetricsOverride, Rect, ScreenOrientation, ViewportMetrics

if TYPE_CHECKING:
    from .session import Session


def measure(content_size: Rect) -> ViewportMetrics:
    """Build viewport metrics from a ``contentSize`` rectangle."""

    return ViewportMetrics(
        x=content_size.x,
        y=content_size.y,
        content_width=content_size.width,
        content_height=content_size.height,
        device_scale_factor=1.0,
    )


def device_metrics_for(metrics: ViewportMetrics) -> DeviceMetricsOverride:
    """Override covering the whole document at scale 1 in portrait orientation."""

    if metrics.width <= 0 or metrics.height <= 0:
        # A zero width or height would clear the override instead of setting it.
        raise InvalidRegion(
            f"Document has no renderable area ({metrics.content_width}x{metrics.content_height})"
        )
    return DeviceMetricsOverride(
        width=metrics.width,
        height=metrics.height,
        device_scale_factor=1.0,
        mobile=False,
        screen_orientation=ScreenOrientation(type="portraitPrimary", angle=0),
    )


def reconcile_viewport(session: "Session") -> ViewportMetrics:
    """Measure the live document and force the emulated viewport to cover it."""

    layout = session.get_layout_metrics()
    metrics = measure(layout.content_size)
    override = device_metrics_for(metrics)
    session.log.debug(
        "Overriding viewport to %dx%d (content %.1fx%.1f)",
        override.width,
        override.height,
        metrics.content_width,
        metrics.content_height,
    )
    session.set_device_metrics_override(override)
    return metrics
