"""Shared models used across the browser pipeline."""

from __future__ import annotations

import enum
import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Visibility(str, enum.Enum):
    """Constraint applied when resolving a selector to an element."""

    READY = "ready"
    VISIBLE = "visible"


class ImageFormat(str, enum.Enum):
    """Encodings supported by the capture encoder."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def lossy(self) -> bool:
        return self is not ImageFormat.PNG


class Rect(BaseModel):
    """Axis-aligned rectangle in CSS pixels."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


class Region(Rect):
    """Area of the page to capture, with the scale to render it at."""

    scale: float = 1.0


class NodeInfo(BaseModel):
    """Snapshot of one element matched by a selector."""

    model_config = ConfigDict(frozen=True)

    index: int
    visible: bool
    box: Rect = Field(description="Bounding box relative to the viewport.")
    page_box: Rect = Field(description="Bounding box relative to the document.")
    value: Optional[str] = None
    text: Optional[str] = None


class ScreenOrientation(BaseModel):
    """Emulated screen orientation."""

    model_config = ConfigDict(frozen=True)

    type: str = "portraitPrimary"
    angle: int = 0


class DeviceMetricsOverride(BaseModel):
    """Parameters of an ``Emulation.setDeviceMetricsOverride`` call."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    device_scale_factor: float = 1.0
    mobile: bool = False
    screen_orientation: ScreenOrientation = Field(default_factory=ScreenOrientation)


class LayoutMetrics(BaseModel):
    """Result of a ``Page.getLayoutMetrics`` query."""

    model_config = ConfigDict(frozen=True)

    layout_viewport: dict[str, Any] = Field(default_factory=dict)
    visual_viewport: dict[str, Any] = Field(default_factory=dict)
    content_size: Rect


class ViewportMetrics(BaseModel):
    """Full-document geometry measured right before a full-page capture."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    content_width: float
    content_height: float
    device_scale_factor: float = 1.0

    @property
    def width(self) -> int:
        """Content width rounded up so no column of pixels is clipped."""

        return math.ceil(self.content_width)

    @property
    def height(self) -> int:
        """Content height rounded up so no row of pixels is clipped."""

        return math.ceil(self.content_height)

    def region(self) -> Region:
        return Region(
            x=self.x,
            y=self.y,
            width=self.content_width,
            height=self.content_height,
            scale=1.0,
        )


class CaptureResult(BaseModel):
    """Encoded image returned by the capture encoder."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    format: ImageFormat
    quality: int
    region: Region


class NotificationLevel(str, enum.Enum):
    """Severity of notification events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class NotificationEvent(BaseModel):
    """Event emitted while a pipeline runs."""

    type: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
