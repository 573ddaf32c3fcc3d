"""Capture encoder."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import CaptureError, DriverError, InvalidArgument, InvalidRegion
from .models import CaptureResult, ImageFormat, Region

if TYPE_CHECKING:
    from .session import Session

MIN_QUALITY = 0
MAX_QUALITY = 100


def validate_quality(quality: int) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidArgument(f"Quality must be an integer, got {quality!r}")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidArgument(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}"
        )
    return quality


def validate_region(region: Region) -> Region:
    if region.width <= 0 or region.height <= 0:
        raise InvalidRegion(
            f"Capture region must have a positive size, got {region.width}x{region.height}"
        )
    return region


def capture(
    session: "Session",
    region: Region,
    quality: int,
    format: ImageFormat = ImageFormat.PNG,
) -> CaptureResult:
    """Encode the pixels inside ``region``.

    The region must have been measured immediately before the call. A stale
    region does not fail; it silently yields a wrong-sized or blank image.
    """

    validate_quality(quality)
    validate_region(region)
    clip = region.model_copy(update={"scale": 1.0})
    session.log.debug(
        "Capturing %s at quality %d: %.1fx%.1f+%.1f+%.1f",
        format.value,
        quality,
        clip.width,
        clip.height,
        clip.x,
        clip.y,
    )
    try:
        data = session.capture_screenshot(format=format, quality=quality, clip=clip)
    except DriverError as exc:
        raise CaptureError(f"Screenshot failed: {exc}") from exc
    if not data:
        raise CaptureError("Browser returned an empty image")
    return CaptureResult(data=data, format=format, quality=quality, region=clip)
