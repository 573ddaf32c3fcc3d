"""Error taxonomy for browser pipelines."""

from __future__ import annotations


class BrowserPipelineError(RuntimeError):
    """Base class for every error raised by the pipeline core."""


class DriverError(BrowserPipelineError):
    """Raised when the browser backend fails to carry out a command."""


class NavigationError(BrowserPipelineError):
    """Raised when a page load fails or does not commit in time."""


class ElementNotFound(BrowserPipelineError):
    """Raised when a selector matches no usable element."""

    def __init__(self, selector: str, message: str | None = None) -> None:
        super().__init__(message or f"No element matches selector {selector!r}")
        self.selector = selector


class AmbiguousSelector(BrowserPipelineError):
    """Raised when a selector matches several elements where one is required."""

    def __init__(self, selector: str, count: int) -> None:
        super().__init__(f"Selector {selector!r} matched {count} elements, expected exactly one")
        self.selector = selector
        self.count = count


class InvalidArgument(BrowserPipelineError, ValueError):
    """Raised for malformed parameters such as an out-of-range quality."""


class CaptureError(BrowserPipelineError):
    """Raised when the browser cannot produce image data."""


class InvalidRegion(InvalidArgument, CaptureError):
    """Raised when a capture region has a non-positive width or height."""


class CancellationError(BrowserPipelineError):
    """Raised when the governing scope is cancelled."""


class DeadlineExceeded(CancellationError):
    """Raised when the governing scope's deadline elapses."""


class WaitCancelled(ElementNotFound, CancellationError):
    """Raised when a scope is cancelled while waiting for an element."""

    def __init__(self, selector: str, reason: CancellationError) -> None:
        super().__init__(selector, f"Gave up waiting for {selector!r}: {reason}")
        self.reason = reason


class NavigationTimeout(NavigationError, DeadlineExceeded):
    """Raised when the deadline elapses before a navigation commits."""
