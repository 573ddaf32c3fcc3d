"""Browser actions that make up a pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar

from .capture import capture, validate_quality
from .errors import (
    AmbiguousSelector,
    CancellationError,
    CaptureError,
    DeadlineExceeded,
    DriverError,
    ElementNotFound,
    NavigationError,
    NavigationTimeout,
    WaitCancelled,
)
from .models import ImageFormat, NodeInfo, Region, Visibility
from .viewport import reconcile_viewport

if TYPE_CHECKING:
    from .session import Session

T = TypeVar("T")

_UNSET: Any = object()


class Slot(Generic[T]):
    """Holder for an action's output.

    A pipeline writes its slots only after every action has succeeded, so a
    slot is either unset or holds a value from a complete run.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name
        self._value: Any = _UNSET

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> T:
        if self._value is _UNSET:
            raise LookupError(f"Slot {self.name or '<unnamed>'} has not been written")
        return self._value

    def set(self, value: T) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "set" if self.is_set else "unset"
        return f"<Slot {self.name or '?'} {state}>"


class Action(ABC):
    """A single unit of browser interaction."""

    out: Optional[Slot[Any]] = None

    @abstractmethod
    def execute(self, session: "Session") -> Any:
        """Run against ``session`` and return the action's output."""


def _satisfies(node: NodeInfo, visibility: Visibility) -> bool:
    return visibility is Visibility.READY or node.visible


def _first(session: "Session", selector: str, visibility: Visibility) -> NodeInfo:
    for node in session.query(selector):
        if _satisfies(node, visibility):
            return node
    raise ElementNotFound(selector, _not_found_message(selector, visibility))


def _not_found_message(selector: str, visibility: Visibility) -> str:
    if visibility is Visibility.VISIBLE:
        return f"No visible element matches selector {selector!r}"
    return f"No element matches selector {selector!r}"


@dataclass(frozen=True)
class Navigate(Action):
    """Load a URL and wait for the navigation to commit."""

    url: str

    def execute(self, session: "Session") -> None:
        session.log.info("Navigating to %s", self.url)
        try:
            session.navigate(self.url)
        except DeadlineExceeded as exc:
            raise NavigationTimeout(f"Timed out loading {self.url}") from exc
        except DriverError as exc:
            if isinstance(session.scope.error, DeadlineExceeded):
                raise NavigationTimeout(f"Timed out loading {self.url}") from exc
            raise NavigationError(f"Failed to load {self.url}: {exc}") from exc


@dataclass(frozen=True)
class WaitVisible(Action):
    """Suspend until an element matching ``selector`` satisfies ``visibility``."""

    selector: str
    visibility: Visibility = Visibility.VISIBLE

    def execute(self, session: "Session") -> None:
        interval = session.config.pipeline.poll_interval
        session.log.debug("Waiting for %s to be %s", self.selector, self.visibility.value)
        while True:
            try:
                nodes = session.query(self.selector)
            except CancellationError as exc:
                raise WaitCancelled(self.selector, exc) from exc
            except DriverError as exc:
                # Document swapped mid-query (redirect, late navigation); poll again.
                session.log.debug("Query for %s failed, retrying: %s", self.selector, exc)
                nodes = []
            if any(_satisfies(node, self.visibility) for node in nodes):
                return None
            if session.scope.wait(interval):
                error = session.scope.error or CancellationError("scope cancelled")
                raise WaitCancelled(self.selector, error) from error


@dataclass(frozen=True)
class Click(Action):
    """Click the centre of the single element matching ``selector``.

    Matches that do not satisfy ``visibility`` are ignored. More than one
    remaining match is an error rather than an arbitrary pick.
    """

    selector: str
    visibility: Visibility = Visibility.VISIBLE

    def execute(self, session: "Session") -> None:
        candidates = [
            node for node in session.query(self.selector) if _satisfies(node, self.visibility)
        ]
        if not candidates:
            raise ElementNotFound(self.selector, _not_found_message(self.selector, self.visibility))
        if len(candidates) > 1:
            raise AmbiguousSelector(self.selector, len(candidates))
        node = session.scroll_into_view(self.selector, candidates[0].index)
        x, y = node.box.center
        session.log.debug("Clicking %s at (%.1f, %.1f)", self.selector, x, y)
        session.click(x, y)


@dataclass(frozen=True)
class ReadValue(Action):
    """Read the value property of the first element matching ``selector``."""

    selector: str
    out: Optional[Slot[str]] = field(default=None, repr=False, compare=False)
    visibility: Visibility = Visibility.READY

    def execute(self, session: "Session") -> str:
        node = _first(session, self.selector, self.visibility)
        return node.value or ""


@dataclass(frozen=True)
class Text(Action):
    """Read the text content of the first element matching ``selector``."""

    selector: str
    out: Optional[Slot[str]] = field(default=None, repr=False, compare=False)
    visibility: Visibility = Visibility.VISIBLE

    def execute(self, session: "Session") -> str:
        node = _first(session, self.selector, self.visibility)
        return node.text or ""


@dataclass(frozen=True)
class CaptureElement(Action):
    """Capture the pixels inside a visible element's bounding box."""

    selector: str
    out: Optional[Slot[bytes]] = field(default=None, repr=False, compare=False)
    format: ImageFormat = ImageFormat.PNG
    quality: int = 100

    def execute(self, session: "Session") -> bytes:
        validate_quality(self.quality)
        node = _first(session, self.selector, Visibility.VISIBLE)
        node = session.scroll_into_view(self.selector, node.index)
        box = node.page_box
        region = Region(x=box.x, y=box.y, width=box.width, height=box.height, scale=1.0)
        return capture(session, region, self.quality, self.format).data


@dataclass(frozen=True)
class CaptureFullPage(Action):
    """Capture the whole document, including content below the fold.

    This stretches the emulated viewport over the document and leaves it
    that way for the rest of the session.
    """

    quality: int = 90
    out: Optional[Slot[bytes]] = field(default=None, repr=False, compare=False)
    format: ImageFormat = ImageFormat.PNG

    def execute(self, session: "Session") -> bytes:
        validate_quality(self.quality)
        try:
            metrics = reconcile_viewport(session)
        except DriverError as exc:
            raise CaptureError(f"Could not reconcile viewport: {exc}") from exc
        return capture(session, metrics.region(), self.quality, self.format).data


@dataclass(frozen=True)
class Sleep(Action):
    """Pause for ``seconds`` unless the scope ends first."""

    seconds: float

    def execute(self, session: "Session") -> None:
        if session.scope.wait(self.seconds):
            session.scope.raise_if_cancelled()


@dataclass(frozen=True)
class ActionFunc(Action):
    """Run an arbitrary callable against the session."""

    fn: Callable[["Session"], Any]
    out: Optional[Slot[Any]] = field(default=None, repr=False, compare=False)

    def execute(self, session: "Session") -> Any:
        return self.fn(session)
