from __future__ import annotations

import threading
import time
from typing import Optional

import pytest

from browser_pipeline.allocator import new_allocator
from browser_pipeline.browser.base import BrowserBackend, PageDriver
from browser_pipeline.browser.scripted import PageFixture, ScriptedBackend
from browser_pipeline.client import open_session
from browser_pipeline.config import ClientConfig
from browser_pipeline.errors import CancellationError, DeadlineExceeded, DriverError
from browser_pipeline.models import (
    DeviceMetricsOverride,
    ImageFormat,
    LayoutMetrics,
    NodeInfo,
    Rect,
    Region,
)
from browser_pipeline.scope import Scope
from browser_pipeline.session import new_session, with_deadline


class BlockingPage(PageDriver):
    """Page whose queries hang until released."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.thread_names: list[str] = []
        self.closed = False

    def navigate(self, url: str, *, wait_until: str, timeout: Optional[float]) -> None:
        self.thread_names.append(threading.current_thread().name)

    def query(self, selector: str) -> list[NodeInfo]:
        self.thread_names.append(threading.current_thread().name)
        self.release.wait(5)
        return []

    def scroll_into_view(self, selector: str, index: int) -> NodeInfo:
        raise DriverError("not supported")

    def click(self, x: float, y: float) -> None:
        return None

    def get_layout_metrics(self) -> LayoutMetrics:
        return LayoutMetrics(content_size=Rect(width=10, height=10))

    def set_device_metrics_override(self, override: DeviceMetricsOverride) -> None:
        return None

    def capture_screenshot(
        self,
        *,
        format: ImageFormat,
        quality: Optional[int],
        clip: Optional[Region],
    ) -> bytes:
        return b"img"

    def close(self) -> None:
        self.closed = True


class BlockingBackend(BrowserBackend):
    def __init__(self) -> None:
        self.page = BlockingPage()
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def new_page(self) -> PageDriver:
        return self.page

    def stop(self) -> None:
        self.page.release.set()
        self.stopped = True


class FailingBackend(BlockingBackend):
    def start(self) -> None:
        raise DriverError("chromium not installed")


def test_deadline_unblocks_hung_command() -> None:
    backend = BlockingBackend()
    root = Scope()
    allocator, cancel = new_allocator(root, ClientConfig(), backend=backend)
    session, _ = new_session(allocator)
    limited, _ = with_deadline(session, 0.1)

    started = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        limited.query("#anything")

    assert time.monotonic() - started < 1.0
    assert not session.scope.cancelled
    backend.page.release.set()
    cancel()
    assert backend.stopped


def test_commands_run_on_single_dispatch_thread() -> None:
    backend = BlockingBackend()
    backend.page.release.set()

    with open_session(ClientConfig(), backend=backend) as session:
        session.navigate("http://example/")
        session.query("p")
        session.query("div")

    names = set(backend.page.thread_names)
    assert len(names) == 1
    assert names.pop() != threading.current_thread().name


def test_open_session_releases_everything() -> None:
    backend = ScriptedBackend({"http://example/": PageFixture()})

    with open_session(ClientConfig(), backend=backend, timeout=1) as session:
        session.navigate("http://example/")
        page = backend.pages[-1]

    assert session.scope.cancelled
    assert page.closed
    assert not backend.started


def test_open_session_releases_on_error() -> None:
    backend = ScriptedBackend({})

    with pytest.raises(RuntimeError):
        with open_session(ClientConfig(), backend=backend):
            raise RuntimeError("caller failed")

    assert not backend.started


def test_open_session_applies_config_timeout() -> None:
    config = ClientConfig.model_validate({"timeout": 30})

    with open_session(config, backend=ScriptedBackend({})) as session:
        remaining = session.scope.remaining()

    assert remaining is not None and 29 < remaining <= 30


def test_derived_deadline_is_clamped_to_session() -> None:
    with open_session(ClientConfig(), backend=ScriptedBackend({}), timeout=0.5) as session:
        longer, _ = with_deadline(session, 60)
        shorter, _ = with_deadline(session, 0.1)

        assert longer.scope.deadline == session.scope.deadline
        assert shorter.scope.deadline is not None
        assert shorter.scope.deadline < session.scope.deadline
        assert longer.id == session.id


def test_cancel_functions_are_idempotent() -> None:
    backend = ScriptedBackend({})
    root = Scope()
    allocator, cancel_allocator = new_allocator(root, ClientConfig(), backend=backend)
    session, cancel_session = new_session(allocator)

    cancel_session()
    cancel_session()
    cancel_allocator()
    cancel_allocator()

    assert session.scope.cancelled
    assert allocator.scope.cancelled
    assert not root.cancelled


def test_cancelled_session_refuses_commands() -> None:
    with open_session(ClientConfig(), backend=ScriptedBackend({})) as session:
        session.close()

        with pytest.raises(CancellationError):
            session.query("p")


def test_allocator_cancellation_cancels_sessions() -> None:
    backend = ScriptedBackend({})
    allocator, cancel = new_allocator(Scope(), ClientConfig(), backend=backend)
    first, _ = new_session(allocator)
    second, _ = new_session(allocator)

    cancel()

    assert first.scope.cancelled and second.scope.cancelled
    assert all(page.closed for page in backend.pages)


def test_failed_start_releases_allocator() -> None:
    root = Scope()

    with pytest.raises(DriverError):
        new_allocator(root, ClientConfig(), backend=FailingBackend())

    assert not root.cancelled
