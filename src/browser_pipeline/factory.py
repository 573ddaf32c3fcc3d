"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Iterable

from .browser.base import BrowserBackend
from .browser.playwright_backend import PlaywrightBackend
from .browser.scripted import ScriptedBackend, load_fixture
from .config import BrowserConfig
from .notifications.base import (
    CompositeNotifier,
    ConsoleNotifier,
    LogNotifier,
    Notifier,
    NullNotifier,
)


def build_backend(config: BrowserConfig) -> BrowserBackend:
    backend = config.backend.lower()
    if backend in {"playwright", "chromium"}:
        return PlaywrightBackend(config)
    if backend == "scripted":
        if config.fixture_path is None:
            raise ValueError("The scripted backend requires browser.fixture_path")
        return ScriptedBackend(load_fixture(config.fixture_path))
    raise ValueError(f"Unsupported browser backend: {config.backend}")


def build_notifier(channel: str) -> Notifier:
    channel = channel.lower()
    if channel == "console":
        return ConsoleNotifier()
    if channel == "log":
        return LogNotifier()
    if channel in {"none", "null"}:
        return NullNotifier()
    raise ValueError(f"Unsupported notification channel: {channel}")


def build_notifiers(channels: Iterable[str]) -> Notifier:
    """Combine the named channels; duplicates are built once."""

    unique = list(dict.fromkeys(channel.lower() for channel in channels))
    notifiers = [build_notifier(channel) for channel in unique]
    if not notifiers:
        return NullNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
