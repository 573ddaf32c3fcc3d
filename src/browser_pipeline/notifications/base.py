"""Notification channels for pipeline events."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable

from rich.console import Console

from ..models import NotificationEvent, NotificationLevel

_STYLES = {
    NotificationLevel.INFO: "cyan",
    NotificationLevel.WARNING: "yellow",
    NotificationLevel.ERROR: "red",
    NotificationLevel.SUCCESS: "green",
}

_LOG_LEVELS = {
    NotificationLevel.INFO: logging.DEBUG,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class Notifier(ABC):
    """Receives progress events while a pipeline runs."""

    @abstractmethod
    def notify(self, event: NotificationEvent) -> None:
        """Handle a single event."""


class NullNotifier(Notifier):
    """Drops every event."""

    def notify(self, event: NotificationEvent) -> None:
        return


class ConsoleNotifier(Notifier):
    """Print events to stderr using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._lock = threading.Lock()

    def notify(self, event: NotificationEvent) -> None:
        style = _STYLES.get(event.level, "white")
        with self._lock:
            self._console.print(f"[{event.level.value.upper()}] {event.message}", style=style, markup=False)
            if event.data:
                self._console.print(event.data, style="dim")


class LogNotifier(Notifier):
    """Forward events to a standard logger; step events go to DEBUG."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("browser_pipeline.events")

    def notify(self, event: NotificationEvent) -> None:
        self._logger.log(
            _LOG_LEVELS.get(event.level, logging.INFO),
            "%s: %s",
            event.type,
            event.message,
            extra={"event_data": event.data},
        )


class CompositeNotifier(Notifier):
    """Deliver each event to several channels in registration order.

    Nested composites are flattened and null channels are skipped.
    """

    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self._channels: list[Notifier] = []
        for notifier in notifiers:
            if isinstance(notifier, CompositeNotifier):
                self._channels.extend(notifier.channels)
            elif not isinstance(notifier, NullNotifier):
                self._channels.append(notifier)

    @property
    def channels(self) -> tuple[Notifier, ...]:
        return tuple(self._channels)

    def notify(self, event: NotificationEvent) -> None:
        for channel in self._channels:
            channel.notify(event)
