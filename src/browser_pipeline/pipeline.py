"""Sequential execution of browser actions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional

from .actions import Action, Slot
from .models import NotificationEvent, NotificationLevel
from .notifications.base import Notifier, NullNotifier

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)


class Pipeline(Action):
    """An ordered sequence of actions executed strictly one after another.

    The first failing action aborts the run and its error propagates
    unchanged; later actions are never attempted. Output slots are written
    only once every action has succeeded. A pipeline is itself an action, so
    pipelines nest.
    """

    def __init__(
        self,
        actions: Iterable[Action] = (),
        *,
        name: str = "pipeline",
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._actions: tuple[Action, ...] = tuple(actions)
        self.name = name
        self._notifier = notifier or NullNotifier()

    @property
    def actions(self) -> tuple[Action, ...]:
        return self._actions

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __repr__(self) -> str:
        return f"Pipeline({self.name!r}, {len(self._actions)} actions)"

    def run(self, session: "Session") -> list[Any]:
        """Execute every action and return their outputs in order."""

        staged: list[tuple[Slot[Any], Any]] = []
        outputs = self._run(session, staged)
        for slot, value in staged:
            slot.set(value)
        return outputs

    def execute(self, session: "Session") -> list[Any]:
        return self.run(session)

    def _run(self, session: "Session", staged: list[tuple[Slot[Any], Any]]) -> list[Any]:
        total = len(self._actions)
        session.log.debug("Running %s with %d action(s)", self.name, total)
        self._emit("pipeline_started", f"Starting {self.name}", actions=total)
        outputs: list[Any] = []
        for index, action in enumerate(self._actions, start=1):
            self._emit("action_started", f"[{index}/{total}] {action!r}", index=index)
            try:
                session.scope.raise_if_cancelled()
                if isinstance(action, Pipeline):
                    output: Any = action._run(session, staged)
                else:
                    output = action.execute(session)
            except Exception as exc:
                session.log.warning("%s failed at step %d/%d %r: %s", self.name, index, total, action, exc)
                self._emit(
                    "pipeline_failed",
                    f"{self.name} failed at step {index}: {exc}",
                    level=NotificationLevel.ERROR,
                    index=index,
                    error=type(exc).__name__,
                )
                raise
            if action.out is not None:
                staged.append((action.out, output))
            outputs.append(output)
            self._emit("action_completed", f"[{index}/{total}] done", index=index)
        self._emit(
            "pipeline_completed",
            f"{self.name} completed",
            level=NotificationLevel.SUCCESS,
            actions=total,
        )
        return outputs

    def _emit(
        self,
        event_type: str,
        message: str,
        *,
        level: NotificationLevel = NotificationLevel.INFO,
        **data: Any,
    ) -> None:
        self._notifier.notify(
            NotificationEvent(type=event_type, message=message, level=level, data=data)
        )


def run(
    session: "Session",
    *actions: Action,
    notifier: Optional[Notifier] = None,
) -> list[Any]:
    """Run ``actions`` in order against ``session``."""

    return Pipeline(actions, notifier=notifier).run(session)
