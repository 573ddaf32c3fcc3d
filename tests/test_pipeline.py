from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from browser_pipeline.actions import Action, ActionFunc, Slot
from browser_pipeline.errors import CancellationError, ElementNotFound
from browser_pipeline.models import NotificationEvent
from browser_pipeline.notifications.base import Notifier
from browser_pipeline.pipeline import Pipeline, run
from browser_pipeline.scope import Scope


class StubSession:
    def __init__(self) -> None:
        self.scope = Scope(name="stub")
        self.log = logging.LoggerAdapter(logging.getLogger("tests.pipeline"), {})


@dataclass(frozen=True)
class Step(Action):
    name: str
    log: list[str]
    output: Any = None
    error: Optional[Exception] = None
    out: Optional[Slot[Any]] = field(default=None, repr=False, compare=False)

    def execute(self, session: Any) -> Any:
        self.log.append(self.name)
        if self.error is not None:
            raise self.error
        return self.output


class CollectingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)


@pytest.mark.parametrize("failing", [1, 3, 5])
def test_first_failure_aborts_remaining_actions(failing: int) -> None:
    executed: list[str] = []
    error = ElementNotFound("#missing")
    actions = [
        Step(f"a{i}", executed, error=error if i == failing else None) for i in range(1, 6)
    ]

    with pytest.raises(ElementNotFound) as excinfo:
        Pipeline(actions).run(StubSession())

    assert excinfo.value is error
    assert executed == [f"a{i}" for i in range(1, failing + 1)]


def test_outputs_are_returned_in_construction_order() -> None:
    executed: list[str] = []
    pipeline = Pipeline(
        [
            Step("first", executed, output=1),
            Step("second", executed, output="two"),
            Step("third", executed, output=b"3"),
        ]
    )

    assert pipeline.run(StubSession()) == [1, "two", b"3"]
    assert executed == ["first", "second", "third"]


def test_slots_written_only_after_success() -> None:
    executed: list[str] = []
    first: Slot[str] = Slot("first")
    pipeline = Pipeline(
        [
            Step("read", executed, output="value", out=first),
            Step("boom", executed, error=RuntimeError("browser crashed")),
        ]
    )

    with pytest.raises(RuntimeError):
        pipeline.run(StubSession())

    assert not first.is_set
    with pytest.raises(LookupError):
        first.get()


def test_slots_written_on_success() -> None:
    executed: list[str] = []
    value: Slot[str] = Slot("value")

    run(StubSession(), Step("read", executed, output="hello", out=value))

    assert value.get() == "hello"


def test_nested_pipeline_commits_with_outer_run() -> None:
    executed: list[str] = []
    inner_slot: Slot[int] = Slot("inner")
    inner = Pipeline([Step("inner", executed, output=7, out=inner_slot)], name="inner")
    outer = Pipeline(
        [inner, Step("fail", executed, error=ElementNotFound("#late"))],
        name="outer",
    )

    with pytest.raises(ElementNotFound):
        outer.run(StubSession())

    assert executed == ["inner", "fail"]
    assert not inner_slot.is_set


def test_nested_pipeline_output_is_list() -> None:
    executed: list[str] = []
    inner = Pipeline([Step("a", executed, output=1), Step("b", executed, output=2)])

    outputs = Pipeline([inner, Step("c", executed, output=3)]).run(StubSession())

    assert outputs == [[1, 2], 3]


def test_cancelled_scope_stops_before_next_action() -> None:
    executed: list[str] = []
    session = StubSession()
    pipeline = Pipeline(
        [
            ActionFunc(lambda s: s.scope.cancel()),
            Step("never", executed),
        ]
    )

    with pytest.raises(CancellationError):
        pipeline.run(session)

    assert executed == []


def test_notifier_receives_lifecycle_events() -> None:
    executed: list[str] = []
    notifier = CollectingNotifier()
    pipeline = Pipeline(
        [Step("ok", executed), Step("bad", executed, error=ElementNotFound("#x"))],
        notifier=notifier,
    )

    with pytest.raises(ElementNotFound):
        pipeline.run(StubSession())

    assert [event.type for event in notifier.events] == [
        "pipeline_started",
        "action_started",
        "action_completed",
        "action_started",
        "pipeline_failed",
    ]
    assert notifier.events[-1].data["index"] == 2
    assert notifier.events[-1].data["error"] == "ElementNotFound"


def test_pipeline_is_immutable_sequence() -> None:
    executed: list[str] = []
    actions = [Step("a", executed), Step("b", executed)]
    pipeline = Pipeline(actions)
    actions.append(Step("c", executed))

    assert len(pipeline) == 2
    assert [step.name for step in pipeline] == ["a", "b"]
