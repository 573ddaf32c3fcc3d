"""Declarative pipeline scripts loaded from YAML or JSON."""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .actions import (
    Action,
    CaptureElement,
    CaptureFullPage,
    Click,
    Navigate,
    ReadValue,
    Sleep,
    Slot,
    Text,
    WaitVisible,
)
from .errors import InvalidArgument
from .models import ImageFormat, Visibility
from .notifications.base import Notifier
from .pipeline import Pipeline


class ActionType(str, enum.Enum):
    """Action kinds a script may contain."""

    NAVIGATE = "navigate"
    WAIT_VISIBLE = "wait_visible"
    CLICK = "click"
    READ_VALUE = "read_value"
    TEXT = "text"
    CAPTURE_ELEMENT = "capture_element"
    CAPTURE_FULL_PAGE = "capture_full_page"
    SLEEP = "sleep"


_OUTPUT_TYPES = {
    ActionType.READ_VALUE,
    ActionType.TEXT,
    ActionType.CAPTURE_ELEMENT,
    ActionType.CAPTURE_FULL_PAGE,
}

_SELECTOR_TYPES = {
    ActionType.WAIT_VISIBLE,
    ActionType.CLICK,
    ActionType.READ_VALUE,
    ActionType.TEXT,
    ActionType.CAPTURE_ELEMENT,
}


class ActionSpec(BaseModel):
    """One step of a script."""

    type: ActionType
    url: Optional[str] = None
    selector: Optional[str] = None
    visibility: Optional[Visibility] = None
    quality: Optional[int] = None
    format: ImageFormat = ImageFormat.PNG
    seconds: Optional[float] = None
    save_as: Optional[str] = Field(
        default=None,
        description="Name under which the step's output is returned.",
    )
    description: Optional[str] = None


class PipelineScript(BaseModel):
    """A named list of steps."""

    name: str = "script"
    actions: list[ActionSpec] = Field(default_factory=list)


def load_script(path: Path) -> PipelineScript:
    """Read a script from a YAML (or JSON) file."""

    import yaml

    data = yaml.safe_load(path.read_text()) or {}
    if isinstance(data, list):
        data = {"actions": data}
    return PipelineScript.model_validate(data)


def build_action(spec: ActionSpec, out: Optional[Slot[Any]] = None) -> Action:
    """Turn a validated step into an action."""

    if spec.type in _SELECTOR_TYPES and not spec.selector:
        raise InvalidArgument(f"{spec.type.value} action requires a selector")
    if spec.type == ActionType.NAVIGATE:
        if not spec.url:
            raise InvalidArgument("navigate action requires a URL")
        return Navigate(spec.url)
    if spec.type == ActionType.WAIT_VISIBLE:
        return WaitVisible(spec.selector, spec.visibility or Visibility.VISIBLE)
    if spec.type == ActionType.CLICK:
        return Click(spec.selector, spec.visibility or Visibility.VISIBLE)
    if spec.type == ActionType.READ_VALUE:
        return ReadValue(spec.selector, out=out, visibility=spec.visibility or Visibility.READY)
    if spec.type == ActionType.TEXT:
        return Text(spec.selector, out=out, visibility=spec.visibility or Visibility.VISIBLE)
    if spec.type == ActionType.CAPTURE_ELEMENT:
        quality = 100 if spec.quality is None else spec.quality
        return CaptureElement(spec.selector, out=out, format=spec.format, quality=quality)
    if spec.type == ActionType.CAPTURE_FULL_PAGE:
        quality = 90 if spec.quality is None else spec.quality
        return CaptureFullPage(quality, out=out, format=spec.format)
    if spec.type == ActionType.SLEEP:
        if spec.seconds is None or spec.seconds < 0:
            raise InvalidArgument("sleep action requires a non-negative number of seconds")
        return Sleep(spec.seconds)
    raise InvalidArgument(f"Unsupported action type: {spec.type}")


def compile_script(
    script: PipelineScript,
    *,
    notifier: Optional[Notifier] = None,
) -> tuple[Pipeline, dict[str, Slot[Any]]]:
    """Build a pipeline plus the named slots its ``save_as`` steps fill."""

    slots: dict[str, Slot[Any]] = {}
    actions: list[Action] = []
    for index, spec in enumerate(script.actions, start=1):
        slot: Optional[Slot[Any]] = None
        if spec.save_as:
            if spec.type not in _OUTPUT_TYPES:
                raise InvalidArgument(
                    f"Step {index} ({spec.type.value}) produces no output to save"
                )
            if spec.save_as in slots:
                raise InvalidArgument(f"Duplicate save_as name: {spec.save_as}")
            slot = slots[spec.save_as] = Slot(spec.save_as)
        actions.append(build_action(spec, slot))
    return Pipeline(actions, name=script.name, notifier=notifier), slots
