"""Composable browser action pipelines."""

from .actions import (
    ActionFunc,
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
from .allocator import new_allocator
from .client import open_session
from .pipeline import Pipeline, run
from .scope import Scope
from .session import Session, new_session, with_deadline

__all__ = [
    "ActionFunc",
    "CaptureElement",
    "CaptureFullPage",
    "Click",
    "Navigate",
    "Pipeline",
    "ReadValue",
    "Scope",
    "Session",
    "Sleep",
    "Slot",
    "Text",
    "WaitVisible",
    "new_allocator",
    "new_session",
    "open_session",
    "run",
    "with_deadline",
]
