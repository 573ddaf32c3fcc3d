from __future__ import annotations

from pathlib import Path

import pytest

from browser_pipeline.actions import CaptureFullPage, Click, Navigate, ReadValue, Sleep, WaitVisible
from browser_pipeline.browser.scripted import NodeFixture, PageFixture
from browser_pipeline.errors import InvalidArgument
from browser_pipeline.models import ImageFormat, Rect, Visibility
from browser_pipeline.script import ActionSpec, ActionType, PipelineScript, build_action, compile_script, load_script

SCRIPT = """
name: docs
actions:
  - type: navigate
    url: http://example/docs
  - type: wait_visible
    selector: main
  - type: click
    selector: "#toggle"
    visibility: ready
  - type: read_value
    selector: "#query"
    save_as: query
  - type: capture_full_page
    quality: 75
    format: jpeg
    save_as: page.jpg
"""


def test_load_and_compile_script(tmp_path: Path) -> None:
    path = tmp_path / "docs.yaml"
    path.write_text(SCRIPT)

    pipeline, slots = compile_script(load_script(path))

    assert pipeline.name == "docs"
    navigate, wait, click, read, capture = pipeline.actions
    assert navigate == Navigate("http://example/docs")
    assert wait == WaitVisible("main", Visibility.VISIBLE)
    assert click == Click("#toggle", Visibility.READY)
    assert isinstance(read, ReadValue) and read.out is slots["query"]
    assert isinstance(capture, CaptureFullPage)
    assert (capture.quality, capture.format) == (75, ImageFormat.JPEG)
    assert list(slots) == ["query", "page.jpg"]


def test_bare_list_is_accepted(tmp_path: Path) -> None:
    path = tmp_path / "steps.yaml"
    path.write_text("- type: sleep\n  seconds: 0.5\n")

    script = load_script(path)

    assert build_action(script.actions[0]) == Sleep(0.5)


@pytest.mark.parametrize(
    "spec",
    [
        ActionSpec(type=ActionType.NAVIGATE),
        ActionSpec(type=ActionType.CLICK),
        ActionSpec(type=ActionType.SLEEP),
        ActionSpec(type=ActionType.CAPTURE_ELEMENT),
    ],
)
def test_incomplete_steps_are_rejected(spec: ActionSpec) -> None:
    with pytest.raises(InvalidArgument):
        build_action(spec)


def test_save_as_requires_output_step() -> None:
    script = PipelineScript(
        actions=[ActionSpec(type=ActionType.NAVIGATE, url="http://example/", save_as="nav")]
    )

    with pytest.raises(InvalidArgument):
        compile_script(script)


def test_duplicate_save_as_is_rejected() -> None:
    script = PipelineScript(
        actions=[
            ActionSpec(type=ActionType.TEXT, selector="h1", save_as="title"),
            ActionSpec(type=ActionType.TEXT, selector="h2", save_as="title"),
        ]
    )

    with pytest.raises(InvalidArgument):
        compile_script(script)


def test_compiled_script_fills_slots(open_scripted) -> None:
    page = PageFixture(
        nodes=[
            NodeFixture(selector="main"),
            NodeFixture(selector="#toggle", box=Rect(x=0, y=0, width=40, height=40)),
            NodeFixture(selector="#query", value="pipelines"),
        ],
        content_size=Rect(width=640, height=2000),
        screenshot=b"jpeg-bytes",
    )
    session = open_scripted({"http://example/docs": page}, timeout=2)
    script = PipelineScript.model_validate(
        {
            "actions": [
                {"type": "navigate", "url": "http://example/docs"},
                {"type": "wait_visible", "selector": "main"},
                {"type": "click", "selector": "#toggle"},
                {"type": "read_value", "selector": "#query", "save_as": "query"},
                {"type": "capture_full_page", "quality": 75, "format": "jpeg", "save_as": "page"},
            ]
        }
    )
    pipeline, slots = compile_script(script)

    pipeline.run(session)

    assert slots["query"].get() == "pipelines"
    assert slots["page"].get() == b"jpeg-bytes"
