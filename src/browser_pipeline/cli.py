"""Command line interface for browser-pipeline."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml

from .actions import CaptureElement, CaptureFullPage, Click, Navigate, ReadValue, Slot, WaitVisible
from .client import open_session
from .config import ClientConfig, load_config
from .errors import BrowserPipelineError
from .factory import build_notifiers
from .models import ImageFormat
from .notifications.base import Notifier
from .pipeline import Pipeline
from .script import compile_script, load_script

app = typer.Typer(help="Browser pipeline entry point")

_EXTENSIONS = {ImageFormat.PNG: "png", ImageFormat.JPEG: "jpg", ImageFormat.WEBP: "webp"}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with default configuration values."),
]
HeadlessOption = Annotated[
    Optional[bool],
    typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
]


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging and step-by-step events"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctx.obj = {"verbose": verbose}


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-pipeline"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def screenshot(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="Page to capture.")],
    selector: Annotated[
        Optional[str],
        typer.Option("--selector", "-s", help="Capture only the element matching this selector."),
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Directory where screenshots are saved."),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Limit program execution (seconds). Overrides the configured timeout."),
    ] = None,
    quality: Annotated[int, typer.Option("--quality", help="Encoding quality (0-100).")] = 90,
    image_format: Annotated[
        ImageFormat,
        typer.Option("--format", help="Image encoding."),
    ] = ImageFormat.PNG,
    headless: HeadlessOption = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Capture an element or the whole page."""

    config = _load(
        config_path,
        env_file,
        headless=headless,
        timeout=timeout,
        output_dir=output_dir,
        default_timeout=10.0,
    )
    buf: Slot[bytes] = Slot("screenshot")
    if selector:
        name = "elementScreenshot"
        actions = [
            Navigate(url),
            WaitVisible(selector),
            CaptureElement(selector, out=buf, format=image_format, quality=quality),
        ]
    else:
        name = "fullScreenshot"
        actions = [Navigate(url), CaptureFullPage(quality, out=buf, format=image_format)]

    _execute(config, Pipeline(actions, name="screenshot", notifier=_notifier(ctx, config)))
    path = _write(config.output_dir, f"{name}.{_EXTENSIONS[image_format]}", buf.get())
    typer.echo(f"Wrote {path}")


@app.command()
def click(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="Page to open.")],
    wait: Annotated[
        str,
        typer.Option("--wait", help="Element that signals the page is ready."),
    ] = "body > footer",
    target: Annotated[
        str,
        typer.Option("--click", help="Element to click."),
    ] = "#pkg-examples > div",
    value: Annotated[
        str,
        typer.Option("--value", help="Element whose value is printed."),
    ] = "#example_After .play .input textarea",
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Limit program execution (seconds). Overrides the configured timeout."),
    ] = None,
    headless: HeadlessOption = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Wait for a page, click an element and print a form value."""

    config = _load(config_path, env_file, headless=headless, timeout=timeout, default_timeout=15.0)
    result: Slot[str] = Slot("value")
    pipeline = Pipeline(
        [
            Navigate(url),
            WaitVisible(wait),
            Click(target),
            ReadValue(value, out=result),
        ],
        name="click",
        notifier=_notifier(ctx, config),
    )
    _execute(config, pipeline)
    typer.echo(result.get())


@app.command()
def run(
    ctx: typer.Context,
    script_path: Annotated[Path, typer.Argument(help="YAML or JSON pipeline script.")],
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Directory where byte outputs are saved."),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Limit program execution (seconds). Overrides the configured timeout."),
    ] = None,
    headless: HeadlessOption = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Run a declarative pipeline script."""

    config = _load(config_path, env_file, headless=headless, timeout=timeout, output_dir=output_dir)
    try:
        pipeline, slots = compile_script(load_script(script_path), notifier=_notifier(ctx, config))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        typer.echo(f"Invalid script {script_path}: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    _execute(config, pipeline)
    for name, slot in slots.items():
        output = slot.get()
        if isinstance(output, bytes):
            typer.echo(f"{name}: wrote {_write(config.output_dir, name, output)}")
        else:
            typer.echo(f"{name}: {output}")


def _load(
    config_path: Optional[Path],
    env_file: Optional[Path],
    *,
    headless: Optional[bool] = None,
    timeout: Optional[float] = None,
    output_dir: Optional[Path] = None,
    default_timeout: Optional[float] = None,
) -> ClientConfig:
    overrides: dict[str, Any] = {}
    if headless is not None:
        overrides["browser"] = {"headless": headless}
    if timeout is not None:
        overrides["timeout"] = timeout
    if output_dir is not None:
        overrides["output_dir"] = str(output_dir)
    config = load_config(config_path, env_file=env_file, **overrides)
    if config.timeout is None and default_timeout is not None:
        config = config.model_copy(update={"timeout": default_timeout})
    return config


def _notifier(ctx: typer.Context, config: ClientConfig) -> Notifier:
    channels = list(config.notifiers)
    if ctx.obj and ctx.obj.get("verbose"):
        channels.append("console")
    return build_notifiers(channels)


def _execute(config: ClientConfig, pipeline: Pipeline) -> None:
    try:
        with open_session(config) as session:
            pipeline.run(session)
    except (BrowserPipelineError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _write(directory: Path, filename: str, data: bytes) -> Path:
    path = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        typer.echo(f"Error: could not write {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    return path


if __name__ == "__main__":
    app()
