"""Configuration models for browser pipelines."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
]


class BrowserConfig(BaseModel):
    """Settings for the browser backend."""

    backend: str = Field(default="playwright")
    headless: bool = True
    executable_path: Optional[Path] = None
    remote_url: Optional[str] = Field(
        default=None,
        description="Attach to a running browser at this CDP endpoint instead of launching one.",
    )
    viewport_width: int = 1280
    viewport_height: int = 720
    args: list[str] = Field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    fixture_path: Optional[Path] = Field(
        default=None,
        description="Page fixture served by the scripted backend.",
    )


class PipelineConfig(BaseModel):
    """Settings that tune how actions execute."""

    poll_interval: float = Field(default=0.1, gt=0)
    navigation_wait_until: Literal["commit", "domcontentloaded", "load", "networkidle"] = "load"


class ClientConfig(BaseSettings):
    """Top-level configuration for running pipelines."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_PIPELINE_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    timeout: Optional[float] = Field(
        default=None,
        description="Optional limit (in seconds) for the whole run.",
    )
    output_dir: Path = Field(default=Path("."))
    notifiers: list[Literal["console", "log", "none"]] = Field(
        default_factory=list,
        description="Channels that receive pipeline progress events.",
    )


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ClientConfig:
    """Resolve configuration from every source.

    Precedence, lowest first: field defaults, environment variables (and
    ``env_file``), the YAML file at ``path``, then keyword ``overrides``.
    Nested sections merge key by key, so a YAML ``browser.headless`` keeps
    ``browser.remote_url`` from the environment.
    """

    explicit: dict[str, Any] = {}
    if path:
        import yaml

        explicit = yaml.safe_load(path.read_text()) or {}
    explicit = _merge(explicit, overrides)

    settings_kwargs: dict[str, Any] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    from_env = ClientConfig(**settings_kwargs)
    if not explicit:
        return from_env
    return ClientConfig.model_validate(_merge(from_env.model_dump(mode="python"), explicit))


def _merge(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``base`` with ``updates`` applied recursively."""

    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged
