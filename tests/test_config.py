from pathlib import Path

from browser_pipeline.config import DEFAULT_BROWSER_ARGS, load_config


def test_load_config_reads_env_file(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_PIPELINE_BROWSER__HEADLESS=false",
                "BROWSER_PIPELINE_BROWSER__VIEWPORT_WIDTH=1920",
                "BROWSER_PIPELINE_PIPELINE__POLL_INTERVAL=0.25",
                "BROWSER_PIPELINE_TIMEOUT=12.5",
            ]
        )
    )

    config = load_config(env_file=env_path)

    assert config.browser.headless is False
    assert config.browser.viewport_width == 1920
    assert config.pipeline.poll_interval == 0.25
    assert config.timeout == 12.5


def test_load_config_defaults(tmp_path: Path) -> None:
    config = load_config(env_file=tmp_path / "missing.env")

    assert config.browser.backend == "playwright"
    assert config.browser.headless is True
    assert config.browser.args == DEFAULT_BROWSER_ARGS
    assert config.pipeline.navigation_wait_until == "load"
    assert config.timeout is None


def test_load_config_prioritises_overrides(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_PIPELINE_BROWSER__REMOTE_URL=http://127.0.0.1:9222",
                "BROWSER_PIPELINE_TIMEOUT=5",
            ]
        )
    )

    config_path = tmp_path / "client.yaml"
    config_path.write_text(
        "\n".join(
            [
                "browser:",
                "  headless: false",
                "  viewport_height: 900",
                "timeout: 20",
            ]
        )
    )

    config = load_config(config_path, env_file=env_path, browser={"headless": True}, output_dir="shots")

    assert config.browser.headless is True
    assert config.browser.viewport_height == 900
    assert config.browser.remote_url == "http://127.0.0.1:9222"
    assert config.timeout == 20
    assert config.output_dir == Path("shots")
