from __future__ import annotations

from typing import Mapping

import pytest

from browser_pipeline.allocator import new_allocator
from browser_pipeline.browser.scripted import PageFixture, ScriptedBackend
from browser_pipeline.config import ClientConfig
from browser_pipeline.scope import Scope
from browser_pipeline.session import Session, new_session, with_deadline


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig.model_validate({"pipeline": {"poll_interval": 0.01}})


@pytest.fixture
def open_scripted(client_config: ClientConfig):
    roots: list[Scope] = []

    def _open(pages: Mapping[str, PageFixture], *, timeout: float | None = None) -> Session:
        root = Scope(name="test")
        roots.append(root)
        allocator, _ = new_allocator(root, client_config, backend=ScriptedBackend(pages))
        session, _ = new_session(allocator)
        if timeout is not None:
            session, _ = with_deadline(session, timeout)
        return session

    yield _open
    for root in roots:
        root.cancel()
