"""Scoped acquisition of a ready-to-use session."""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Iterator, Optional

from .allocator import new_allocator
from .browser.base import BrowserBackend
from .config import ClientConfig
from .scope import Scope
from .session import Session, new_session, with_deadline


@contextmanager
def open_session(
    config: Optional[ClientConfig] = None,
    *,
    timeout: Optional[float] = None,
    scope: Optional[Scope] = None,
    backend: Optional[BrowserBackend] = None,
    logger: Optional[logging.Logger] = None,
) -> Iterator[Session]:
    """Yield a session nested as allocator -> session -> deadline scopes.

    Every scope is released in reverse order on exit, whether the body
    returns or raises. ``timeout`` defaults to ``config.timeout``.
    """

    config = config or ClientConfig()
    limit = timeout if timeout is not None else config.timeout
    with ExitStack() as stack:
        root = scope
        if root is None:
            root = Scope(name="root")
            stack.callback(root.cancel)
        allocator, cancel_allocator = new_allocator(root, config, backend=backend)
        stack.callback(cancel_allocator)
        session, cancel_session = new_session(allocator, logger=logger)
        stack.callback(cancel_session)
        if limit is not None:
            session, cancel_deadline = with_deadline(session, limit)
            stack.callback(cancel_deadline)
        yield session
