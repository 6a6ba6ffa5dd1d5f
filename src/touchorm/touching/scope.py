"""
Reentrant deferred-touch scopes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Generator, TypeVar

from .flush import TouchFlusher
from .state import TouchState, TouchStateRegistry

T = TypeVar("T")


class DeferredTouchScope:
    """
    Opens nested deferred-touch scopes; only the outermost exit flushes.

    The flush also runs when the block raised, so touches queued before the
    failure are still written, and the block's exception is re-raised
    afterwards. Nesting always settles, even when the flush fails.
    """

    def __init__(self, registry: TouchStateRegistry, flusher: TouchFlusher) -> None:
        self.registry = registry
        self.flusher = flusher

    @contextmanager
    def scope(self) -> Generator[TouchState, None, None]:
        state = self.registry.enter()
        try:
            try:
                yield state
            finally:
                if state.nesting == 1:
                    self.flusher.flush(state)
        finally:
            self.registry.exit(state)

    def run(self, work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.scope():
            return work(*args, **kwargs)

    def is_active(self) -> bool:
        return self.registry.is_active()
