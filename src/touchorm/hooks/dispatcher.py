"""
Hook dispatcher coordinating lifecycle events.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Type

from ..core.model import Model


HookHandler = Callable[..., None]

KNOWN_EVENTS = frozenset(
    {
        "before_save",
        "after_save",
        "before_delete",
        "after_delete",
        "after_touch",
        "after_commit",
    }
)


class HookError(ValueError):
    """Raised when a handler is registered for an unknown event."""


class HookDispatcher:
    """
    Maintains global and per-model hook handlers.

    Model handlers registered on a base class also fire for its subclasses.
    """

    def __init__(self) -> None:
        self._global_handlers: Dict[str, List[HookHandler]] = defaultdict(list)
        self._model_handlers: Dict[Type[Model], Dict[str, List[HookHandler]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(self, event: str, handler: HookHandler, *, model: Optional[Type[Model]] = None) -> None:
        if event not in KNOWN_EVENTS:
            raise HookError(f"Unknown hook event '{event}'; expected one of {sorted(KNOWN_EVENTS)}")
        if model:
            self._model_handlers[model][event].append(handler)
        else:
            self._global_handlers[event].append(handler)

    def unregister(self, event: str, handler: HookHandler, *, model: Optional[Type[Model]] = None) -> None:
        handlers = self._model_handlers[model][event] if model else self._global_handlers[event]
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: str, model: Optional[Type[Model]]) -> List[HookHandler]:
        handlers = list(self._global_handlers.get(event, []))
        if model is None:
            return handlers
        for klass in reversed(model.__mro__):
            if klass in self._model_handlers:
                handlers.extend(self._model_handlers[klass].get(event, []))
        return handlers

    def fire(self, event: str, instance: Optional[Model], **context: Any) -> None:
        model = instance.__class__ if instance is not None else None
        for handler in self.handlers_for(event, model):
            handler(instance, **context)

    def clear(self) -> None:
        self._global_handlers.clear()
        self._model_handlers.clear()


hooks = HookDispatcher()
