"""
Exceptions raised by the touch engine.
"""

from __future__ import annotations


class TouchError(RuntimeError):
    """Base error for touch failures."""


class UnknownAttributeError(TouchError, KeyError):
    """Raised when a touch names a column the model does not define."""

    def __str__(self) -> str:
        return RuntimeError.__str__(self)


class DetachedInstanceError(TouchError):
    """Raised when ``Model.touch`` is called on an instance without a session."""


class TouchConfigurationError(TouchError):
    """Raised when touch settings are invalid."""


class TouchFlushError(TouchError):
    """Raised when a deferred touch cycle could not be committed."""


class TouchCycleError(TouchFlushError):
    """Raised when touch callbacks keep queueing work beyond the pass limit."""
