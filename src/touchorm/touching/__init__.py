"""
Deferred touch coalescing.

Touches issued inside ``Session.deferred_touch()`` are queued per model and
column-set and written as one batched ``UPDATE`` per group when the outermost
scope exits.
"""

from .config import TouchConfig
from .errors import (
    DetachedInstanceError,
    TouchConfigurationError,
    TouchCycleError,
    TouchError,
    TouchFlushError,
    UnknownAttributeError,
)
from .flush import TouchFlusher
from .scope import DeferredTouchScope
from .state import SuppressionRegistry, TouchBucket, TouchState, TouchStateRegistry
from .statements import build_touch_update
from .touchers import DeferredToucher, ImmediateToucher, Toucher, resolve_touch_columns

__all__ = [
    "DeferredTouchScope",
    "DeferredToucher",
    "DetachedInstanceError",
    "ImmediateToucher",
    "SuppressionRegistry",
    "TouchBucket",
    "TouchConfig",
    "TouchConfigurationError",
    "TouchCycleError",
    "TouchError",
    "TouchFlushError",
    "TouchFlusher",
    "TouchState",
    "TouchStateRegistry",
    "Toucher",
    "UnknownAttributeError",
    "build_touch_update",
    "resolve_touch_columns",
]
