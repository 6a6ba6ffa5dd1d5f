"""
Lifecycle hooks registry for touchorm models.
"""

from .dispatcher import KNOWN_EVENTS, HookDispatcher, HookError, hooks

__all__ = ["KNOWN_EVENTS", "HookDispatcher", "HookError", "hooks"]
