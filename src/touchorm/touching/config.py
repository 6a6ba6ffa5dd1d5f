"""
Configuration for immediate and deferred touches.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..core.fields import utc_now
from .errors import TouchConfigurationError

DEFAULT_MAX_PASSES = 100


@dataclass(frozen=True)
class TouchConfig:
    """
    Settings shared by every touch issued through a session.

    ``clock`` supplies the timestamp written by a touch; a deferred flush calls
    it once per batched statement. ``max_passes`` bounds how many drain passes a
    single flush may run while callbacks keep queueing new touches.
    """

    max_passes: int = DEFAULT_MAX_PASSES
    clock: Callable[[], datetime] = utc_now
    slow_flush_ms: int = 200

    def __post_init__(self) -> None:
        if self.max_passes < 1:
            raise TouchConfigurationError(
                f"max_passes must be at least 1, received {self.max_passes!r}"
            )
        if not callable(self.clock):
            raise TouchConfigurationError("clock must be a callable returning a datetime")
