"""
Pending-touch bookkeeping, scoped per session and per thread.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import RLock
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Generator, List, Optional, Set, Tuple, Type

if TYPE_CHECKING:
    from ..core.model import Model

BucketKey = Tuple[Type["Model"], FrozenSet[str]]


def ordered_columns(model: Type["Model"], columns: FrozenSet[str]) -> tuple[str, ...]:
    """
    Timestamp fields first, then the remaining columns in declaration order.
    """
    meta = model._meta
    leading = [name for name in meta.timestamp_fields if name in columns]
    trailing = [name for name in meta.fields if name in columns and name not in leading]
    return tuple(leading + trailing)


@dataclass
class TouchBucket:
    """
    Records of one model queued for the same column-set.

    ``records`` maps a primary key to every distinct in-memory instance that
    was touched for it.
    """

    model: Type["Model"]
    columns: FrozenSet[str]
    records: "OrderedDict[Any, List[Model]]" = field(default_factory=OrderedDict)

    @property
    def key(self) -> BucketKey:
        return (self.model, self.columns)

    @property
    def ordered_columns(self) -> tuple[str, ...]:
        return ordered_columns(self.model, self.columns)

    def primary_keys(self) -> list[Any]:
        return sorted(self.records)

    def add(self, record: "Model") -> None:
        instances = self.records.setdefault(record.pk, [])
        if not any(existing is record for existing in instances):
            instances.append(record)

    def discard(self, pk: Any) -> None:
        self.records.pop(pk, None)

    def instances(self) -> list["Model"]:
        return [record for group in self.records.values() for record in group]

    def representatives(self) -> list["Model"]:
        return [group[0] for group in self.records.values()]

    def __len__(self) -> int:
        return len(self.records)


class TouchState:
    """
    Deferred-touch state for one execution context.
    """

    def __init__(self) -> None:
        self.nesting = 0
        self.pending: "OrderedDict[BucketKey, TouchBucket]" = OrderedDict()
        self.flushed: Dict[BucketKey, Set[Any]] = {}

    def add(self, record: "Model", columns: FrozenSet[str]) -> bool:
        """
        Queue ``record`` for ``columns``.

        Returns ``False`` when the record was already written for that
        column-set earlier in the current cycle.
        """
        key: BucketKey = (record.__class__, columns)
        if record.pk in self.flushed.get(key, ()):
            return False
        bucket = self.pending.get(key)
        if bucket is None:
            bucket = TouchBucket(model=record.__class__, columns=columns)
            self.pending[key] = bucket
        bucket.add(record)
        return True

    def has_pending(self) -> bool:
        return bool(self.pending)

    def drain(self) -> list[TouchBucket]:
        buckets = list(self.pending.values())
        self.pending = OrderedDict()
        return buckets

    def mark_flushed(self, bucket: TouchBucket) -> None:
        self.flushed.setdefault(bucket.key, set()).update(bucket.records)

    def was_flushed(self, record: "Model", columns: FrozenSet[str]) -> bool:
        return record.pk in self.flushed.get((record.__class__, columns), ())

    def clear(self) -> None:
        self.pending = OrderedDict()
        self.flushed = {}


class TouchStateRegistry:
    """
    Maps thread identity to its :class:`TouchState`.

    A state is created on the first scope entry of a thread and dropped again
    once its nesting returns to zero.
    """

    def __init__(self) -> None:
        self._states: Dict[int, TouchState] = {}
        self._lock = RLock()

    def current(self) -> Optional[TouchState]:
        with self._lock:
            return self._states.get(threading.get_ident())

    def enter(self) -> TouchState:
        ident = threading.get_ident()
        with self._lock:
            state = self._states.get(ident)
            if state is None:
                state = TouchState()
                self._states[ident] = state
            state.nesting += 1
            return state

    def exit(self, state: TouchState) -> None:
        ident = threading.get_ident()
        with self._lock:
            state.nesting -= 1
            if state.nesting <= 0:
                state.nesting = 0
                state.clear()
                if self._states.get(ident) is state:
                    del self._states[ident]

    def is_active(self) -> bool:
        state = self.current()
        return state is not None and state.nesting > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class SuppressionRegistry:
    """
    Per-thread stack of model classes whose touches are dropped.

    Suppressing a class also suppresses its subclasses, so suppressing the
    ``Model`` base silences every touch.
    """

    def __init__(self) -> None:
        self._stacks: Dict[int, List[type]] = {}
        self._lock = RLock()

    @contextmanager
    def suppress(self, model: type) -> Generator[None, None, None]:
        ident = threading.get_ident()
        with self._lock:
            self._stacks.setdefault(ident, []).append(model)
        try:
            yield
        finally:
            with self._lock:
                stack = self._stacks.get(ident, [])
                if stack:
                    stack.pop()
                if not stack:
                    self._stacks.pop(ident, None)

    def is_suppressed(self, model: type) -> bool:
        with self._lock:
            stack = list(self._stacks.get(threading.get_ident(), ()))
        return any(issubclass(model, suppressed) for suppressed in stack)
