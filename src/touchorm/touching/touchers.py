"""
Immediate and deferred touch strategies.

``Session.touch`` picks :class:`DeferredToucher` while a deferred-touch scope
is open on the calling thread and :class:`ImmediateToucher` otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable, Protocol, Tuple

from ..utils import get_logger
from .errors import TouchError, UnknownAttributeError
from .state import TouchState, ordered_columns
from .statements import build_touch_update

if TYPE_CHECKING:
    from ..core.model import Model
    from ..persistence.session import Session

_MISSING = object()


def resolve_touch_columns(record: "Model", names: Iterable[str]) -> FrozenSet[str]:
    """
    Validate ``names`` and union them with the model's timestamp fields.
    """
    meta = record._meta
    extra = []
    for name in names:
        if name not in meta.fields:
            raise UnknownAttributeError(
                f"Cannot touch unknown attribute '{name}' on model '{record.__class__.__name__}'"
            )
        extra.append(name)
    if record.pk is None:
        raise TouchError(f"Cannot touch a new {record.__class__.__name__} record without a primary key")
    return frozenset(meta.timestamp_fields) | frozenset(extra)


@dataclass
class TouchSnapshot:
    """
    Attribute values of a record before a touch wrote to it.
    """

    record: "Model"
    previous: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)

    def restore(self) -> None:
        for name, (value, initial) in self.previous.items():
            if value is _MISSING:
                self.record._field_values.pop(name, None)
            else:
                self.record._field_values[name] = value
            if initial is _MISSING:
                self.record._initial_state.pop(name, None)
            else:
                self.record._initial_state[name] = initial


def apply_touch_values(record: "Model", columns: Iterable[str], touched_at: datetime) -> TouchSnapshot:
    """
    Write ``touched_at`` to ``columns`` in memory and mark them clean.
    """
    snapshot = TouchSnapshot(record)
    for name in columns:
        snapshot.previous[name] = (
            record._field_values.get(name, _MISSING),
            record._initial_state.get(name, _MISSING),
        )
        setattr(record, name, touched_at)
    record.mark_clean(snapshot.previous)
    return snapshot


class Toucher(Protocol):
    def touch(self, record: "Model", columns: FrozenSet[str]) -> bool: ...


class ImmediateToucher:
    """
    Writes the touch right away in its own transaction (or savepoint).
    """

    def __init__(self, session: "Session") -> None:
        self.session = session
        self.logger = get_logger("touching.immediate")

    def touch(self, record: "Model", columns: FrozenSet[str]) -> bool:
        session = self.session
        touched_at = session.touch_config.clock()
        ordered = ordered_columns(record.__class__, columns)
        if ordered:
            sql, params = build_touch_update(
                session.dialect, record.__class__, ordered, [record.pk], touched_at
            )
            with session.transaction_manager.transaction():
                session.execute(sql, params)
            apply_touch_values(record, ordered, touched_at)
            self.logger.debug(
                "Touched %s(pk=%r) setting %s", record.__class__.__name__, record.pk, ", ".join(ordered)
            )
        session.run_touch_callbacks(record, columns, touched_at)
        return True


class DeferredToucher:
    """
    Queues the touch into the current thread's pending state.
    """

    def __init__(self, state: TouchState) -> None:
        self.state = state
        self.logger = get_logger("touching.deferred")

    def touch(self, record: "Model", columns: FrozenSet[str]) -> bool:
        if not self.state.add(record, columns):
            self.logger.debug(
                "Skipped %s(pk=%r); already touched for %s in this cycle",
                record.__class__.__name__,
                record.pk,
                sorted(columns),
            )
        return True
