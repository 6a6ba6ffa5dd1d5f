"""
Flush engine applying queued touches as batched updates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from ..adapters.base import AdapterError
from ..persistence.transaction import TransactionError
from ..utils import get_logger, time_call
from .config import TouchConfig
from .errors import TouchCycleError, TouchFlushError
from .state import TouchBucket, TouchState
from .statements import build_touch_update
from .touchers import TouchSnapshot, apply_touch_values

if TYPE_CHECKING:
    from ..persistence.session import Session


class TouchFlusher:
    """
    Drains a :class:`TouchState` to a fixed point inside one transaction.

    Each pass drains every pending bucket and issues one ``UPDATE`` per
    ``(model, column-set)``. Callbacks fired for the touched records may queue
    further touches, which the next pass picks up. In-memory values written
    during the cycle are restored if the cycle fails.
    """

    def __init__(self, session: "Session", config: TouchConfig) -> None:
        self.session = session
        self.config = config
        self.logger = get_logger("touching.flush")

    def flush(self, state: TouchState) -> int:
        """
        Apply every pending touch; return the number of statements issued.
        """
        if not state.has_pending():
            state.clear()
            return 0
        snapshots: List[TouchSnapshot] = []
        statements = 0
        passes = 0
        try:
            with time_call("touching.flush", self.logger, threshold_ms=self.config.slow_flush_ms):
                with self.session.transaction_manager.transaction():
                    while state.has_pending():
                        passes += 1
                        if passes > self.config.max_passes:
                            raise TouchCycleError(
                                f"Touch callbacks were still queueing work after "
                                f"{self.config.max_passes} passes"
                            )
                        for bucket in state.drain():
                            statements += self._apply_bucket(bucket, state, snapshots)
        except Exception as exc:
            for snapshot in reversed(snapshots):
                snapshot.restore()
            self.logger.warning(
                "Deferred touch cycle rolled back after %d pass(es): %s", passes, exc
            )
            if isinstance(exc, (AdapterError, TransactionError)):
                raise TouchFlushError("Deferred touches could not be written; none were applied.") from exc
            raise
        finally:
            state.clear()

        if statements:
            self.logger.debug(
                "Deferred touch cycle applied %d statement(s) in %d pass(es)", statements, passes
            )
        return statements

    def _apply_bucket(
        self, bucket: TouchBucket, state: TouchState, snapshots: List[TouchSnapshot]
    ) -> int:
        session = self.session
        # A cascade may have queued a record whose bucket was still waiting
        # in the same pass; it has been written since.
        for record in bucket.representatives():
            if state.was_flushed(record, bucket.columns):
                bucket.discard(record.pk)
        if not bucket:
            return 0
        touched_at = self.config.clock()
        columns = bucket.ordered_columns
        issued = 0
        if columns:
            sql, params = build_touch_update(
                session.dialect, bucket.model, columns, bucket.primary_keys(), touched_at
            )
            session.execute(sql, params)
            issued = 1
            for record in bucket.instances():
                snapshots.append(apply_touch_values(record, columns, touched_at))
            self.logger.debug(
                "Touched %d %s row(s) setting %s",
                len(bucket),
                bucket.model.__name__,
                ", ".join(columns),
            )
        state.mark_flushed(bucket)
        for record in bucket.representatives():
            session.run_touch_callbacks(record, bucket.columns, touched_at)
        return issued
