import threading
from datetime import datetime, timezone

import pytest

from touchorm.core import DateTimeField, Model, StringField
from touchorm.dialects import SQLiteDialect
from touchorm.touching import (
    SuppressionRegistry,
    TouchState,
    TouchStateRegistry,
    build_touch_update,
)


class Ledger(Model):
    title = StringField()
    reviewed_at = DateTimeField()
    updated_at = DateTimeField()


class Receipt(Ledger):
    pass


class PyformatDialect(SQLiteDialect):
    param_style = "pyformat"

    def parameter_placeholder(self, position=None):
        return "%s"


STAMP = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_state_groups_records_by_model_and_columns():
    state = TouchState()
    first, second = Ledger(id=1), Ledger(id=2)

    assert state.add(first, frozenset({"updated_at"}))
    assert state.add(second, frozenset({"updated_at"}))
    assert state.add(first, frozenset({"updated_at"}))
    assert state.add(first, frozenset({"updated_at", "reviewed_at"}))

    buckets = state.drain()
    assert [len(bucket) for bucket in buckets] == [2, 1]
    assert buckets[0].primary_keys() == [1, 2]
    assert buckets[1].ordered_columns == ("updated_at", "reviewed_at")
    assert not state.has_pending()


def test_state_keeps_every_instance_of_a_record():
    state = TouchState()
    copy_a, copy_b = Ledger(id=7), Ledger(id=7)
    state.add(copy_a, frozenset({"updated_at"}))
    state.add(copy_b, frozenset({"updated_at"}))
    state.add(copy_a, frozenset({"updated_at"}))

    (bucket,) = state.drain()
    assert len(bucket) == 1
    assert bucket.instances() == [copy_a, copy_b]
    assert bucket.representatives() == [copy_a]


def test_flushed_records_are_not_queued_again():
    state = TouchState()
    record = Ledger(id=3)
    columns = frozenset({"updated_at"})
    state.add(record, columns)
    for bucket in state.drain():
        state.mark_flushed(bucket)

    assert state.was_flushed(record, columns)
    assert state.add(record, columns) is False
    assert state.add(record, frozenset({"updated_at", "reviewed_at"})) is True

    state.clear()
    assert not state.was_flushed(record, columns)
    assert not state.has_pending()


def test_subclasses_get_their_own_groups():
    state = TouchState()
    state.add(Ledger(id=1), frozenset({"updated_at"}))
    state.add(Receipt(id=1), frozenset({"updated_at"}))

    assert [bucket.model for bucket in state.drain()] == [Ledger, Receipt]


def test_registry_tracks_nesting_and_drops_idle_state():
    registry = TouchStateRegistry()
    assert registry.current() is None
    assert not registry.is_active()

    outer = registry.enter()
    inner = registry.enter()
    assert outer is inner
    assert outer.nesting == 2
    assert registry.is_active()

    registry.exit(inner)
    assert registry.is_active()
    registry.exit(outer)
    assert not registry.is_active()
    assert len(registry) == 0


def test_registry_state_is_per_thread():
    registry = TouchStateRegistry()
    registry.enter()
    seen = {}

    def worker():
        seen["active"] = registry.is_active()
        seen["state"] = registry.enter()
        registry.exit(seen["state"])

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()

    assert seen["active"] is False
    assert seen["state"] is not registry.current()


def test_suppression_covers_subclasses_and_unwinds():
    suppression = SuppressionRegistry()

    with suppression.suppress(Ledger):
        assert suppression.is_suppressed(Ledger)
        assert suppression.is_suppressed(Receipt)
        with suppression.suppress(Model):
            assert suppression.is_suppressed(Model)
        assert not suppression.is_suppressed(Model)

    assert not suppression.is_suppressed(Ledger)


def test_suppression_is_released_on_error():
    suppression = SuppressionRegistry()
    with pytest.raises(RuntimeError):
        with suppression.suppress(Receipt):
            raise RuntimeError("stop")
    assert not suppression.is_suppressed(Receipt)


def test_build_touch_update_for_single_record():
    sql, params = build_touch_update(SQLiteDialect(), Ledger, ("updated_at",), [4], STAMP)

    assert sql == 'UPDATE "ledger" SET "updated_at" = ? WHERE "id" = ?'
    assert params == [STAMP.isoformat(), 4]


def test_build_touch_update_renders_through_dialect():
    sql, params = build_touch_update(
        PyformatDialect(), Ledger, ("updated_at", "reviewed_at"), [1, 2, 5], STAMP
    )

    assert sql == (
        'UPDATE "ledger" SET "updated_at" = %s, "reviewed_at" = %s '
        'WHERE "id" IN (%s, %s, %s)'
    )
    assert params == [STAMP.isoformat(), STAMP.isoformat(), 1, 2, 5]


@pytest.mark.parametrize("columns, keys", [((), [1]), (("updated_at",), [])])
def test_build_touch_update_rejects_empty_input(columns, keys):
    with pytest.raises(ValueError):
        build_touch_update(SQLiteDialect(), Ledger, columns, keys, STAMP)


def test_bucket_discard_drops_a_record():
    state = TouchState()
    state.add(Ledger(id=1), frozenset({"updated_at"}))
    state.add(Ledger(id=2), frozenset({"updated_at"}))

    (bucket,) = state.drain()
    bucket.discard(1)
    bucket.discard(99)

    assert bucket.primary_keys() == [2]
    assert len(bucket) == 1
