import pytest

from touch_models import Owner, Pet, fetch_timestamp, summarize_updates
from touchorm.adapters import AdapterExecutionError
from touchorm.touching import (
    DetachedInstanceError,
    TouchConfig,
    TouchCycleError,
    TouchError,
    TouchFlushError,
    UnknownAttributeError,
)


def test_unknown_attribute_is_rejected_at_call_time(session, adapter, owner):
    with session.deferred_touch():
        with pytest.raises(UnknownAttributeError) as excinfo:
            owner.touch("bogus_at")

    assert isinstance(excinfo.value, KeyError)
    assert "bogus_at" in str(excinfo.value)
    assert adapter.updates() == []


def test_unknown_attribute_is_rejected_even_when_suppressed(session, owner):
    with session.no_touching():
        with pytest.raises(UnknownAttributeError):
            owner.touch("bogus_at")


def test_touching_detached_instance_raises():
    with pytest.raises(DetachedInstanceError):
        Owner(id=5, name="stray").touch()


def test_touching_unsaved_record_raises(session):
    with pytest.raises(TouchError):
        session.touch(Owner(name="new"))


def test_work_exception_still_flushes_queued_touches(session, adapter, owner):
    with pytest.raises(RuntimeError, match="boom"):
        with session.deferred_touch():
            owner.touch()
            raise RuntimeError("boom")

    assert summarize_updates(adapter.statements) == [("owner", ("updated_at",), [1])]
    assert not session.is_deferred_touch_active()


def test_failed_write_rolls_back_the_whole_cycle(session, adapter, owner, pet1):
    owner_before = owner.updated_at
    adapter.fail_on = 'UPDATE "owner"'

    with pytest.raises(TouchFlushError) as excinfo:
        with session.deferred_touch():
            pet1.touch()

    assert isinstance(excinfo.value.__cause__, AdapterExecutionError)
    assert adapter.statements[-1] == ("ROLLBACK", [])
    assert pet1.updated_at is None
    assert not pet1.is_dirty()
    assert owner.updated_at == owner_before
    assert fetch_timestamp(session, Pet, 1, "updated_at") is None
    assert not session.is_deferred_touch_active()


def test_state_is_empty_after_a_failed_cycle(session, adapter, owner, pet1):
    adapter.fail_on = 'UPDATE "owner"'
    with pytest.raises(TouchFlushError):
        with session.deferred_touch():
            pet1.touch()

    adapter.fail_on = None
    adapter.reset()
    with session.deferred_touch():
        owner.touch("sad_at")

    assert summarize_updates(adapter.statements) == [("owner", ("updated_at", "sad_at"), [1])]


def test_callback_errors_propagate_unwrapped(session, adapter, pet1):
    def explode(instance, **context):
        raise LookupError("callback failed")

    Pet.register_hook("after_touch", explode)

    with pytest.raises(LookupError, match="callback failed"):
        with session.deferred_touch():
            pet1.touch()

    assert pet1.updated_at is None
    assert adapter.statements[-1] == ("ROLLBACK", [])


def test_flush_error_keeps_the_work_error_as_context(session, adapter, pet1):
    adapter.fail_on = 'UPDATE "pet"'

    with pytest.raises(TouchFlushError) as excinfo:
        with session.deferred_touch():
            pet1.touch()
            raise RuntimeError("work failed")

    chain = []
    error = excinfo.value
    while error is not None:
        chain.append(error)
        error = error.__cause__ or error.__context__
    assert any(isinstance(item, RuntimeError) and str(item) == "work failed" for item in chain)


@pytest.mark.parametrize("touch_config", [TouchConfig(max_passes=3)])
def test_runaway_callbacks_hit_the_pass_limit(session, adapter, touch_config, owner):
    owner_before = owner.updated_at

    def spawn(instance, *, session, **context):
        session.touch(Owner(id=instance.pk + 1))

    Owner.register_hook("after_touch", spawn)

    with pytest.raises(TouchCycleError):
        with session.deferred_touch():
            owner.touch()

    assert len(adapter.updates()) == 3
    assert adapter.statements[-1] == ("ROLLBACK", [])
    assert owner.updated_at == owner_before
    assert not session.is_deferred_touch_active()


def test_touch_config_validation():
    with pytest.raises(TouchError):
        TouchConfig(max_passes=0)
    with pytest.raises(TouchError):
        TouchConfig(clock="not callable")
