from datetime import datetime, timedelta, timezone

import pytest

from touch_models import ALL_MODELS, Owner, Pet
from touchorm.adapters import AdapterExecutionError, ConnectionConfig, SQLiteAdapter
from touchorm.hooks import hooks
from touchorm.persistence import Session
from touchorm.schema import SchemaBuilder
from touchorm.touching import TouchConfig


class RecordingAdapter(SQLiteAdapter):
    """
    SQLite adapter that records statements and can fail on demand.
    """

    def __init__(self) -> None:
        super().__init__()
        self.statements: list[tuple[str, list]] = []
        self.fail_on: str | None = None

    def execute(self, sql, params=None):
        if self.fail_on and self.fail_on in sql:
            raise AdapterExecutionError(f"Injected failure for: {sql}")
        self.statements.append((sql, list(params or ())))
        return super().execute(sql, params)

    def begin(self) -> None:
        self.statements.append(("BEGIN", []))
        super().begin()

    def commit(self) -> None:
        self.statements.append(("COMMIT", []))
        super().commit()

    def rollback(self) -> None:
        self.statements.append(("ROLLBACK", []))
        super().rollback()

    def updates(self) -> list[tuple[str, list]]:
        return [(sql, params) for sql, params in self.statements if sql.startswith("UPDATE")]

    def reset(self) -> None:
        self.statements.clear()


class SteppingClock:
    """
    Returns a new instant, one second later, on every call.
    """

    def __init__(self, start: datetime) -> None:
        self.current = start
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture(autouse=True)
def clear_hooks():
    hooks.clear()
    yield
    hooks.clear()


@pytest.fixture
def clock():
    return SteppingClock(datetime(2014, 7, 4, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def touch_config(clock):
    return TouchConfig(clock=clock)


@pytest.fixture
def session(tmp_path, adapter, touch_config):
    config = ConnectionConfig(url=f"sqlite:///{tmp_path / 'touching.db'}")
    session = Session(adapter, connection_config=config, touch_config=touch_config)
    builder = SchemaBuilder(session.dialect)
    with session.transaction():
        for statement in builder.create_all_sql(ALL_MODELS):
            session.execute(statement)
        owner = Owner(name="blackbeard")
        session.add(owner)
        session.flush()
        session.add(Pet(name="parrot", owner=owner))
        session.add(Pet(name="monkey", owner=owner))
    adapter.reset()
    yield session
    session.close()


@pytest.fixture
def owner(session):
    return session.get(Owner, id=1)


@pytest.fixture
def pet1(session, owner):
    return session.get(Pet, id=1)


@pytest.fixture
def pet2(session, owner):
    return session.get(Pet, id=2)
