"""
Session management coordinating adapters, unit of work, identity map and touches.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, ContextManager, FrozenSet, Iterable, Optional, Type, TypeVar

from ..adapters.base import ConnectionConfig, DatabaseAdapter
from ..core.model import Model
from ..dialects.base import Dialect
from ..dialects.sqlite import SQLiteDialect
from ..utils import get_logger, redact_params, time_call
from .identity_map import IdentityMap
from .transaction import TransactionManager
from .unit_of_work import UnitOfWork, UnitOfWorkSnapshot
from ..touching import (
    DeferredTouchScope,
    DeferredToucher,
    ImmediateToucher,
    SuppressionRegistry,
    TouchConfig,
    Toucher,
    TouchFlusher,
    TouchState,
    TouchStateRegistry,
    resolve_touch_columns,
)

T = TypeVar("T")


class Session:
    """
    Coordinates persistence operations for a set of model instances.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        connection_config: Optional[ConnectionConfig] = None,
        autocommit: bool = False,
        touch_config: Optional[TouchConfig] = None,
    ) -> None:
        self.adapter = adapter
        self.autocommit = autocommit
        self.dialect: Dialect = adapter.dialect if hasattr(adapter, "dialect") else SQLiteDialect()
        self.connection_config = connection_config or ConnectionConfig(url="sqlite:///:memory:")
        self.identity_map = IdentityMap()
        self.unit_of_work = UnitOfWork()
        self.transaction_manager = TransactionManager(adapter, self.dialect)
        self._uow_snapshots: list[UnitOfWorkSnapshot] = []
        self.touch_config = touch_config or TouchConfig()
        self._touch_states = TouchStateRegistry()
        self._suppression = SuppressionRegistry()
        self._touch_scope = DeferredTouchScope(
            self._touch_states, TouchFlusher(self, self.touch_config)
        )
        from ..hooks import hooks

        self.hooks = hooks
        self.logger = get_logger("persistence.session")
        self.adapter.connect(self.connection_config)

    # ------------------------------------------------------------------ #
    # Context management
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "Session":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type:
                self.rollback()
            else:
                self.commit()
        finally:
            self.close()

    # ------------------------------------------------------------------ #
    def begin(self) -> None:
        self.transaction_manager.begin()
        self._uow_snapshots.append(self.unit_of_work.snapshot())

    def commit(self) -> None:
        if self.transaction_manager.depth == 0:
            self.begin()
        self.flush()
        self.transaction_manager.commit()
        if self._uow_snapshots:
            self._uow_snapshots.pop()
        if self.transaction_manager.depth == 0:
            self.unit_of_work.clear()
            self.hooks.fire("after_commit", None, session=self)

    def rollback(self) -> None:
        self.transaction_manager.rollback()
        if self._uow_snapshots:
            self.unit_of_work.restore(self._uow_snapshots.pop())
        else:
            self.unit_of_work.clear()

    def close(self) -> None:
        self.adapter.close()
        for instance in self.identity_map.clear():
            if instance._session is self:
                instance._session = None
        self._uow_snapshots.clear()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def add(self, instance: Model) -> None:
        self.unit_of_work.register_new(instance)
        if self.autocommit:
            self.commit()

    def delete(self, instance: Model) -> None:
        self.unit_of_work.register_deleted(instance)
        if self.autocommit:
            self.commit()

    def mark_dirty(self, instance: Model) -> None:
        self.unit_of_work.register_dirty(instance)

    def attach(self, instance: Model) -> Model:
        """
        Bind ``instance`` to this session and its identity map.
        """
        instance._session = self
        self.identity_map.add(instance)
        return instance

    # ------------------------------------------------------------------ #
    def flush(self) -> None:
        self.unit_of_work.collect_dirty(self.identity_map.values())
        for instance in list(self.unit_of_work.new):
            self._persist_new(instance)
            self.unit_of_work.new.discard(instance)
        for instance in list(self.unit_of_work.dirty):
            self._persist_dirty(instance)
            self.unit_of_work.dirty.discard(instance)
        for instance in list(self.unit_of_work.deleted):
            self._persist_deleted(instance)
            self.unit_of_work.deleted.discard(instance)

    # ------------------------------------------------------------------ #
    def get(self, model: Type[Model], **filters: Any) -> Optional[Model]:
        if len(filters) != 1:
            raise ValueError("Session.get currently supports exactly one filter.")
        field_name, value = next(iter(filters.items()))

        if field_name == model._meta.primary_key.name:
            cached = self.identity_map.get(model, value)
            if cached is not None:
                return cached

        field = model._meta.get_field(field_name)
        quoted_column = self.dialect.quote_identifier(field.column_name())
        fields = list(model._meta.get_fields())
        select_list = ", ".join(self.dialect.quote_identifier(f.column_name()) for f in fields)
        sql = (
            f"SELECT {select_list} FROM {self.dialect.format_table(model._meta.table_name)} "
            f"WHERE {quoted_column} = {self.dialect.parameter_placeholder()} "
            f"{self.dialect.limit_clause(1, None)}"
        )
        row = self.execute(sql, (field.to_db(value),)).fetchone()
        if not row:
            return None
        instance = model(**{f.name: row[index] for index, f in enumerate(fields)})
        instance.mark_clean()
        cached = self.identity_map.get(model, instance.pk)
        if cached is not None:
            return cached
        return self.attach(instance)

    def execute(self, sql: str, params: Iterable[Any] | None = None):
        param_list = list(params or [])
        with time_call("session.execute", self.logger, sql=sql, params=redact_params(param_list), threshold_ms=200):
            return self.adapter.execute(sql, param_list)

    # ------------------------------------------------------------------ #
    @contextmanager
    def transaction(self):
        """
        Provide nested transaction context with savepoint support.
        """

        self.begin()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        else:
            self.commit()

    # ------------------------------------------------------------------ #
    # Touching
    # ------------------------------------------------------------------ #
    def touch(self, instance: Model, *names: str) -> bool:
        """
        Touch ``instance``: set its timestamp fields (plus ``names``) to now.

        Returns ``False`` when touches are suppressed for the instance's
        model, ``True`` otherwise. Inside :meth:`deferred_touch` the write is
        queued until the outermost scope exits.
        """
        columns = resolve_touch_columns(instance, names)
        if self.is_touch_suppressed(instance.__class__):
            self.logger.debug(
                "Touch suppressed for %s(pk=%r)", instance.__class__.__name__, instance.pk
            )
            return False
        return self._toucher().touch(instance, columns)

    def deferred_touch(self) -> ContextManager[TouchState]:
        """
        Queue touches issued inside the block and apply them, coalesced, when
        the outermost block exits.

        Example::

            with session.deferred_touch():
                owner.touch()
                owner.touch()  # one UPDATE when the block exits
        """
        return self._touch_scope.scope()

    def with_deferred_touch(self, work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return self._touch_scope.run(work, *args, **kwargs)

    def is_deferred_touch_active(self, model: Optional[Type[Model]] = None) -> bool:
        # Scopes are not model specific; ``model`` is accepted for symmetry
        # with is_touch_suppressed.
        return self._touch_scope.is_active()

    def no_touching(self, model: Optional[Type[Model]] = None) -> ContextManager[None]:
        """
        Drop every touch on ``model`` (or on all models) issued inside the block.
        """
        return self._suppression.suppress(model or Model)

    def is_touch_suppressed(self, model: Type[Model]) -> bool:
        return self._suppression.is_suppressed(model)

    def run_touch_callbacks(
        self, instance: Model, columns: FrozenSet[str], touched_at: datetime
    ) -> None:
        self.hooks.fire(
            "after_touch", instance, session=self, columns=columns, touched_at=touched_at
        )
        self._touch_owners(instance)

    def _toucher(self) -> Toucher:
        state = self._touch_states.current()
        if state is None or state.nesting == 0:
            return ImmediateToucher(self)
        return DeferredToucher(state)

    def _touch_owners(self, instance: Model) -> None:
        for relation in instance._meta.touch_relations:
            relation.touch_owner(instance, self)

    # ------------------------------------------------------------------ #
    # Persistence helpers
    # ------------------------------------------------------------------ #
    def _persist_new(self, instance: Model) -> None:
        self.hooks.fire("before_save", instance, session=self, created=True)
        table = self.dialect.format_table(instance._meta.table_name)
        columns = []
        params = []
        for field in instance._meta.get_fields():
            if field.primary_key and getattr(instance, field.name, None) is None:
                continue
            columns.append(self.dialect.quote_identifier(field.column_name()))
            params.append(field.to_db(getattr(instance, field.name, None)))

        placeholders = ", ".join(self.dialect.parameter_placeholder() for _ in columns)
        columns_sql = ", ".join(columns)
        sql = f"INSERT INTO {table} ({columns_sql}) VALUES ({placeholders})"
        cursor = self.execute(sql, params)

        pk_field = instance._meta.primary_key
        if pk_field and getattr(instance, pk_field.name, None) is None:
            pk_value = self.adapter.last_insert_id(cursor, instance._meta.table_name, pk_field.name)
            setattr(instance, pk_field.name, pk_value)

        instance.mark_clean()
        self.attach(instance)
        self.hooks.fire("after_save", instance, session=self, created=True)
        self._touch_owners(instance)

    def _persist_dirty(self, instance: Model) -> None:
        self.hooks.fire("before_save", instance, session=self, created=False)
        pk_field = instance._meta.primary_key
        if pk_field is None:
            raise ValueError(f"Model '{instance.__class__.__name__}' lacks a primary key.")
        pk_value = getattr(instance, pk_field.name)
        if pk_value is None:
            raise ValueError("Dirty instance missing primary key value.")

        set_clauses = []
        params = []
        for name in instance.changed_fields():
            field = instance._meta.get_field(name)
            if field.primary_key:
                continue
            set_clauses.append(
                f"{self.dialect.quote_identifier(field.column_name())} = {self.dialect.parameter_placeholder()}"
            )
            params.append(field.to_db(getattr(instance, name)))

        if not set_clauses:
            return

        table = self.dialect.format_table(instance._meta.table_name)
        set_sql = ", ".join(set_clauses)
        pk_clause = f"{self.dialect.quote_identifier(pk_field.column_name())} = {self.dialect.parameter_placeholder()}"
        params.append(pk_value)
        sql = f"UPDATE {table} SET {set_sql} WHERE {pk_clause}"
        self.execute(sql, params)
        instance.mark_clean()
        self.hooks.fire("after_save", instance, session=self, created=False)
        self._touch_owners(instance)

    def _persist_deleted(self, instance: Model) -> None:
        pk_field = instance._meta.primary_key
        if pk_field is None:
            raise ValueError(f"Model '{instance.__class__.__name__}' lacks a primary key.")
        pk_value = getattr(instance, pk_field.name)
        if pk_value is None:
            return
        self.hooks.fire("before_delete", instance, session=self)
        table = self.dialect.format_table(instance._meta.table_name)
        pk_clause = f"{self.dialect.quote_identifier(pk_field.column_name())} = {self.dialect.parameter_placeholder()}"
        sql = f"DELETE FROM {table} WHERE {pk_clause}"
        self.execute(sql, (pk_value,))
        self.identity_map.remove(instance)
        self.hooks.fire("after_delete", instance, session=self)
        self._touch_owners(instance)
