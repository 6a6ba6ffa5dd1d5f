"""
SQL rendering for touch updates.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Sequence, Type

if TYPE_CHECKING:
    from ..core.model import Model
    from ..dialects.base import Dialect


def build_touch_update(
    dialect: "Dialect",
    model: Type["Model"],
    columns: Sequence[str],
    primary_keys: Sequence[Any],
    touched_at: datetime,
) -> tuple[str, list[Any]]:
    """
    Render ``UPDATE <table> SET <col> = ?, ... WHERE <pk> IN (...)``.

    Every column receives the same ``touched_at`` value.
    """
    if not columns:
        raise ValueError("A touch update needs at least one column.")
    if not primary_keys:
        raise ValueError("A touch update needs at least one primary key.")
    meta = model._meta
    pk_field = meta.primary_key
    if pk_field is None:
        raise ValueError(f"Model '{model.__name__}' lacks a primary key.")

    assignments = []
    params: list[Any] = []
    for name in columns:
        field = meta.get_field(name)
        assignments.append(
            f"{dialect.quote_identifier(field.column_name())} = {dialect.parameter_placeholder()}"
        )
        params.append(field.to_db(touched_at))
    params.extend(primary_keys)

    table = dialect.format_table(meta.table_name)
    where = dialect.membership_clause(pk_field.column_name(), len(primary_keys))
    return f"UPDATE {table} SET {', '.join(assignments)} WHERE {where}", params
