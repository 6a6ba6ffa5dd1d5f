"""
Model base classes and metadata orchestration for touchorm.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Type, TypeVar

from ..utils import camel_to_snake
from .fields import AutoField, Field
from .relations import ForeignKey, RelatedField, relation_registry

if TYPE_CHECKING:
    from ..persistence.session import Session

DEFAULT_TIMESTAMP_FIELDS = ("updated_at", "updated_on")


class ModelConfigurationError(Exception):
    """Raised when a model class is misconfigured."""


@dataclass
class ModelOptions:
    """
    Container for model metadata calculated by :class:`ModelMeta`.
    """

    model: Type["Model"]
    table_name: str = ""
    abstract: bool = False
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    primary_key: Optional[Field] = None
    timestamp_fields: tuple[str, ...] = ()
    touch_relations: list[ForeignKey] = field(default_factory=list)

    def add_field(self, field_obj: Field) -> None:
        if field_obj.name in self.fields:
            raise ModelConfigurationError(
                f"Duplicate field name '{field_obj.name}' on model '{self.model.__name__}'"
            )
        self.fields[field_obj.name] = field_obj
        if field_obj.primary_key:
            if self.primary_key and self.primary_key is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple primary keys defined on model '{self.model.__name__}'"
                )
            self.primary_key = field_obj

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown field '{name}' on model '{self.model.__name__}'") from exc

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()

    def resolve_timestamp_fields(self, declared: Optional[Iterable[str]]) -> None:
        if declared is None:
            self.timestamp_fields = tuple(
                name for name in DEFAULT_TIMESTAMP_FIELDS if name in self.fields
            )
            return
        names = tuple(declared)
        for name in names:
            if name not in self.fields:
                raise ModelConfigurationError(
                    f"Timestamp field '{name}' is not a field of model '{self.model.__name__}'"
                )
        self.timestamp_fields = names


TModel = TypeVar("TModel", bound="Model")


class ModelMeta(type):
    """
    Metaclass responsible for collecting fields and establishing metadata.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "ModelMeta":
        # Allow creation of the base Model class without processing fields.
        if name == "Model" and bases == (object,):
            return super().__new__(mcls, name, bases, attrs)

        declared_fields: Dict[str, Field] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, Field):
                declared_fields[attr_name] = attrs.pop(attr_name)

        cls = super().__new__(mcls, name, bases, attrs)

        meta = getattr(cls, "Meta", None)
        table_name = camel_to_snake(name)
        abstract = False
        timestamp_fields = None

        if meta:
            table_name = getattr(meta, "table", table_name)
            abstract = getattr(meta, "abstract", False)
            timestamp_fields = getattr(meta, "timestamp_fields", None)

        cls._meta = ModelOptions(model=cls, table_name=table_name, abstract=abstract)

        sorted_fields = sorted(
            declared_fields.items(), key=lambda item: item[1].creation_counter
        )
        for attr_name, field_obj in sorted_fields:
            field_obj.contribute_to_class(cls, attr_name)
            cls._meta.add_field(field_obj)
            if isinstance(field_obj, RelatedField):
                relation_registry.register_field(cls, field_obj)
            if isinstance(field_obj, ForeignKey) and field_obj.touch:
                cls._meta.touch_relations.append(field_obj)

        if not cls._meta.primary_key and not cls._meta.abstract:
            if "id" in cls._meta.fields:
                raise ModelConfigurationError(
                    f"Model '{cls.__name__}' defines a field named 'id' but no primary key. "
                    "Either set primary_key=True on that field or define a different name."
                )
            auto_field = AutoField()
            auto_field.contribute_to_class(cls, "id")
            cls._meta.add_field(auto_field)
            cls._meta.fields = OrderedDict(
                sorted(
                    cls._meta.fields.items(),
                    key=lambda item: (0 if item[0] == "id" else 1, item[1].creation_counter),
                )
            )

        cls._meta.resolve_timestamp_fields(timestamp_fields)
        relation_registry.register_model(cls)

        return cls


class Model(metaclass=ModelMeta):
    """
    Base model providing data container functionality.
    Persistence operations are supplied by the session.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._field_values: Dict[str, Any] = {}
        self._initial_state: Dict[str, Any] = {}
        self._session: Optional["Session"] = None

        for field in self._meta.get_fields():
            if field.primary_key and field.has_default is False and field.name not in kwargs:
                # Primary key may be assigned by database later.
                continue

            if field.name in kwargs:
                setattr(self, field.name, kwargs[field.name])
            elif field.has_default:
                default_value = field.get_default()
                if default_value is not None:
                    setattr(self, field.name, default_value)

        # Retain snapshot for simple dirty tracking
        self._initial_state = dict(self._field_values)

    def __repr__(self) -> str:
        field_parts = ", ".join(
            f"{field.name}={repr(self._field_values.get(field.name))}"
            for field in self._meta.get_fields()
            if field.name in self._field_values
        )
        return f"<{self.__class__.__name__} {field_parts}>"

    @property
    def pk(self) -> Any:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Model '{self.__class__.__name__}' does not define a primary key."
            )
        return getattr(self, self._meta.primary_key.name)

    @property
    def session(self) -> Optional["Session"]:
        return self._session

    # Dirty tracking ----------------------------------------------------
    def changed_fields(self) -> list[str]:
        return [
            name
            for name, value in self._field_values.items()
            if value != self._initial_state.get(name)
        ]

    def is_dirty(self) -> bool:
        return bool(self.changed_fields())

    def mark_clean(self, names: Optional[Iterable[str]] = None) -> None:
        """
        Treat the current values of ``names`` (all fields by default) as persisted.
        """
        if names is None:
            self._initial_state = dict(self._field_values)
            return
        for name in names:
            self._initial_state[name] = self._field_values.get(name)

    # Touching ------------------------------------------------------------
    def touch(self, *names: str) -> bool:
        """
        Set the timestamp fields (plus ``names``) to the current time.

        Inside ``Session.deferred_touch()`` the write is queued and coalesced
        with other touches; otherwise it happens immediately.
        """
        from ..touching.errors import DetachedInstanceError

        if self._session is None:
            raise DetachedInstanceError(
                f"{self.__class__.__name__} instance is not attached to a session; "
                "use Session.touch() or load it through a session first."
            )
        return self._session.touch(self, *names)

    @classmethod
    def register_hook(cls, event: str, handler) -> None:
        from ..hooks import hooks

        hooks.register(event, handler, model=cls)
