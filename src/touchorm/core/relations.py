"""
Relationship field implementations and registry utilities.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from .fields import Field

if TYPE_CHECKING:
    from ..persistence.session import Session
    from .model import Model


class RelationshipError(RuntimeError):
    pass


class RelatedField(Field):
    """
    Base class for relationship fields (FK, O2O).
    """

    relation_type = "many-to-one"

    def __init__(
        self,
        to: Type | str,
        *,
        on_delete: str = "CASCADE",
        db_type: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("db_type", db_type or "INTEGER")
        super().__init__(**kwargs)
        self.to = to
        self.on_delete = on_delete
        self.remote_model: Optional[Type] = to if isinstance(to, type) else None

    def resolve_model(self, model: Type) -> None:
        self.remote_model = model

    def require_remote_model(self) -> Type["Model"]:
        if self.remote_model is None:
            raise RelationshipError(
                f"Relation '{self.name}' targets unresolved model {self.to!r}."
            )
        return self.remote_model


class ForeignKey(RelatedField):
    """
    Many-to-one reference storing the remote primary key.

    ``touch=True`` touches the owner whenever the instance is touched, saved
    or deleted; ``touch="column"`` additionally sets that owner column.
    """

    relation_type = "many-to-one"

    def __init__(
        self,
        to: Type | str,
        *,
        on_delete: str = "CASCADE",
        touch: bool | str = False,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("nullable", False)
        super().__init__(to, on_delete=on_delete, **kwargs)
        self.touch = touch

    def __set__(self, instance, value):
        if hasattr(value, "pk"):
            value = value.pk
        super().__set__(instance, value)

    @property
    def touch_columns(self) -> tuple[str, ...]:
        if isinstance(self.touch, str):
            return (self.touch,)
        return ()

    def get_owner(self, instance: "Model", session: "Session") -> Optional["Model"]:
        owner_pk = getattr(instance, self.require_name())
        if owner_pk is None:
            return None
        remote = self.require_remote_model()
        return session.get(remote, **{remote._meta.primary_key.name: owner_pk})

    def touch_owner(self, instance: "Model", session: "Session") -> bool:
        owner = self.get_owner(instance, session)
        if owner is None:
            return False
        return session.touch(owner, *self.touch_columns)


class OneToOneField(ForeignKey):
    relation_type = "one-to-one"

    def __init__(self, to: Type | str, **kwargs: Any) -> None:
        kwargs.setdefault("unique", True)
        super().__init__(to, **kwargs)


class RelationRegistry:
    def __init__(self) -> None:
        self.models: Dict[str, Type] = {}
        self.pending_fields: List[Tuple[Type, RelatedField]] = []

    def register_model(self, model: Type) -> None:
        label = self._label(model)
        self.models[label] = model
        self._resolve_pending()

    def register_field(self, model: Type, field: RelatedField) -> None:
        target = self._resolve_target(field.to)
        if target is None:
            self.pending_fields.append((model, field))
            return
        field.resolve_model(target)

    def _resolve_pending(self) -> None:
        unresolved = []
        for model, field in self.pending_fields:
            target = self._resolve_target(field.to)
            if target is None:
                unresolved.append((model, field))
                continue
            field.resolve_model(target)
        self.pending_fields = unresolved

    def _resolve_target(self, target: Type | str) -> Optional[Type]:
        if isinstance(target, type):
            return target
        label = target.split(".")[-1]
        return self.models.get(label)

    def _label(self, model: Type) -> str:
        return model.__name__


relation_registry = RelationRegistry()
