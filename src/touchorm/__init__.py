"""
touchorm public package initialization.

A compact ORM whose sessions can defer and coalesce timestamp touches.
"""

from .core.model import Model, ModelConfigurationError  # noqa: F401
from .core.fields import (
    AutoField,
    BooleanField,
    DateTimeField,
    IntegerField,
    StringField,
)  # noqa: F401
from .core.relations import ForeignKey, OneToOneField  # noqa: F401
from .hooks import hooks  # noqa: F401
from .persistence import Session  # noqa: F401
from .schema import SchemaBuilder  # noqa: F401
from .touching import (  # noqa: F401
    DetachedInstanceError,
    TouchConfig,
    TouchCycleError,
    TouchError,
    TouchFlushError,
    UnknownAttributeError,
)

__all__ = [
    "Model",
    "AutoField",
    "BooleanField",
    "DateTimeField",
    "IntegerField",
    "StringField",
    "ForeignKey",
    "OneToOneField",
    "ModelConfigurationError",
    "Session",
    "SchemaBuilder",
    "TouchConfig",
    "TouchError",
    "TouchFlushError",
    "TouchCycleError",
    "UnknownAttributeError",
    "DetachedInstanceError",
    "hooks",
]
