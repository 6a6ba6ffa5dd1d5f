"""
Core building blocks for touchorm models and metadata handling.
"""

from .fields import (
    AutoField,
    BooleanField,
    DateTimeField,
    Field,
    IntegerField,
    StringField,
    utc_now,
)
from .model import Model, ModelConfigurationError, ModelMeta, ModelOptions
from .relations import ForeignKey, OneToOneField, RelationshipError

__all__ = [
    "AutoField",
    "BooleanField",
    "DateTimeField",
    "Field",
    "IntegerField",
    "Model",
    "ModelConfigurationError",
    "ModelMeta",
    "ModelOptions",
    "StringField",
    "ForeignKey",
    "OneToOneField",
    "RelationshipError",
    "utc_now",
]
