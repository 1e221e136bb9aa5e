"""Collect: an ordered key-value collection with chainable functional operations."""

import logging

from collect.core import Collect, KeyType, ValueType
from collect.encoding import JsonOptions
from collect.errors import CollectError, SerializationError, TypeMismatchError
from collect.ops import collection

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Collect",
    "KeyType",
    "ValueType",
    "JsonOptions",
    "CollectError",
    "SerializationError",
    "TypeMismatchError",
    "collection",
]
