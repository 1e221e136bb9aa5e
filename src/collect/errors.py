"""Exceptions raised by Collect operations."""


class CollectError(Exception):
    """Base class for errors raised by the collect package."""


class TypeMismatchError(CollectError, TypeError):
    """A value cannot take part in a numeric aggregate."""


class SerializationError(CollectError, ValueError):
    """A collection cannot be encoded as JSON."""
