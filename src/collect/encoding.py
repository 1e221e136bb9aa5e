"""JSON encoding for Collect instances."""

import dataclasses
import enum
import json
import logging
from typing import Any, Dict, List, Mapping, Set, Union

import jax.numpy as jnp
import numpy as np

from collect.errors import SerializationError

logger = logging.getLogger(__name__)

JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]


class JsonOptions(enum.IntFlag):
    """Flags accepted by ``Collect.to_json``."""

    NONE = 0
    PRETTY_PRINT = 1
    FORCE_OBJECT = 2
    SORT_KEYS = 4


def _is_array(value: Any) -> bool:
    return isinstance(value, (jnp.ndarray, np.ndarray))


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(value, "_fields")


def _is_dense(mapping: Mapping[Any, Any]) -> bool:
    """Return True when the keys are exactly ``0..n-1`` in insertion order."""
    for position, key in enumerate(mapping):
        if type(key) is not int or key != position:
            return False
    return True


def _object_key(key: Any) -> str:
    if isinstance(key, np.generic):
        key = key.item()
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(key)
    raise SerializationError(f"Cannot use {type(key).__name__} as a JSON object key.")


class _Encoder:
    """Converts a value tree into JSON-compatible Python objects."""

    def __init__(self, options: JsonOptions, collect_type: type) -> None:
        self.force_object = bool(options & JsonOptions.FORCE_OBJECT)
        self.collect_type = collect_type
        self._active: Set[int] = set()

    def convert(self, value: Any) -> JsonValue:
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, np.generic):
            if isinstance(value, np.void) and value.dtype.names:
                return self._container(value, lambda: {name: value[name] for name in value.dtype.names})
            return value.item()
        if _is_array(value):
            return self._sequence(np.asarray(value).tolist())
        if isinstance(value, self.collect_type):
            return self._container(value, value.all)
        if isinstance(value, Mapping):
            return self._container(value, lambda: value)
        if _is_namedtuple(value):
            return self._container(value, value._asdict)
        if isinstance(value, (list, tuple)):
            return self._container(value, lambda: dict(enumerate(value)))
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return self._container(
                value, lambda: {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
            )
        raise SerializationError(f"Object of type {type(value).__name__} is not JSON serializable.")

    def _sequence(self, items: List[Any]) -> JsonValue:
        # tolist() output is acyclic, so no cycle tracking here.
        if self.force_object:
            return {str(i): self.convert(v) for i, v in enumerate(items)}
        return [self.convert(v) for v in items]

    def _container(self, value: Any, as_mapping: Any) -> JsonValue:
        marker = id(value)
        if marker in self._active:
            raise SerializationError("Circular reference detected.")
        self._active.add(marker)
        try:
            mapping = as_mapping()
            if not self.force_object and _is_dense(mapping):
                return [self.convert(v) for v in mapping.values()]
            return {_object_key(k): self.convert(v) for k, v in mapping.items()}
        finally:
            self._active.discard(marker)


def encode(items: Mapping[Any, Any], options: JsonOptions = JsonOptions.NONE) -> str:
    """
    Encode a backing mapping as JSON text.

    Args:
        items: The mapping to encode. Dense ``0..n-1`` keys produce an array.
        options: ``JsonOptions`` flags (plain ints are accepted).

    Returns:
        JSON text with non-ASCII characters left unescaped.

    Raises:
        SerializationError: On cycles, non-finite floats or unsupported types.
    """
    from collect.core import Collect

    options = JsonOptions(options)
    try:
        tree = _Encoder(options, Collect).convert(items)
        if options & JsonOptions.PRETTY_PRINT:
            return json.dumps(
                tree,
                ensure_ascii=False,
                allow_nan=False,
                indent=4,
                sort_keys=bool(options & JsonOptions.SORT_KEYS),
            )
        return json.dumps(
            tree,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            sort_keys=bool(options & JsonOptions.SORT_KEYS),
        )
    except SerializationError as exc:
        logger.debug("JSON encoding failed: %s", exc)
        raise
    except (TypeError, ValueError) as exc:
        logger.debug("JSON encoding failed: %s", exc)
        raise SerializationError(str(exc)) from exc
