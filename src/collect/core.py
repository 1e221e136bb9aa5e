"""Core Collect implementation."""

from __future__ import annotations

import dataclasses
import functools
import inspect
import logging
import numbers
import re
from collections.abc import ItemsView
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import jax.numpy as jnp
import numpy as np

from collect.encoding import JsonOptions, _is_array, encode
from collect.errors import TypeMismatchError

logger = logging.getLogger(__name__)

KeyType = Union[int, str]
ValueType = Any

_NUMERIC = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _is_numeric(value: Any) -> bool:
    if isinstance(value, numbers.Number):
        return True
    if isinstance(value, np.generic) or _is_array(value):
        return value.dtype == bool or np.issubdtype(value.dtype, np.number)
    return False


def _positional_limit(fn: Callable[..., Any], fallback: int) -> Optional[int]:
    """Number of positional arguments ``fn`` accepts, or None for unlimited.

    Builtins without an inspectable signature get ``fallback``.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return fallback
    count = 0
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return None
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


def _adapt(fn: Callable[..., Any], fallback: int = 1) -> Callable[..., Any]:
    """Wrap ``fn`` so that surplus trailing arguments are dropped."""
    limit = _positional_limit(fn, fallback)
    if limit is None:
        return fn

    def call(*args: Any) -> Any:
        return fn(*args[:limit])

    return call


def _resolve_field(record: Any, field: Any) -> Tuple[bool, Any]:
    """Look up ``field`` on a record-shaped value.

    Returns ``(found, value)``. Unsupported shapes are never found.
    """
    if isinstance(record, (Mapping, Collect)):
        if field in record:
            return True, record[field]
        return False, None
    if isinstance(record, np.void):
        names = record.dtype.names
        if names and field in names:
            return True, record[field]
        return False, None
    if not isinstance(field, str):
        return False, None
    if isinstance(record, tuple) and hasattr(record, "_fields"):
        supported = True
    elif isinstance(record, (str, bytes, numbers.Number, list, tuple, np.ndarray, jnp.ndarray)) or record is None:
        supported = False
    else:
        supported = (
            dataclasses.is_dataclass(record)
            or hasattr(record, "__dict__")
            or hasattr(type(record), "__slots__")
        ) and not isinstance(record, type)
    if not supported:
        return False, None
    value = getattr(record, field, None)
    if value is None:
        return False, None
    return True, value


def _numeric_string(value: str) -> Optional[float]:
    text = value.strip()
    if not _NUMERIC.fullmatch(text):
        return None
    return float(text)


def _promote(a: Any, b: Any) -> Tuple[Any, Any]:
    """Compare numeric strings as numbers."""
    if isinstance(a, str) and isinstance(b, str):
        parsed_a, parsed_b = _numeric_string(a), _numeric_string(b)
        if parsed_a is not None and parsed_b is not None:
            return parsed_a, parsed_b
        return a, b
    if isinstance(a, numbers.Number) and isinstance(b, str):
        parsed = _numeric_string(b)
        if parsed is not None:
            return a, parsed
        return str(a), b
    if isinstance(a, str) and isinstance(b, numbers.Number):
        parsed = _numeric_string(a)
        if parsed is not None:
            return parsed, b
        return a, str(b)
    return a, b


def _truthy(value: Any) -> bool:
    if _is_array(value):
        return value.size > 0 and bool(np.any(np.asarray(value)))
    return bool(value)


def loose_equal(a: Any, b: Any) -> bool:
    """Equality that treats None as equal to falsy values and numeric strings as numbers."""
    if a is b:
        return True
    if a is None:
        return not _truthy(b)
    if b is None:
        return not _truthy(a)
    a, b = _promote(a, b)
    try:
        result = a == b
        if _is_array(result):
            return bool(np.all(np.asarray(result)))
        return bool(result)
    except (TypeError, ValueError):
        return False


def compare_loose(a: Any, b: Any) -> int:
    """Three-way comparison returning -1, 0 or 1; loosely equal values tie."""
    if loose_equal(a, b):
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    a, b = _promote(a, b)
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except (TypeError, ValueError):
        pass
    return 0


class Collect:
    """An ordered key-value collection with chainable functional operations.

    Keys are ints or strings and insertion order is preserved. ``set``,
    item assignment and deletion mutate in place; every transform returns
    a new ``Collect``.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Union[Mapping[Any, Any], Iterable[Any], "Collect"] = ()) -> None:
        """
        Initialize Collect.

        Args:
            items: A dict (adopted without copying), another Collect or
                Mapping (copied as key-value pairs), a ``dict.items()``
                view, or any other iterable (keyed by position from 0).
        """
        if isinstance(items, dict):
            self._items: Dict[Any, Any] = items
        elif isinstance(items, Collect):
            self._items = dict(items._items)
        elif isinstance(items, Mapping):
            self._items = dict(items.items())
        elif isinstance(items, ItemsView):
            self._items = dict(items)
        else:
            self._items = dict(enumerate(items))

    @classmethod
    def wrap(cls, items: Union[Mapping[Any, Any], Iterable[Any], "Collect"] = ()) -> "Collect":
        return cls(items)

    # Accessors

    def all(self) -> Dict[Any, Any]:
        """Return a shallow copy of the backing dict."""
        return dict(self._items)

    def keys(self) -> Iterable[Any]:
        return self._items.keys()

    def values(self) -> Iterable[Any]:
        return self._items.values()

    def items(self) -> Iterable[Tuple[Any, Any]]:
        return self._items.items()

    def get(self, key: KeyType, default: Any = None) -> Any:
        """Return the value at ``key``, or ``default`` if absent or None."""
        value = self._items.get(key)
        return default if value is None else value

    def set(self, key: KeyType, value: ValueType) -> "Collect":
        self._items[key] = value
        return self

    def push(self, value: ValueType) -> "Collect":
        """Append ``value`` under the next sequential integer key."""
        self._items[self._next_key()] = value
        return self

    def count(self) -> int:
        return len(self._items)

    def _next_key(self) -> int:
        int_keys = [k for k in self._items if type(k) is int]
        return max(int_keys) + 1 if int_keys else 0

    # Transforms

    def map(self, fn: Callable[..., Any]) -> "Collect":
        call = _adapt(fn)
        return Collect({k: call(v, k) for k, v in self._items.items()})

    def filter(self, fn: Optional[Callable[..., Any]] = None) -> "Collect":
        if fn is None:
            return Collect({k: v for k, v in self._items.items() if _truthy(v)})
        call = _adapt(fn)
        return Collect({k: v for k, v in self._items.items() if call(v, k)})

    def pluck(self, field: Any) -> "Collect":
        """Extract ``field`` from every record, reindexed from 0.

        Values that are not records, or records without the field, are
        skipped.
        """
        plucked: List[Any] = []
        for value in self._items.values():
            found, extracted = _resolve_field(value, field)
            if found:
                plucked.append(extracted)
        skipped = len(self._items) - len(plucked)
        if skipped:
            logger.debug("pluck(%r) skipped %d of %d values", field, skipped, len(self._items))
        return Collect(plucked)

    def reduce(self, fn: Callable[..., Any], initial: Any = None) -> Any:
        call = _adapt(fn, fallback=2)
        carry = initial
        for key, value in self._items.items():
            carry = call(carry, value, key)
        return carry

    def first(self, fn: Optional[Callable[..., Any]] = None, default: Any = None) -> Any:
        if fn is None:
            for value in self._items.values():
                return value
            return default
        call = _adapt(fn)
        for key, value in self._items.items():
            if call(value, key):
                return value
        return default

    def last(self, default: Any = None) -> Any:
        """Return the last value; ``default`` if empty or the last value is falsy."""
        if not self._items:
            return default
        value = next(reversed(self._items.values()))
        return value if _truthy(value) else default

    def _numeric_values(self, field: Any) -> List[Any]:
        source = self._items if field is None else self.pluck(field)._items
        for key, value in source.items():
            if not _is_numeric(value):
                raise TypeMismatchError(
                    f"Value for key {key!r} has non-numeric type {type(value).__name__}"
                )
        return list(source.values())

    def sum(self, field: Any = None) -> Any:
        """
        Sum the values, or the plucked ``field`` values.

        Raises:
            TypeMismatchError: If any summed value is not numeric.
        """
        return sum(self._numeric_values(field))

    def avg(self, field: Any = None) -> Any:
        values = self._numeric_values(field)
        if not values:
            return 0
        return sum(values) / len(values)

    def group_by(self, selector: Union[Callable[[Any], Any], str, int]) -> "Collect":
        """
        Group values by a callable or a record field.

        Args:
            selector: ``selector(value) -> group key``, or a field name
                resolved on each record. Unresolved values land in the
                ``None`` group.

        Returns:
            Collect mapping each group key to a Collect of its values,
            keyed from 0 in original order.
        """
        groups: Dict[Any, Collect] = {}
        for value in self._items.values():
            if callable(selector):
                group_key = selector(value)
            else:
                group_key = _resolve_field(value, selector)[1]
            if isinstance(group_key, np.generic):
                group_key = group_key.item()
            if group_key not in groups:
                groups[group_key] = Collect()
            groups[group_key].push(value)
        return Collect(groups)

    def sort_by(self, field: Any, descending: bool = False) -> "Collect":
        """Stable sort on a record field, reindexed from 0."""
        sign = -1 if descending else 1

        def compare(a: Any, b: Any) -> int:
            return sign * compare_loose(_resolve_field(a, field)[1], _resolve_field(b, field)[1])

        return Collect(sorted(self._items.values(), key=functools.cmp_to_key(compare)))

    def to_json(self, options: Union[JsonOptions, int] = JsonOptions.NONE) -> str:
        """
        Encode the collection as JSON.

        Dense ``0..n-1`` keys produce a JSON array, anything else an object.

        Raises:
            SerializationError: If a value cannot be encoded.
        """
        return encode(self._items, JsonOptions(options))

    # Array-like protocol

    def __getitem__(self, key: KeyType) -> Any:
        return self.get(key)

    def __setitem__(self, key: Optional[KeyType], value: ValueType) -> None:
        if key is None:
            self.push(value)
            return
        self._items[key] = value

    def __delitem__(self, key: KeyType) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        for key, value in self._items.items():
            yield key, value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Collect):
            return self._items == other._items
        if isinstance(other, dict):
            return self._items == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"
