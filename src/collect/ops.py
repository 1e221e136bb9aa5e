"""Module-level helpers for building Collect instances."""

from typing import Any, Iterable, Mapping, Union

from collect.core import Collect


def collection(items: Union[Mapping[Any, Any], Iterable[Any], Collect] = ()) -> Collect:
    """
    Wrap ``items`` in a Collect.

    Args:
        items: Any input accepted by ``Collect``.

    Returns:
        A new Collect, equivalent to ``Collect.wrap(items)``.
    """
    return Collect.wrap(items)
