"""Three-way instruction for an event's roles or hymns during a series edit.

``Unchanged`` leaves existing content alone, ``Clear`` removes it, and
``Replace`` swaps in a new structure. Request handlers build these from field
presence: an omitted field is Unchanged, null or [] is Clear.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union


@dataclass(frozen=True)
class Unchanged:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Replace:
    items: tuple = field(default_factory=tuple)


ContentUpdate = Union[Unchanged, Clear, Replace]


def content_update_from_field(provided: bool, value: Optional[Sequence[Any]]) -> ContentUpdate:
    if not provided:
        return Unchanged()
    if not value:
        return Clear()
    return Replace(tuple(value))


def replacement_items(update: ContentUpdate) -> tuple:
    """Items the update installs; () for Clear. Callers must check for Unchanged first."""
    if isinstance(update, Replace):
        return update.items
    if isinstance(update, Clear):
        return ()
    raise TypeError("Unchanged carries no replacement items")
