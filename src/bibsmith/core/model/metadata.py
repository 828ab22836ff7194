"""Free-form metadata stored with a database."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .groups import GroupTreeNode


META_FLAG = "jabref-meta: "
GROUPS_TREE_KEY = "groupstree"
GROUPS_VERSION_KEY = "groupsversion"
SAVE_ORDER_CONFIG_KEY = "saveOrderConfig"
SAVE_ACTIONS_KEY = "saveActions"
DATABASE_TYPE_KEY = "databaseType"

RESERVED_KEYS = frozenset({GROUPS_TREE_KEY, GROUPS_VERSION_KEY, "groups"})


class MetaData:
    """Ordered mapping of metadata keys to ordered lists of values.

    The group tree is held separately in `groups`. Iterating yields the
    plain keys in insertion order, skipping the keys reserved for groups.
    """

    def __init__(
        self,
        data: Iterable[tuple[str, Sequence[str]]] | None = None,
        *,
        groups: GroupTreeNode | None = None,
    ) -> None:
        self._data: dict[str, list[str]] = {}
        for key, values in data or ():
            self.put_data(key, values)
        self.groups = groups

    def __iter__(self) -> Iterator[str]:
        return (key for key in self._data if key not in RESERVED_KEYS)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def get_data(self, key: str) -> list[str] | None:
        values = self._data.get(key)
        return list(values) if values is not None else None

    def put_data(self, key: str, values: Sequence[str]) -> None:
        self._data[key] = [str(value) for value in values]

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


__all__ = [
    "DATABASE_TYPE_KEY",
    "GROUPS_TREE_KEY",
    "GROUPS_VERSION_KEY",
    "META_FLAG",
    "RESERVED_KEYS",
    "SAVE_ACTIONS_KEY",
    "SAVE_ORDER_CONFIG_KEY",
    "MetaData",
]
