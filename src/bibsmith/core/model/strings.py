"""String macro (`@String`) definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StringCategory(Enum):
    """Categories used to group string macros in the written file.

    The declaration order is the order in which categories are written.
    """

    AUTHOR = "a"
    INSTITUTION = "i"
    PUBLISHER = "p"
    OTHER = ""

    @classmethod
    def from_name(cls, name: str) -> StringCategory:
        # A prefix only counts when followed by an upper-case letter: "aSmith".
        if len(name) <= 1 or not name[1].isupper():
            return cls.OTHER
        for category in cls:
            if category.value and category.value == name[0]:
                return category
        return cls.OTHER


@dataclass(slots=True)
class BibtexString:
    """A named, reusable text fragment.

    The content may reference other strings with `#name#`.
    """

    name: str
    content: str = ""
    changed: bool = True
    parsed_serialization: str | None = None
    category: StringCategory = field(init=False)

    def __post_init__(self) -> None:
        self.category = StringCategory.from_name(self.name)

    @property
    def has_changed(self) -> bool:
        return self.changed or self.parsed_serialization is None

    def set_content(self, content: str) -> None:
        self.content = content
        self.changed = True


__all__ = ["BibtexString", "StringCategory"]
