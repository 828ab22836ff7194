"""Configuration models used by the database writer.

SavePreferences

`encoding` (`str`)
: Character set used for the written file. Any name known to `codecs` is
  accepted; the value is also written in the `% Encoding:` header.

`make_backup` (`bool`)
: Copy the previous destination file to `<name>.bak` before replacing it.

`save_type` (`SaveType`)
: `all` writes the encoding header, metadata comments and custom entry type
  declarations. `plain_bibtex` writes only the preamble, strings, entries and
  epilog.

`is_save_operation` (`bool`)
: `True` when the whole database is saved to its own file. Enables crossref
  aware ordering and the sort order stored in the database metadata. Exports
  set this to `False`.

`sort_criteria` (`list[SortCriterion]`)
: Up to three `(field, descending)` pairs used when the database does not
  store its own order.

`export_in_original_order` (`bool`)
: Keep entries in creation order for exports.

`newline` (`str`)
: Line separator written to the file, `"\\n"` or `"\\r\\n"`.

`strict_encoding` (`bool`)
: Fail the save when a character cannot be represented in `encoding`
  instead of substituting it.

SaveOrderConfig

Parsed from the `saveOrderConfig` metadata entry, stored as
`[original|specified, field1, desc1, field2, desc2, field3, desc3]`.
"""

from __future__ import annotations

import codecs
from collections.abc import Sequence
from enum import Enum
import logging
from pathlib import Path
import tomllib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bibsmith.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

MAX_SORT_CRITERIA = 3


class SaveType(str, Enum):
    """Amount of bibsmith-specific content written to the file."""

    ALL = "all"
    PLAIN_BIBTEX = "plain_bibtex"


class SortCriterion(BaseModel):
    """A single `(field, direction)` sort key."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str = ""
    descending: bool = False

    @classmethod
    def parse(cls, value: str) -> SortCriterion:
        """Build a criterion from `field` or `field:desc` notation."""
        name, _, direction = value.partition(":")
        direction = direction.strip().lower()
        if direction not in {"", "asc", "desc"}:
            raise ConfigurationError(f"Unknown sort direction '{direction}' in '{value}'.")
        return cls(field=name.strip().lower(), descending=direction == "desc")


class SavePreferences(BaseModel):
    """Options controlling a single save."""

    model_config = ConfigDict(extra="forbid")

    encoding: str = "UTF-8"
    make_backup: bool = True
    save_type: SaveType = SaveType.ALL
    is_save_operation: bool = True
    sort_criteria: list[SortCriterion] = Field(default_factory=list)
    export_in_original_order: bool = False
    newline: str = "\n"
    strict_encoding: bool = False

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding '{value}'") from exc
        return value

    @field_validator("sort_criteria")
    @classmethod
    def _limit_criteria(cls, value: list[SortCriterion]) -> list[SortCriterion]:
        if len(value) > MAX_SORT_CRITERIA:
            raise ValueError(f"at most {MAX_SORT_CRITERIA} sort criteria are supported")
        return value

    @field_validator("newline")
    @classmethod
    def _known_newline(cls, value: str) -> str:
        if value not in {"\n", "\r\n"}:
            raise ValueError("newline must be '\\n' or '\\r\\n'")
        return value

    @property
    def is_plain(self) -> bool:
        return self.save_type is SaveType.PLAIN_BIBTEX

    def padded_criteria(self) -> list[SortCriterion]:
        """Return exactly three criteria, padding with empty ones."""
        criteria = list(self.sort_criteria)
        criteria.extend(SortCriterion() for _ in range(MAX_SORT_CRITERIA - len(criteria)))
        return criteria


class SaveOrderConfig(BaseModel):
    """Sort order stored in a database's own metadata."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    save_in_original_order: bool = True
    sort_criteria: tuple[SortCriterion, ...] = ()

    @classmethod
    def from_metadata(cls, values: Sequence[str] | None) -> SaveOrderConfig | None:
        """Parse the stored representation.

        Returns `None` when nothing is stored or the stored value is malformed;
        callers then fall back to their default ordering.
        """
        if not values:
            return None
        choice = values[0].strip().lower()
        if choice == "original":
            return cls(save_in_original_order=True)
        if choice != "specified":
            logger.warning("Ignoring malformed save order configuration: %r", list(values))
            return None

        criteria: list[SortCriterion] = []
        remainder = list(values[1:])
        if len(remainder) % 2:
            logger.warning("Ignoring malformed save order configuration: %r", list(values))
            return None
        for index in range(0, min(len(remainder), 2 * MAX_SORT_CRITERIA), 2):
            field_name, direction = remainder[index], remainder[index + 1]
            criteria.append(
                SortCriterion(
                    field=field_name.strip().lower(),
                    descending=direction.strip().lower() == "true",
                )
            )
        return cls(save_in_original_order=False, sort_criteria=tuple(criteria))

    def to_metadata(self) -> list[str]:
        if self.save_in_original_order:
            return ["original"]
        values = ["specified"]
        for criterion in self.sort_criteria:
            values.extend([criterion.field, "true" if criterion.descending else "false"])
        return values


def load_preferences(path: Path | str, **overrides: Any) -> SavePreferences:
    """Load save preferences from the `[save]` table of a TOML file.

    Keyword overrides take precedence over the file contents; `None` values
    are ignored so CLI options can be passed through unconditionally.
    """
    file_path = Path(path)
    try:
        payload = tomllib.loads(file_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Unable to read configuration '{file_path}': {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in '{file_path}': {exc}") from exc

    section = payload.get("save", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"'save' in '{file_path}' must be a table.")
    return build_preferences(section, **overrides)


def build_preferences(base: dict[str, Any] | None = None, **overrides: Any) -> SavePreferences:
    data = dict(base or {})
    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return SavePreferences.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid save preferences: {exc}") from exc


__all__ = [
    "MAX_SORT_CRITERIA",
    "SaveOrderConfig",
    "SavePreferences",
    "SaveType",
    "SortCriterion",
    "build_preferences",
    "load_preferences",
]
