"""Field clean-up actions applied to entries right before they are written.

Actions are configured per database through the `saveActions` metadata
entry:

```text
saveActions = ["enabled", "title[trim_whitespace,title_case]\npages[normalize_page_numbers]\n"]
```

The first value switches the feature on or off; the second holds one
`field[action,...]` rule per line. Unknown actions and malformed lines are
ignored so a stale configuration never prevents a save.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
import html
import logging
import re

from bibsmith.core.model import SAVE_ACTIONS_KEY, BibEntry, MetaData


logger = logging.getLogger(__name__)

FieldAction = Callable[[str], str]

ENABLED = "enabled"

_RULE_RE = re.compile(r"^\s*([^\[\]\s]+)\s*\[([^\]]*)\]\s*$")
_HTML_TAG_RE = re.compile(r"<[^>]+?>")
_PAGE_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:-+|–|—)\s*(\d+)\s*$")
_SMALL_WORDS = frozenset(
    {"a", "an", "and", "as", "at", "but", "by", "for", "in", "of", "on", "or", "the", "to"}
)

_MONTH_NAME_TO_INT: dict[str, int] = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

_MONTH_ABBREVIATIONS = (
    "jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec",
)  # fmt: skip


def trim_whitespace(value: str) -> str:
    return " ".join(value.split())


def title_case(value: str) -> str:
    words = value.split(" ")
    result: list[str] = []
    for index, word in enumerate(words):
        if index and word.lower() in _SMALL_WORDS:
            result.append(word.lower())
        elif word[:1] == "{":
            result.append(word)
        else:
            result.append(word[:1].upper() + word[1:])
    return " ".join(result)


def normalize_month(value: str) -> str:
    """Convert month names or numbers to the BibTeX month macros (`#jan#`)."""
    candidate = value.strip().strip("{}#\"'").lower()
    if candidate.isdigit():
        number = int(candidate)
    else:
        number = _MONTH_NAME_TO_INT.get(candidate, 0)
    if not 1 <= number <= 12:
        return value
    return f"#{_MONTH_ABBREVIATIONS[number - 1]}#"


def normalize_page_numbers(value: str) -> str:
    match = _PAGE_RANGE_RE.match(value)
    if match is None:
        return value
    return f"{match.group(1)}--{match.group(2)}"


def strip_html(value: str) -> str:
    if "<" in value and ">" in value:
        value = _HTML_TAG_RE.sub("", value)
    return html.unescape(value)


DEFAULT_ACTIONS: Mapping[str, FieldAction] = {
    "identity": lambda value: value,
    "trim_whitespace": trim_whitespace,
    "lower_case": str.lower,
    "upper_case": str.upper,
    "title_case": title_case,
    "normalize_month": normalize_month,
    "normalize_page_numbers": normalize_page_numbers,
    "strip_html": strip_html,
}


@dataclass(frozen=True, slots=True)
class SaveActionRule:
    field: str
    action: str


class SaveActions:
    """An ordered list of `(field, action)` rules."""

    def __init__(
        self,
        rules: Iterable[SaveActionRule] = (),
        *,
        enabled: bool = True,
        actions: Mapping[str, FieldAction] | None = None,
    ) -> None:
        self.actions = dict(actions if actions is not None else DEFAULT_ACTIONS)
        self.enabled = enabled
        self.rules = [rule for rule in rules if rule.action in self.actions]

    @classmethod
    def from_metadata(
        cls,
        metadata: MetaData | None,
        *,
        actions: Mapping[str, FieldAction] | None = None,
    ) -> SaveActions:
        values: Sequence[str] = ()
        if metadata is not None:
            values = metadata.get_data(SAVE_ACTIONS_KEY) or ()
        if not values:
            return cls(enabled=False, actions=actions)
        enabled = values[0].strip().lower() == ENABLED
        rules = parse_rules(values[1]) if len(values) > 1 else []
        return cls(rules, enabled=enabled, actions=actions)

    @property
    def is_identity(self) -> bool:
        return not self.enabled or not self.rules

    def apply_to_entry(self, entry: BibEntry) -> BibEntry:
        """Return `entry` itself, or a changed copy when a rule altered a field."""
        result: BibEntry | None = None
        for rule in self.rules:
            current = (result or entry).fields.get(rule.field)
            if current is None:
                continue
            try:
                updated = self.actions[rule.action](current)
            except Exception:
                logger.warning(
                    "Save action %s failed on field %s of %s; keeping the original value.",
                    rule.action,
                    rule.field,
                    entry.key or entry.id,
                    exc_info=True,
                )
                continue
            if updated == current:
                continue
            if result is None:
                result = entry.copy()
            result.set_field(rule.field, updated)
        return result if result is not None else entry

    def apply(self, entries: Iterable[BibEntry]) -> list[BibEntry]:
        if self.is_identity:
            return list(entries)
        return [self.apply_to_entry(entry) for entry in entries]


def parse_rules(text: str) -> list[SaveActionRule]:
    rules: list[SaveActionRule] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        match = _RULE_RE.match(line)
        if match is None:
            logger.debug("Ignoring malformed save action rule: %r", line)
            continue
        field_name = match.group(1).lower()
        for action in match.group(2).split(","):
            action = action.strip()
            if action:
                rules.append(SaveActionRule(field_name, action))
    return rules


__all__ = [
    "DEFAULT_ACTIONS",
    "FieldAction",
    "SaveActionRule",
    "SaveActions",
    "normalize_month",
    "normalize_page_numbers",
    "parse_rules",
    "strip_html",
    "title_case",
    "trim_whitespace",
]
