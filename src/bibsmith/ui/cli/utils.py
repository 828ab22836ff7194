"""Utility helpers shared across CLI commands."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import typer

from bibsmith.core.config import (
    MAX_SORT_CRITERIA,
    SaveOrderConfig,
    SavePreferences,
    SaveType,
    SortCriterion,
    build_preferences,
    load_preferences,
)
from bibsmith.core.exceptions import ConfigurationError
from bibsmith.core.model import SAVE_ORDER_CONFIG_KEY, DatabaseContext


def parse_sort_options(values: Sequence[str] | None) -> list[SortCriterion] | None:
    """Convert repeated `--sort FIELD[:desc]` values into criteria."""
    if not values:
        return None
    if len(values) > MAX_SORT_CRITERIA:
        raise typer.BadParameter(
            f"At most {MAX_SORT_CRITERIA} sort criteria are supported.", param_hint="--sort"
        )
    try:
        return [SortCriterion.parse(value) for value in values]
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--sort") from exc


def resolve_preferences(
    *,
    config: Path | None,
    sort: Sequence[str] | None = None,
    encoding: str | None = None,
    plain: bool | None = None,
    backup: bool | None = None,
    strict_encoding: bool | None = None,
    export: bool = False,
) -> SavePreferences:
    """Merge the optional configuration file with command-line overrides."""
    overrides: dict[str, Any] = {
        "encoding": encoding,
        "make_backup": backup,
        "strict_encoding": strict_encoding,
        "sort_criteria": parse_sort_options(sort),
    }
    if plain is not None:
        overrides["save_type"] = SaveType.PLAIN_BIBTEX if plain else SaveType.ALL
    if export:
        overrides["is_save_operation"] = False

    if config is not None:
        return load_preferences(config, **overrides)
    return build_preferences(None, **overrides)


def apply_sort_request(context: DatabaseContext, prefs: SavePreferences) -> None:
    """Store explicit sort criteria as the database order for full saves.

    Full saves follow the order stored in the database metadata, so criteria
    given on the command line only take effect once they are stored there.
    """
    if not prefs.sort_criteria or not prefs.is_save_operation or context.metadata is None:
        return
    stored = SaveOrderConfig(
        save_in_original_order=False,
        sort_criteria=tuple(prefs.sort_criteria),
    )
    context.metadata.put_data(SAVE_ORDER_CONFIG_KEY, stored.to_metadata())


__all__ = ["apply_sort_request", "parse_sort_options", "resolve_preferences"]
