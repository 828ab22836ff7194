"""Command implementations exposed by the bibsmith CLI."""

from __future__ import annotations

from .order import order
from .save import save


__all__ = ["order", "save"]
