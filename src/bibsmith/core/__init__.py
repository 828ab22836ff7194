"""Core building blocks: model, configuration, formatting and the writer."""

from __future__ import annotations
