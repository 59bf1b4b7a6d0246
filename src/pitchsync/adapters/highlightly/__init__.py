"""Highlightly adapter."""

from __future__ import annotations

from .client import HighlightlySource

__all__ = ["HighlightlySource"]
