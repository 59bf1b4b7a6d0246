"""K League official API adapter."""

from __future__ import annotations

from .client import KLeagueSource

__all__ = ["KLeagueSource"]
