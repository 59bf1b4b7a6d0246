"""TheSportsDB adapter."""

from __future__ import annotations

from .client import TheSportsDBSource

__all__ = ["TheSportsDBSource"]
