"""Run orchestration for the reconciliation pipeline."""

from __future__ import annotations

from .orchestrator import PipelineOrchestrator
from .report import RunReport, StageReport
from .state import RunState

__all__ = ["PipelineOrchestrator", "RunReport", "RunState", "StageReport"]
