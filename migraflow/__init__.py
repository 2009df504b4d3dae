"""Migraflow: resumable, phased migration workflows."""

from .cache import CacheStore, WorkflowCache, get_cache_store, get_workflow_cache
from .contracts import (
    ConversionOutcome,
    Phase,
    PhasePlan,
    PhaseResult,
    ProjectRef,
    WorkflowProgress,
)
from .errors import (
    CacheFailure,
    MigraflowError,
    NoPlanFound,
    PhaseExecutionError,
    RunAlreadyActive,
    SerializationError,
)
from .executor import HttpPhaseService, PhaseExecutor, PhaseService
from .gate import StepGate, StepState
from .notifications import PhaseNotificationCenter
from .orchestrator import MigrationOrchestrator

__version__ = "0.1.0"
__all__ = [
    "CacheFailure",
    "CacheStore",
    "ConversionOutcome",
    "HttpPhaseService",
    "MigraflowError",
    "MigrationOrchestrator",
    "NoPlanFound",
    "Phase",
    "PhaseExecutionError",
    "PhaseExecutor",
    "PhaseNotificationCenter",
    "PhasePlan",
    "PhaseResult",
    "PhaseService",
    "ProjectRef",
    "RunAlreadyActive",
    "SerializationError",
    "StepGate",
    "StepState",
    "WorkflowCache",
    "WorkflowProgress",
    "get_cache_store",
    "get_workflow_cache",
]
