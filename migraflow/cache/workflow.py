"""Typed access to per-project workflow artifacts."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config import CacheConfig
from ..constants import (
    ANALYSIS_RESULT_KEY,
    CONVERSION_PLANNER_KEY,
    SELECTED_REPOSITORY_KEY,
    STEP_STATE_KEY,
    TRANSFORMATION_DATA_KEY,
)
from ..contracts import PhasePlan, ProjectRef, WorkflowProgress
from ..gate import StepGate, StepState
from .base import CacheStore

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def project_key(prefix: str, owner: str, repo: str) -> str:
    """Deterministic cache key for an artifact of ``owner/repo``."""
    return f"{prefix}:{owner}/{repo}"


def analysis_key(owner: str, repo: str) -> str:
    return project_key(ANALYSIS_RESULT_KEY, owner, repo)


def plan_key(owner: str, repo: str) -> str:
    return project_key(CONVERSION_PLANNER_KEY, owner, repo)


def progress_key(owner: str, repo: str) -> str:
    return project_key(TRANSFORMATION_DATA_KEY, owner, repo)


class WorkflowCache:
    """Facade over a ``CacheStore`` for analysis, plan and progress artifacts.

    All workflow code reads and writes through this class so that keys are
    always partitioned per ``(owner, repo)``. Only the active-project pointer
    lives under a shared, well-known key.
    """

    def __init__(self, store: CacheStore, config: Optional[CacheConfig] = None) -> None:
        self.store = store
        self._config = config or CacheConfig()

    def _ttl(self, ttl: Optional[float], default: Optional[float]) -> Optional[float]:
        return default if ttl is _UNSET else ttl

    # ------------------------------------------------------------------
    # Analysis
    async def get_analysis(self, owner: str, repo: str) -> Optional[dict[str, Any]]:
        return await self.store.get(analysis_key(owner, repo))

    async def save_analysis(
        self, owner: str, repo: str, analysis: dict[str, Any], ttl: Optional[float] = _UNSET
    ) -> None:
        await self.store.set(
            analysis_key(owner, repo), analysis, self._ttl(ttl, self._config.analysis_ttl)
        )

    # ------------------------------------------------------------------
    # Phase plan
    async def get_plan(self, owner: str, repo: str) -> Optional[PhasePlan]:
        return await self.store.get_model(plan_key(owner, repo), PhasePlan)

    async def save_plan(
        self, owner: str, repo: str, plan: PhasePlan, ttl: Optional[float] = _UNSET
    ) -> None:
        await self.store.set(
            plan_key(owner, repo), plan, self._ttl(ttl, self._config.plan_ttl)
        )

    # ------------------------------------------------------------------
    # Transformation progress
    async def get_progress(self, owner: str, repo: str) -> Optional[WorkflowProgress]:
        return await self.store.get_model(progress_key(owner, repo), WorkflowProgress)

    async def save_progress(
        self,
        owner: str,
        repo: str,
        progress: WorkflowProgress,
        ttl: Optional[float] = _UNSET,
    ) -> None:
        await self.store.set(
            progress_key(owner, repo),
            progress,
            self._ttl(ttl, self._config.progress_ttl),
        )
        logger.debug(
            f"Saved progress for {owner}/{repo}: "
            f"{len(progress.phase_results)} phase result(s)"
        )

    # ------------------------------------------------------------------
    # Active project pointer
    async def get_active_project(self) -> Optional[ProjectRef]:
        return await self.store.get_model(SELECTED_REPOSITORY_KEY, ProjectRef)

    async def set_active_project(self, project: ProjectRef) -> None:
        await self.store.set(SELECTED_REPOSITORY_KEY, project)

    async def clear_active_project(self) -> None:
        await self.store.remove(SELECTED_REPOSITORY_KEY)

    # ------------------------------------------------------------------
    # Step gate
    async def get_step_gate(self) -> StepGate:
        """Restore the persisted gate, or a fresh one when none is stored."""
        state = await self.store.get_model(STEP_STATE_KEY, StepState)
        return StepGate(state)

    async def save_step_gate(self, gate: StepGate) -> None:
        await self.store.set(STEP_STATE_KEY, gate.to_dict())

    # ------------------------------------------------------------------
    # Invalidation
    async def clear_all(self, owner: str, repo: str) -> None:
        """Drop every cached artifact of ``owner/repo``."""
        for key in (
            analysis_key(owner, repo),
            plan_key(owner, repo),
            progress_key(owner, repo),
        ):
            await self.store.remove(key)

        active = await self.get_active_project()
        if active is not None and (active.owner, active.repo) == (owner, repo):
            await self.clear_active_project()
        logger.info(f"Cleared cached workflow state for {owner}/{repo}")

    async def clear_everything(self) -> None:
        await self.store.clear()
        logger.info("Cleared all cached workflow state")
