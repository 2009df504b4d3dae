"""Phased migration orchestration for migraflow."""

from __future__ import annotations

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .cache import get_workflow_cache
from .cache.workflow import WorkflowCache
from .config import MigraflowConfig, load_config
from .constants import Step
from .contracts import PhasePlan, ProjectRef, WorkflowProgress
from .errors import CacheFailure, NoPlanFound, RunAlreadyActive
from .executor import HttpPhaseService, PhaseExecutor, PhaseService
from .gate import StepGate
from .notifications import PhaseNotificationCenter

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[WorkflowProgress], Union[None, Awaitable[None]]]


@dataclass
class RunToken:
    """Marks the single active run for a project."""

    project: ProjectRef
    user_id: str
    token: str = field(default_factory=lambda: str(uuid.uuid4()))
    cancelled: bool = False
    current_phase: Optional[int] = None


class MigrationOrchestrator:
    """Drives a phase plan to completion for one project at a time.

    Phases run strictly in order. A failing phase is recorded as a failed
    ``PhaseResult`` and the run moves on; progress is persisted after every
    phase so an interrupted run resumes where it stopped.
    """

    def __init__(
        self,
        executor: PhaseExecutor,
        workflow_cache: WorkflowCache,
        step_gate: Optional[StepGate] = None,
        notifications: Optional[PhaseNotificationCenter] = None,
    ) -> None:
        self.executor = executor
        self.cache = workflow_cache
        self.step_gate = step_gate or StepGate()
        self.notifications = notifications or PhaseNotificationCenter()
        self._runs: Dict[Tuple[str, str], RunToken] = {}
        self._observers: List[ProgressObserver] = []
        self.warnings: List[str] = []

    @classmethod
    def from_config(
        cls, config: Optional[MigraflowConfig] = None, service: Optional[PhaseService] = None
    ) -> "MigrationOrchestrator":
        """Build an orchestrator wired to the configured cache and service."""
        workflow_cache = get_workflow_cache(config=config)
        config = config or load_config()
        service = service or HttpPhaseService(
            config.service.base_url, timeout=config.service.phase_timeout
        )
        return cls(
            PhaseExecutor(service, timeout=config.service.phase_timeout),
            workflow_cache,
            notifications=PhaseNotificationCenter(workflow_cache.store),
        )

    # ------------------------------------------------------------------
    # Observers
    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        """Register ``observer`` for every snapshot. Returns an unsubscriber."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    async def _publish(self, progress: WorkflowProgress) -> WorkflowProgress:
        snapshot = progress.snapshot()
        for observer in list(self._observers):
            outcome = observer(snapshot.snapshot())
            if inspect.isawaitable(outcome):
                await outcome
        return snapshot

    # ------------------------------------------------------------------
    # Run bookkeeping
    def is_running(self, owner: str, repo: str) -> bool:
        return (owner, repo) in self._runs

    def current_phase(self, owner: str, repo: str) -> Optional[int]:
        run = self._runs.get((owner, repo))
        return run.current_phase if run else None

    def _acquire(self, project: ProjectRef, user_id: str) -> RunToken:
        key = (project.owner, project.repo)
        existing = self._runs.get(key)
        if existing is not None:
            raise RunAlreadyActive(project.owner, project.repo, existing.token)
        run = RunToken(project=project, user_id=user_id)
        self._runs[key] = run
        return run

    def _release(self, run: RunToken) -> None:
        key = (run.project.owner, run.project.repo)
        if self._runs.get(key) is run:
            del self._runs[key]

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    # ------------------------------------------------------------------
    # Migration
    async def start_or_fail_migration(
        self, owner: str, repo: str, user_id: str
    ) -> AsyncIterator[WorkflowProgress]:
        """Run or resume the migration of ``owner/repo``.

        Yields one ``WorkflowProgress`` snapshot per phase transition: the
        resumed state first when a checkpoint exists, then one per phase.

        Raises:
            RunAlreadyActive: Another run for the project holds the token.
            NoPlanFound: No phase plan is cached for the project.
        """
        project = ProjectRef(owner=owner, repo=repo)
        run = self._acquire(project, user_id)
        try:
            plan = await self._load_plan(project)
            progress = await self._load_progress(project, plan)
            await self._remember_active(project)
            if run.cancelled:
                await self._discard(project)
                return

            if not progress.is_empty():
                logger.info(
                    f"Resuming migration of {project} at phase "
                    f"{progress.next_phase} of {len(plan)}"
                )
                yield await self._publish(progress)

            while progress.next_phase <= len(plan):
                if run.cancelled:
                    logger.info(f"Migration of {project} cancelled before phase {progress.next_phase}")
                    return

                phase = plan.phase(progress.next_phase)
                run.current_phase = phase.number
                progress.current_phase = phase.number
                logger.info(f"Starting phase {phase.number}/{len(plan)} ({phase.name}) for {project}")
                await self._publish(progress)

                outcome = await self.executor.run(
                    project, user_id, phase, is_last_phase=plan.is_last(phase.number)
                )
                if run.cancelled:
                    # the remote call finished after cancel; its result is discarded
                    return

                progress.append_result(outcome.result)
                progress.completed = progress.next_phase > len(plan)
                if progress.completed:
                    progress.current_phase = None
                await self._save(project, progress)
                if run.cancelled:
                    await self._discard(project)
                    return
                await self._notify(project, outcome.result.phase_number, phase.name, outcome.ok)
                if run.cancelled:
                    await self._discard(project)
                    return
                yield await self._publish(progress)

            self.step_gate.complete_step(Step.TRANSFORM)
            await self._save_gate()
            logger.info(
                f"Migration of {project} finished: {progress.total_files} files, "
                f"{progress.success_rate}% success, failed phases {progress.failed_phases}"
            )
        finally:
            self._release(run)

    async def run_to_completion(self, owner: str, repo: str, user_id: str) -> WorkflowProgress:
        """Drain ``start_or_fail_migration`` and return the final snapshot."""
        last: Optional[WorkflowProgress] = None
        async for snapshot in self.start_or_fail_migration(owner, repo, user_id):
            last = snapshot
        if last is None:
            return WorkflowProgress()
        return last

    async def cancel_migration(
        self, owner: str, repo: str, user_id: Optional[str] = None
    ) -> None:
        """Abandon the workflow of ``owner/repo`` and clear its state.

        Server-side cleanup is best effort; local state is always cleared.
        """
        project = ProjectRef(owner=owner, repo=repo)
        run = self._runs.get((owner, repo))
        if run is not None:
            run.cancelled = True
            user_id = user_id or run.user_id
            self._release(run)

        try:
            await self.executor.service.delete_project(project, user_id)
        except Exception as exc:
            self._warn(f"Server-side cleanup for {project} failed: {exc}")

        try:
            await self.cache.clear_all(owner, repo)
        except CacheFailure as exc:
            self._warn(f"Could not clear cached state for {project}: {exc}")

        try:
            await self.notifications.clear_repository(project.slug)
        except CacheFailure as exc:
            self._warn(f"Could not clear notifications for {project}: {exc}")

        self.step_gate.reset()
        await self._save_gate()
        logger.info(f"Migration of {project} cancelled")

    async def aclose(self) -> None:
        """Release the phase service, if it holds resources."""
        close = getattr(self.executor.service, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Helpers
    async def _load_plan(self, project: ProjectRef) -> PhasePlan:
        try:
            plan = await self.cache.get_plan(project.owner, project.repo)
        except CacheFailure as exc:
            self._warn(f"Could not read plan for {project}: {exc}")
            plan = None
        if plan is None or len(plan) == 0:
            raise NoPlanFound(project.owner, project.repo)
        return plan

    async def _load_progress(self, project: ProjectRef, plan: PhasePlan) -> WorkflowProgress:
        try:
            cached = await self.cache.get_progress(project.owner, project.repo)
        except CacheFailure as exc:
            self._warn(f"Could not read progress for {project}: {exc}")
            cached = None

        if cached is None or cached.is_empty():
            return WorkflowProgress(total_phases=len(plan))
        if len(cached.phase_results) > len(plan):
            logger.warning(
                f"Cached progress for {project} does not match the current plan; restarting"
            )
            return WorkflowProgress(total_phases=len(plan))
        cached.total_phases = len(plan)
        cached.completed = cached.next_phase > len(plan)
        cached.current_phase = None
        return cached

    async def _save(self, project: ProjectRef, progress: WorkflowProgress) -> None:
        try:
            await self.cache.save_progress(project.owner, project.repo, progress)
        except CacheFailure as exc:
            self._warn(f"Continuing without cache for {project}: {exc}")

    async def _remember_active(self, project: ProjectRef) -> None:
        try:
            await self.cache.set_active_project(project)
        except CacheFailure as exc:
            self._warn(f"Could not record active project {project}: {exc}")

    async def _notify(self, project: ProjectRef, number: int, name: str, ok: bool) -> None:
        try:
            await self.notifications.add(number, name, project.slug, success=ok)
        except CacheFailure as exc:
            self._warn(f"Could not persist notification for {project}: {exc}")

    async def _discard(self, project: ProjectRef) -> None:
        # a write that was in flight when the run was cancelled may have
        # landed after cancel_migration cleared the cache
        logger.info(f"Discarding state written for {project} after cancellation")
        try:
            await self.cache.clear_all(project.owner, project.repo)
            await self.notifications.clear_repository(project.slug)
        except CacheFailure as exc:
            self._warn(f"Could not discard state for {project}: {exc}")

    async def _save_gate(self) -> None:
        try:
            await self.cache.save_step_gate(self.step_gate)
        except CacheFailure as exc:
            self._warn(f"Could not persist step state: {exc}")
