"""Shared fixtures for migraflow tests."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Set

import pytest

import migraflow.cache as cache_module
from migraflow.cache import InMemoryCacheStore, WorkflowCache
from migraflow.contracts import ConversionOutcome, Phase, PhasePlan, PhaseResult, ProjectRef
from migraflow.errors import PhaseExecutionError


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedPhaseService:
    """Phase service that succeeds except for the phases listed in ``fail``."""

    def __init__(
        self,
        plan: PhasePlan,
        fail: Optional[Set[int]] = None,
        delays: Optional[Dict[int, float]] = None,
        cleanup_error: Optional[Exception] = None,
    ) -> None:
        self.plan = plan
        self.fail = fail or set()
        self.delays = delays or {}
        self.cleanup_error = cleanup_error
        self.calls: List[tuple[int, bool]] = []
        self.deleted: List[ProjectRef] = []
        self.closed = False

    async def execute(
        self, project: ProjectRef, user_id: str, phase_number: int, is_last_phase: bool
    ) -> PhaseResult:
        self.calls.append((phase_number, is_last_phase))
        if phase_number in self.delays:
            await asyncio.sleep(self.delays[phase_number])
        if phase_number in self.fail:
            raise PhaseExecutionError(f"remote failure in phase {phase_number}", 500)
        phase = self.plan.phase(phase_number)
        return PhaseResult(
            phase_number=phase.number,
            phase_name=phase.name,
            files_converted=len(phase.file_list),
            conversions=[
                ConversionOutcome(
                    source_file=path,
                    target_file=path.replace(".php", ".js"),
                    source_code="<?php echo 1;",
                    converted_code="console.log(1);",
                    dependencies=["express", f"lib-{phase.number}"],
                )
                for path in phase.file_list
            ],
        )

    async def delete_project(self, project: ProjectRef, user_id: str | None) -> None:
        if self.cleanup_error is not None:
            raise self.cleanup_error
        self.deleted.append(project)

    async def close(self) -> None:
        self.closed = True


def build_plan(count: int, files_per_phase: int = 2) -> PhasePlan:
    return PhasePlan(
        phases=[
            Phase(
                number=n,
                name=f"phase-{n}",
                file_list=[f"src/p{n}/file{i}.php" for i in range(files_per_phase)],
            )
            for n in range(1, count + 1)
        ]
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def workflow_cache(store) -> WorkflowCache:
    return WorkflowCache(store)


@pytest.fixture
def plan_factory():
    return build_plan


@pytest.fixture
def service_factory():
    return ScriptedPhaseService


@pytest.fixture(autouse=True)
def _reset_cache_singleton(monkeypatch, tmp_path):
    monkeypatch.setattr(cache_module, "_store_instance", None)
    monkeypatch.delenv("MIGRAFLOW_CACHE_URL", raising=False)
    monkeypatch.setenv("MIGRAFLOW_CONFIG", str(tmp_path / "missing-config.yaml"))
