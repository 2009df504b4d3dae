"""Core data contracts for migraflow workflows."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class ProjectRef(BaseModel):
    """Identity of the remote repository a workflow operates on."""

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def parse(cls, slug: str) -> "ProjectRef":
        """Build a reference from an ``owner/repo`` string."""
        owner, sep, repo = slug.strip().partition("/")
        if not sep:
            raise ValueError(f"Expected 'owner/repo', got {slug!r}")
        return cls(owner=owner, repo=repo)

    def __str__(self) -> str:
        return self.slug


class Phase(BaseModel):
    """One externally computed unit of transformation."""

    number: int = Field(ge=1)
    name: str
    file_list: List[str] = Field(default_factory=list)


class PhasePlan(BaseModel):
    """Ordered phases produced by the analysis step.

    Phase numbers must be 1-based and contiguous.
    """

    phases: List[Phase] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_contiguous(self) -> "PhasePlan":
        for index, phase in enumerate(self.phases, start=1):
            if phase.number != index:
                raise ValueError(
                    f"Phase numbers must be contiguous from 1; position {index} "
                    f"holds phase {phase.number}"
                )
        return self

    def __len__(self) -> int:
        return len(self.phases)

    def phase(self, number: int) -> Phase:
        """Return the phase with the given 1-based number."""
        if number < 1 or number > len(self.phases):
            raise IndexError(f"Plan has no phase {number}")
        return self.phases[number - 1]

    def is_last(self, number: int) -> bool:
        return number == len(self.phases)


class ConversionOutcome(BaseModel):
    """Result of converting a single source file."""

    source_file: str
    target_file: str = ""
    source_code: str = ""
    converted_code: str = ""
    dependencies: List[str] = Field(default_factory=list)
    success: bool = True
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ConversionOutcome":
        if not self.success and not self.error:
            raise ValueError("A failed conversion must carry an error message")
        if self.success and not self.converted_code:
            raise ValueError("A successful conversion must carry converted code")
        return self


class PhaseResult(BaseModel):
    """Outcome of one phase, real or synthesized from a failure."""

    phase_number: int = Field(ge=1)
    phase_name: str
    files_converted: int = Field(default=0, ge=0)
    conversions: List[ConversionOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(c.success for c in self.conversions)

    @property
    def errors(self) -> List[str]:
        return [c.error for c in self.conversions if not c.success and c.error]

    def dependencies(self) -> List[str]:
        """All dependencies declared by this phase, in first-seen order."""
        return _dedupe(dep for c in self.conversions for dep in c.dependencies)

    @classmethod
    def failed(cls, phase: Phase, error: str) -> "PhaseResult":
        """Synthesize the result recorded when a phase could not run."""
        source = phase.file_list[0] if phase.file_list else phase.name
        return cls(
            phase_number=phase.number,
            phase_name=phase.name,
            files_converted=0,
            conversions=[
                ConversionOutcome(
                    source_file=source,
                    success=False,
                    error=error or "Phase failed without an error message",
                )
            ],
        )


class WorkflowProgress(BaseModel):
    """Accumulated state of a phased migration run."""

    phase_results: List[PhaseResult] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    current_phase: Optional[int] = None
    total_phases: int = 0
    completed: bool = False

    @model_validator(mode="after")
    def _check_ordering(self) -> "WorkflowProgress":
        for index, result in enumerate(self.phase_results, start=1):
            if result.phase_number != index:
                raise ValueError(
                    f"Phase results out of order: position {index} holds "
                    f"phase {result.phase_number}"
                )
        if self.total_phases and len(self.phase_results) > self.total_phases:
            raise ValueError("More phase results than planned phases")
        self.dependencies = _dedupe(self.dependencies)
        return self

    @property
    def next_phase(self) -> int:
        return len(self.phase_results) + 1

    def is_empty(self) -> bool:
        return not self.phase_results

    def append_result(self, result: PhaseResult) -> None:
        """Record ``result`` as the next phase and merge its dependencies."""
        if result.phase_number != self.next_phase:
            raise ValueError(
                f"Expected result for phase {self.next_phase}, "
                f"got phase {result.phase_number}"
            )
        self.phase_results.append(result)
        self.merge_dependencies(result.dependencies())

    def merge_dependencies(self, deps: Iterable[str]) -> None:
        """Union ``deps`` into the running dependency set."""
        self.dependencies = _dedupe([*self.dependencies, *deps])

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_files(self) -> int:
        return sum(r.files_converted for r in self.phase_results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_rate(self) -> int:
        total = self.total_files
        if total == 0:
            return 0
        successful = sum(
            1 for r in self.phase_results for c in r.conversions if c.success
        )
        # half-up rounding
        return int(math.floor(100 * successful / total + 0.5))

    @property
    def failed_phases(self) -> List[int]:
        return [r.phase_number for r in self.phase_results if not r.succeeded]

    def snapshot(self) -> "WorkflowProgress":
        """Independent copy safe to hand to observers."""
        return self.model_copy(deep=True)


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)
