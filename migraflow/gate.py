"""Step gating for the Upload -> Analyze -> Transform -> Export workflow."""

from __future__ import annotations

import logging
from typing import Any, Set

from pydantic import BaseModel, Field, model_validator

from .constants import FIRST_STEP, LAST_STEP, Step

logger = logging.getLogger(__name__)


class StepState(BaseModel):
    """Which step is active and which steps have been unlocked."""

    current_step: int = Field(default=int(FIRST_STEP), ge=FIRST_STEP, le=LAST_STEP)
    completed_steps: Set[int] = Field(default_factory=lambda: {int(FIRST_STEP)})

    @model_validator(mode="after")
    def _current_is_reachable(self) -> "StepState":
        if self.current_step != FIRST_STEP and self.current_step not in self.completed_steps:
            raise ValueError(
                f"Step {self.current_step} is current but was never unlocked"
            )
        return self


class StepGate:
    """State machine deciding which workflow steps may be entered.

    A step may be entered when it is the current step or has already been
    completed; any other navigation request is ignored, matching a disabled
    control in the UI. ``force_refresh`` tells the analysis collaborator
    whether cached analysis must be recomputed: it is ``True`` only when the
    Analyze step is entered for the first time in a workflow instance.
    """

    def __init__(self, state: StepState | None = None) -> None:
        self._state = state.model_copy(deep=True) if state else StepState()
        self.force_refresh = False

    @property
    def state(self) -> StepState:
        return self._state.model_copy(deep=True)

    @property
    def current_step(self) -> int:
        return self._state.current_step

    @property
    def completed_steps(self) -> Set[int]:
        return set(self._state.completed_steps)

    def is_accessible(self, step: int) -> bool:
        return step in self._state.completed_steps or step == self._state.current_step

    # ------------------------------------------------------------------
    # Transitions
    def go_to_step(self, step: int) -> bool:
        """Enter ``step`` if it is accessible. Returns whether it moved."""
        if not FIRST_STEP <= step <= LAST_STEP or not self.is_accessible(step):
            logger.debug(f"Ignoring navigation to locked step {step}")
            return False
        self._enter(step)
        return True

    def complete_step(self, step: int, advance: bool = True) -> None:
        """Mark ``step`` (and every earlier step) completed.

        With ``advance`` the next step becomes current; completing the last
        step starts a new workflow instance instead.
        """
        self._check_range(step)
        if step == LAST_STEP and advance:
            self.finish_export()
            return
        self._state.completed_steps.update(range(FIRST_STEP, step + 1))
        if advance:
            self._enter(step + 1)

    def unlock_through(self, step: int, enter: int | None = None) -> None:
        """Unlock steps ``1..step`` at once and optionally enter ``enter``.

        Used by forward actions that skip ahead, e.g. finishing analysis
        unlocks steps 1-3 and lands on Transform.
        """
        self._check_range(step)
        self._state.completed_steps.update(range(FIRST_STEP, step + 1))
        if enter is not None:
            self._check_range(enter)
            self._enter(enter)

    def reset(self) -> None:
        """Return to the first step with only it unlocked."""
        self._state = StepState()
        self.force_refresh = False
        logger.debug("Step gate reset")

    def finish_export(self) -> None:
        """Completing Export begins a fresh workflow instance."""
        logger.info("Export completed; starting a new workflow")
        self.reset()

    # ------------------------------------------------------------------
    # Serialization
    def to_dict(self) -> dict[str, Any]:
        return {
            "current_step": self._state.current_step,
            "completed_steps": sorted(self._state.completed_steps),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepGate":
        return cls(StepState.model_validate(data))

    # ------------------------------------------------------------------
    def _enter(self, step: int) -> None:
        if step == Step.ANALYZE:
            self.force_refresh = Step.ANALYZE not in self._state.completed_steps
        # a step that has been entered stays reachable
        self._state.completed_steps.add(int(step))
        self._state.current_step = int(step)

    @staticmethod
    def _check_range(step: int) -> None:
        if not FIRST_STEP <= step <= LAST_STEP:
            raise ValueError(f"Step must be between {FIRST_STEP} and {LAST_STEP}, got {step}")
