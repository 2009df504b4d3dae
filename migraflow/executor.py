"""Execution of single migration phases against the remote service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from .constants import DEFAULT_PHASE_TIMEOUT
from .contracts import Phase, PhaseResult, ProjectRef
from .errors import PhaseExecutionError

logger = logging.getLogger(__name__)


class PhaseService(Protocol):
    """Remote collaborator that transforms code one phase at a time."""

    async def execute(
        self,
        project: ProjectRef,
        user_id: str,
        phase_number: int,
        is_last_phase: bool,
    ) -> PhaseResult:
        """Run ``phase_number`` remotely and return its complete result."""

    async def delete_project(self, project: ProjectRef, user_id: str | None) -> None:
        """Remove any server-side artifacts of ``project``."""


class HttpPhaseService:
    """``PhaseService`` speaking JSON over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_PHASE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def execute(
        self,
        project: ProjectRef,
        user_id: str,
        phase_number: int,
        is_last_phase: bool,
    ) -> PhaseResult:
        response = await self._client.post(
            "/migrate-code",
            json={
                "user_id": user_id,
                "owner": project.owner,
                "repo": project.repo,
                "phase": phase_number,
                "is_last_phase": is_last_phase,
            },
        )
        data = self._json_or_raise(response, "Failed to migrate code")
        raw = data.get("phase_results") or data.get("phaseResults")
        if raw is None:
            raise PhaseExecutionError(
                f"Response for phase {phase_number} carried no phase results",
                status_code=response.status_code,
            )
        try:
            return PhaseResult.model_validate(raw)
        except ValidationError as exc:
            raise PhaseExecutionError(
                f"Malformed result for phase {phase_number}: {exc}",
                status_code=response.status_code,
            ) from exc

    async def delete_project(self, project: ProjectRef, user_id: str | None) -> None:
        params = {"user_id": user_id} if user_id else None
        response = await self._client.delete(
            f"/projects/{project.owner}/{project.repo}", params=params
        )
        if response.status_code != 404:
            self._json_or_raise(response, "Failed to delete project")

    @staticmethod
    def _json_or_raise(response: httpx.Response, default_message: str) -> dict[str, Any]:
        if response.is_success:
            return response.json() if response.content else {}
        detail = None
        try:
            detail = response.json().get("detail")
        except ValueError:
            pass
        raise PhaseExecutionError(
            str(detail) if detail else f"{default_message} (HTTP {response.status_code})",
            status_code=response.status_code,
        )


class PhaseOutcome(BaseModel):
    """What running one phase produced."""

    result: PhaseResult
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PhaseExecutor:
    """Runs exactly one phase and turns every failure into data."""

    def __init__(self, service: PhaseService, timeout: float | None = DEFAULT_PHASE_TIMEOUT) -> None:
        self.service = service
        self.timeout = timeout

    async def run(
        self,
        project: ProjectRef,
        user_id: str,
        phase: Phase,
        is_last_phase: bool,
    ) -> PhaseOutcome:
        """Execute ``phase``; never raises for remote or timeout failures."""
        try:
            result = await asyncio.wait_for(
                self.service.execute(project, user_id, phase.number, is_last_phase),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = f"Phase {phase.number} ({phase.name}) timed out after {self.timeout}s"
        except PhaseExecutionError as exc:
            error = str(exc) or f"Phase {phase.number} failed"
        except httpx.HTTPError as exc:
            error = f"Network error during phase {phase.number}: {exc}"
        except Exception as exc:
            logger.exception(f"Unexpected error in phase {phase.number} for {project}")
            error = f"Phase {phase.number} failed: {exc}"
        else:
            if result.phase_number != phase.number:
                error = (
                    f"Service returned phase {result.phase_number} "
                    f"while phase {phase.number} was requested"
                )
            else:
                return PhaseOutcome(result=result)

        logger.warning(f"Phase {phase.number} for {project} failed: {error}")
        return PhaseOutcome(result=PhaseResult.failed(phase, error), error=error)
