"""Phase executor and HTTP service tests."""

import json

import httpx
import pytest

from migraflow.contracts import Phase, ProjectRef
from migraflow.errors import PhaseExecutionError
from migraflow.executor import HttpPhaseService, PhaseExecutor
from migraflow.orchestrator import MigrationOrchestrator

PROJECT = ProjectRef(owner="acme", repo="shop")


def _phase_payload(number: int = 1) -> dict:
    return {
        "phase_number": number,
        "phase_name": "controllers",
        "files_converted": 1,
        "conversions": [
            {
                "source_file": "app/UserController.php",
                "target_file": "src/userController.js",
                "source_code": "<?php",
                "converted_code": "module.exports = {}",
                "dependencies": ["express"],
                "success": True,
            }
        ],
    }


def _service(handler) -> HttpPhaseService:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://backend"
    )
    return HttpPhaseService("http://backend", client=client)


@pytest.mark.asyncio
async def test_http_service_posts_phase_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"phase_results": _phase_payload()})

    result = await _service(handler).execute(PROJECT, "user-1", 1, is_last_phase=True)

    assert seen["path"] == "/migrate-code"
    assert seen["body"] == {
        "user_id": "user-1",
        "owner": "acme",
        "repo": "shop",
        "phase": 1,
        "is_last_phase": True,
    }
    assert result.phase_number == 1
    assert result.dependencies() == ["express"]


@pytest.mark.asyncio
async def test_http_service_accepts_camel_case_envelope():
    def handler(request):
        return httpx.Response(200, json={"phaseResults": _phase_payload()})

    result = await _service(handler).execute(PROJECT, "u", 1, False)
    assert result.phase_name == "controllers"


@pytest.mark.asyncio
async def test_http_service_surfaces_server_detail():
    def handler(request):
        return httpx.Response(502, json={"detail": "LLM quota exhausted"})

    with pytest.raises(PhaseExecutionError) as excinfo:
        await _service(handler).execute(PROJECT, "u", 1, False)
    assert str(excinfo.value) == "LLM quota exhausted"
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_http_service_rejects_malformed_results():
    def handler(request):
        return httpx.Response(200, json={"phase_results": {"phase_number": 1}})

    with pytest.raises(PhaseExecutionError):
        await _service(handler).execute(PROJECT, "u", 1, False)


@pytest.mark.asyncio
async def test_http_service_delete_tolerates_missing_project():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/projects/acme/shop"
        return httpx.Response(404)

    await _service(handler).delete_project(PROJECT, "u")


@pytest.mark.asyncio
async def test_executor_converts_network_error_to_failed_result():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    executor = PhaseExecutor(_service(handler), timeout=5)
    phase = Phase(number=2, name="models", file_list=["app/User.php"])
    outcome = await executor.run(PROJECT, "u", phase, is_last_phase=False)

    assert not outcome.ok
    assert "connection refused" in outcome.error
    assert outcome.result.phase_number == 2
    assert outcome.result.conversions[0].success is False
    assert outcome.result.conversions[0].error == outcome.error


@pytest.mark.asyncio
async def test_executor_times_out(service_factory, plan_factory):
    plan = plan_factory(1)
    service = service_factory(plan, delays={1: 1.0})
    executor = PhaseExecutor(service, timeout=0.01)

    outcome = await executor.run(PROJECT, "u", plan.phase(1), is_last_phase=True)

    assert not outcome.ok
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_executor_flags_mismatched_phase_number():
    def handler(request):
        return httpx.Response(200, json={"phase_results": _phase_payload(number=3)})

    executor = PhaseExecutor(_service(handler))
    outcome = await executor.run(PROJECT, "u", Phase(number=1, name="a"), False)
    assert not outcome.ok
    assert outcome.result.phase_number == 1


@pytest.mark.asyncio
async def test_executor_passes_through_success(service_factory, plan_factory):
    plan = plan_factory(2)
    service = service_factory(plan)
    outcome = await PhaseExecutor(service).run(PROJECT, "u", plan.phase(2), True)

    assert outcome.ok
    assert outcome.result.files_converted == 2
    assert service.calls == [(2, True)]


@pytest.mark.asyncio
async def test_orchestrator_aclose_closes_http_client(workflow_cache):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        base_url="http://backend",
    )
    service = HttpPhaseService("http://backend", client=client)
    orchestrator = MigrationOrchestrator(PhaseExecutor(service), workflow_cache)

    await orchestrator.aclose()

    assert client.is_closed
