"""Example showing a resumable phased migration against an in-process service.

Run it twice with a sqlite cache to see the second run resume:

    MIGRAFLOW_CACHE_URL=sqlite://migraflow.db python guides/phased_migration_example.py
"""

import asyncio

from migraflow import (
    ConversionOutcome,
    MigrationOrchestrator,
    Phase,
    PhasePlan,
    PhaseResult,
    ProjectRef,
    get_workflow_cache,
)


class LocalPhaseService:
    """Pretend backend that converts every file in a phase."""

    def __init__(self, plan: PhasePlan):
        self.plan = plan

    async def execute(self, project, user_id, phase_number, is_last_phase):
        await asyncio.sleep(0.1)
        phase = self.plan.phase(phase_number)
        conversions = [
            ConversionOutcome(
                source_file=path,
                target_file=path.replace(".php", ".js"),
                converted_code=f"// converted {path}",
                dependencies=["express"],
            )
            for path in phase.file_list
        ]
        return PhaseResult(
            phase_number=phase_number,
            phase_name=phase.name,
            files_converted=len(conversions),
            conversions=conversions,
        )

    async def delete_project(self, project, user_id):
        print(f"Server-side state for {project} deleted")


async def main():
    project = ProjectRef(owner="acme", repo="shop")
    plan = PhasePlan(
        phases=[
            Phase(number=1, name="models", file_list=["app/User.php", "app/Order.php"]),
            Phase(number=2, name="controllers", file_list=["app/UserController.php"]),
            Phase(number=3, name="routes", file_list=["routes/web.php"]),
        ]
    )

    cache = get_workflow_cache()
    if await cache.get_plan(project.owner, project.repo) is None:
        await cache.save_plan(project.owner, project.repo, plan)

    orchestrator = MigrationOrchestrator.from_config(service=LocalPhaseService(plan))
    orchestrator.subscribe(
        lambda p: print(f"  observer: phase {p.current_phase or '-'}, {len(p.phase_results)} done")
    )

    async for progress in orchestrator.start_or_fail_migration(project.owner, project.repo, "alice"):
        latest = progress.phase_results[-1]
        print(f"Phase {latest.phase_number}/{progress.total_phases} {latest.phase_name}")

    final = await cache.get_progress(project.owner, project.repo)
    print(f"Files: {final.total_files}, success rate: {final.success_rate}%")
    print(f"Dependencies: {', '.join(final.dependencies)}")


if __name__ == "__main__":
    asyncio.run(main())
