"""Fill frequency_number / frequency_unit from each project's free-text description and rescore."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from intake_planner.database import get_engine
from intake_planner.errors import IntakeError
from intake_planner.repositories.sql import SqlStorage
from intake_planner.schemas.project import ProjectFilters
from intake_planner.services.projects import frequency_migration_changes
from intake_planner.services.weights import WeightsManager


async def migrate():
    storage = SqlStorage(get_engine())
    async with storage.session() as repos:
        weights = await WeightsManager(repos).get_active()
        projects = await repos.projects.list(ProjectFilters(limit=None))
        print(f"Found {len(projects)} projects to process")
        failed = 0
        for project in projects:
            changes = frequency_migration_changes(project, weights)
            print(
                f"Project {project.id}: {project.frequency_description!r} -> "
                f"{changes['frequency_number']:g} / {changes['frequency_unit'].value} "
                f"(score {changes['frequency_score']}, weighted {changes['score_weighted']:.2f})"
            )
            # update() runs in a savepoint; a failed row leaves the transaction usable
            try:
                await repos.projects.update(project.id, changes)
            except IntakeError as e:
                failed += 1
                print(f"Error updating project {project.id}: {e.message}")
    await storage.close()
    print(f"Migration finished: {len(projects) - failed} updated, {failed} failed")


if __name__ == "__main__":
    asyncio.run(migrate())
