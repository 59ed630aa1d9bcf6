"""Tests for project intake, review and listings."""
from datetime import datetime, timezone

import pytest

from intake_planner.engine.scoring import project_weighted_score
from intake_planner.errors import ConflictError, NotFoundError, ValidationError
from intake_planner.models.project import FrequencyUnit, ProjectStatus, UrgencyLevel
from intake_planner.repositories.memory import MemoryProjectRepository, MemoryStorage
from intake_planner.schemas.project import ProjectFilters, ProjectReview, ProjectStatusUpdate
from intake_planner.schemas.weights import PriorityWeights
from intake_planner.services.capacity import CapacityAllocator
from intake_planner.services.projects import ProjectService, frequency_migration_changes

NEW_WEIGHTS = PriorityWeights(impact_weight=0.5, frequency_weight=0.3, urgency_weight=0.2)


@pytest.fixture
def service(repos, settings):
    return ProjectService(repos, settings)


@pytest.mark.asyncio
async def test_create_computes_scores(service, make_project):
    project = await service.create(make_project())
    assert project.score_raw == 12
    assert project.score_weighted == pytest.approx(4.2)
    assert project.urgency_score == 3
    assert project.status == ProjectStatus.NEW
    assert project.version == 1


@pytest.mark.asyncio
async def test_create_derives_frequency_from_count_and_unit(service, make_project):
    project = await service.create(make_project(frequency_score=None, frequency_number=2, frequency_unit="day"))
    assert project.frequency_score == 5
    assert project.frequency_unit == FrequencyUnit.DAY
    assert project.score_raw == 13


@pytest.mark.asyncio
async def test_create_requires_some_frequency(service, make_project):
    with pytest.raises(ValidationError) as exc_info:
        await service.create(make_project(frequency_score=None, frequency_number=3))
    assert "frequency_score" in exc_info.value.field_errors


@pytest.mark.asyncio
async def test_get_missing_project(service):
    with pytest.raises(NotFoundError):
        await service.get(42)


@pytest.mark.asyncio
async def test_review_applies_overrides(service, make_project):
    project = await service.create(make_project())

    reviewed = await service.review(
        project.id,
        ProjectReview(impact_score_considered=2, urgency_level_considered=UrgencyLevel.LOW, development_points=8),
    )

    # 2*0.4 + 4*0.4 + 1*0.2
    assert reviewed.score_weighted == pytest.approx(2.6)
    assert reviewed.score_raw == 7
    assert reviewed.is_reviewed_by_team is True
    assert reviewed.reviewed_at is not None
    assert reviewed.development_points == 8
    # Original inputs are kept
    assert reviewed.impact_score == 5


@pytest.mark.asyncio
async def test_review_explicit_null_clears_override(service, make_project):
    project = await service.create(make_project())
    await service.review(project.id, ProjectReview(impact_score_considered=1))

    cleared = await service.review(project.id, ProjectReview.model_validate({"impact_score_considered": None}))

    assert cleared.impact_score_considered is None
    assert cleared.score_weighted == pytest.approx(4.2)


@pytest.mark.asyncio
async def test_review_without_overrides_is_not_marked(service, make_project):
    project = await service.create(make_project())
    reviewed = await service.review(project.id, ProjectReview(management_comments="Needs scoping"))
    assert reviewed.is_reviewed_by_team is False
    assert reviewed.score_weighted == pytest.approx(4.2)


@pytest.mark.asyncio
async def test_review_rederives_frequency(service, make_project):
    project = await service.create(make_project(frequency_score=1))
    reviewed = await service.review(project.id, ProjectReview(frequency_number=4, frequency_unit=FrequencyUnit.MONTH))
    assert reviewed.frequency_score == 4
    assert reviewed.score_raw == 12


@pytest.mark.asyncio
async def test_update_status_sets_only_given_milestones(service, make_project):
    project = await service.create(make_project())
    started = datetime(2025, 3, 1, tzinfo=timezone.utc)

    updated = await service.update_status(
        project.id,
        ProjectStatusUpdate(status=ProjectStatus.IN_DEVELOPMENT, development_started_at=started),
    )

    assert updated.status == ProjectStatus.IN_DEVELOPMENT
    assert updated.development_started_at == started
    assert updated.analysis_started_at is None


@pytest.mark.asyncio
async def test_list_filters_and_sorting(service, make_project):
    a = await service.create(
        make_project(
            title="Payroll export",
            short_description="Monthly payroll file",
            impact_score=1,
            requesting_department="Gerencia de Compras",
        )
    )
    b = await service.create(make_project(title="Claims portal", impact_score=5))
    c = await service.create(make_project(title="Claims 100% digital", impact_score=3))

    assert [p.id for p in await service.list_projects()] == [b.id, c.id, a.id]
    assert [p.id for p in await service.list_projects(ProjectFilters(sort_desc=False))] == [a.id, c.id, b.id]
    assert [p.id for p in await service.list_projects(ProjectFilters(department="Gerencia de Compras"))] == [a.id]
    assert [p.id for p in await service.list_projects(ProjectFilters(search="claims"))] == [b.id, c.id]
    assert [p.id for p in await service.list_projects(ProjectFilters(min_score=3.0, max_score=4.0))] == [c.id]
    assert [p.id for p in await service.list_projects(ProjectFilters(limit=1, offset=1))] == [c.id]
    assert await service.list_projects(ProjectFilters(status=[ProjectStatus.CLOSED])) == []


@pytest.mark.asyncio
async def test_top(service, make_project):
    for impact in (2, 5, 4):
        await service.create(make_project(title=f"Impact {impact}", impact_score=impact))
    top = await service.top(2)
    assert [p.impact_score for p in top] == [5, 4]
    with pytest.raises(ValidationError):
        await service.top(0)


@pytest.mark.asyncio
async def test_list_allocations(service, repos, settings, make_project, make_sprint):
    project = await service.create(make_project())
    allocator = CapacityAllocator(repos, settings)
    sprint = await allocator.create_sprint(make_sprint(name="Sprint 7"))
    await allocator.allocate(sprint.id, project.id, 12, comments="first slice")

    rows = await service.list_allocations(project.id)

    assert len(rows) == 1
    assert rows[0].sprint_name == "Sprint 7"
    assert rows[0].allocated_points == 12
    assert rows[0].comments == "first slice"


@pytest.mark.asyncio
async def test_frequency_migration_changes(service, weights, make_project):
    project = await service.create(make_project(frequency_score=1, frequency_description="3 veces por día"))

    changes = frequency_migration_changes(project, weights)

    assert changes["frequency_number"] == 3.0
    assert changes["frequency_unit"] == FrequencyUnit.DAY
    assert changes["frequency_score"] == 5
    assert changes["score_raw"] == 13
    # 5*0.4 + 5*0.4 + 3*0.2
    assert changes["score_weighted"] == pytest.approx(4.6)


class RescoredDuringReview(MemoryProjectRepository):
    """Lands a weights change and a rescored row before each of the first `races` review writes."""

    def __init__(self, store, new_weights: PriorityWeights, races: int = 1) -> None:
        super().__init__(store)
        self.new_weights = new_weights
        self.races = races
        self.review_writes = 0

    async def update(self, project_id, changes, expected_version=None):
        if expected_version is not None:
            self.review_writes += 1
            if self.races > 0:
                self.races -= 1
                self.store.weights = self.new_weights
                current = self.store.projects[project_id]
                await super().update(project_id, {"score_weighted": project_weighted_score(current, self.new_weights)})
        return await super().update(project_id, changes, expected_version)


def _racing_service(store, settings, races):
    projects = RescoredDuringReview(store, NEW_WEIGHTS, races)
    repos = MemoryStorage(store).repositories()
    repos.projects = projects
    return ProjectService(repos, settings), projects


@pytest.mark.asyncio
async def test_review_recomputes_after_concurrent_weights_change(store, settings, make_project):
    service, projects = _racing_service(store, settings, races=1)
    project = await service.create(make_project())

    reviewed = await service.review(project.id, ProjectReview(urgency_level_considered=UrgencyLevel.LOW))

    assert projects.review_writes == 2
    # 5*0.5 + 4*0.3 + 1*0.2, not the stale 3.8 from the old weights
    assert reviewed.score_weighted == pytest.approx(3.9)
    assert reviewed.score_weighted == pytest.approx(project_weighted_score(reviewed, NEW_WEIGHTS))


@pytest.mark.asyncio
async def test_review_gives_up_after_repeated_conflicts(store, settings, make_project):
    service, projects = _racing_service(store, settings, races=5)
    project = await service.create(make_project())

    with pytest.raises(ConflictError):
        await service.review(project.id, ProjectReview(impact_score_considered=1))
    assert projects.review_writes == 2
    assert (await service.get(project.id)).impact_score_considered is None


@pytest.mark.asyncio
async def test_update_with_stale_version_is_rejected(repos, service, make_project):
    project = await service.create(make_project())
    await repos.projects.update(project.id, {"management_comments": "first"}, expected_version=project.version)

    with pytest.raises(ConflictError):
        await repos.projects.update(project.id, {"management_comments": "second"}, expected_version=project.version)
    assert (await service.get(project.id)).management_comments == "first"
