"""Shared fixtures: in-memory storage, settings without Jira, project factories."""
from datetime import date
from typing import Any

import pytest
from fastapi.testclient import TestClient

from intake_planner.config import Settings
from intake_planner.main import create_app
from intake_planner.repositories.memory import InMemoryStore, MemoryStorage
from intake_planner.schemas.project import ProjectCreate
from intake_planner.schemas.sprint import SprintCreate
from intake_planner.schemas.weights import PriorityWeights


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        database_url="",
        jira_domain="",
        jira_email="",
        jira_api_token="",
        jira_project_key="",
    )


@pytest.fixture
def weights() -> PriorityWeights:
    return PriorityWeights(impact_weight=0.4, frequency_weight=0.4, urgency_weight=0.2)


@pytest.fixture
def store(weights: PriorityWeights) -> InMemoryStore:
    return InMemoryStore(weights)


@pytest.fixture
def repos(store: InMemoryStore):
    return MemoryStorage(store).repositories()


def build_project(**overrides: Any) -> ProjectCreate:
    data: dict[str, Any] = {
        "requesting_department": "Gerencia General",
        "title": "Automate claims intake",
        "short_description": "Replace the claims spreadsheet",
        "problem_description": "Claims are typed by hand from email attachments.",
        "impact_score": 5,
        "frequency_score": 4,
        "urgency_level": "high",
        "contact_name": "Ana Perez",
        "contact_email": "ana.perez@example.com",
    }
    data.update(overrides)
    return ProjectCreate(**data)


def build_sprint(**overrides: Any) -> SprintCreate:
    data: dict[str, Any] = {
        "name": "Sprint 1",
        "start_date": date(2025, 3, 3),
        "end_date": date(2025, 3, 14),
        "capacity_points": 120,
    }
    data.update(overrides)
    return SprintCreate(**data)


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_project():
    return build_project


@pytest.fixture
def make_sprint():
    return build_sprint
