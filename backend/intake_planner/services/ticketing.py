"""Issue tracker integration. Ticket creation is fire-and-forget from the caller's point of view."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from intake_planner.config import Settings
from intake_planner.errors import TicketingError
from intake_planner.schemas.project import ProjectRead

logger = logging.getLogger(__name__)

# Jira custom field ids
FIELD_STORY_POINTS = "customfield_10016"
FIELD_DEPARTMENT = "customfield_10073"
FIELD_IMPACT_CATEGORIES = "customfield_10074"
FIELD_IMPACT_DESCRIPTION = "customfield_10075"
FIELD_IMPACT_SCORE = "customfield_10076"
FIELD_FREQUENCY_DESCRIPTION = "customfield_10077"
FIELD_FREQUENCY_SCORE = "customfield_10078"
FIELD_REQUIRES_CHANGES = "customfield_10079"
FIELD_DEPENDENCIES_DETAIL = "customfield_10080"

# Select-list option ids
DEPARTMENT_OPTIONS: dict[str, str] = {
    "Intervención": "10061",
    "Gerencia General": "10059",
    "Gerencia de Prestaciones Médicas": "10060",
    "Gerencia de Administración y Finanzas": "10064",
    "Gerencia Servicios a Beneficiarios": "10065",
    "Gerencia de Asuntos Jurídicos": "10066",
    "Gerencia de Recursos Humanos": "10062",
    "Gerencia de Compras": "10063",
    "Gerencia Procesos y Sistemas": "10067",
    "intervention": "10061",
    "general_management": "10059",
    "medical_services": "10060",
    "administration_finance": "10064",
    "beneficiary_services": "10065",
    "legal_affairs": "10066",
    "human_resources": "10062",
    "purchasing": "10063",
    "processes_systems": "10067",
}
IMPACT_CATEGORY_OPTIONS: dict[str, str] = {
    "efficiency": "10068",
    "member_experience": "10069",
    "control": "10070",
    "compliance": "10071",
    "others": "10072",
}
IMPACT_SCORE_OPTIONS: dict[int, str] = {1: "10073", 2: "10074", 3: "10075", 4: "10076", 5: "10077"}
FREQUENCY_SCORE_OPTIONS: dict[int, str] = {1: "10078", 2: "10079", 3: "10080", 4: "10081", 5: "10082"}
YES_OPTION = "10083"
NO_OPTION = "10084"

PRIORITY_BY_URGENCY = {"high": "High", "medium": "Medium", "low": "Low"}


@dataclass
class Ticket:
    key: str
    url: str


class TicketingService(ABC):
    @abstractmethod
    async def create_ticket(self, project: ProjectRead) -> Ticket | None:
        """Create an issue for a new project. None when ticketing is disabled."""


class NullTicketingService(TicketingService):
    async def create_ticket(self, project: ProjectRead) -> Ticket | None:
        logger.debug("Ticketing not configured; skipping project %s", project.id)
        return None


def build_description(project: ProjectRead) -> dict[str, Any]:
    """Atlassian Document Format body: problem statement, a rule, then the contact."""
    contact = project.contact_name + (f" ({project.contact_email})" if project.contact_email else "")
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": project.problem_description}]},
            {"type": "rule"},
            {
                "type": "paragraph",
                "content": [
                    {"type": "text", "text": "Contact: ", "marks": [{"type": "strong"}]},
                    {"type": "text", "text": contact},
                ],
            },
        ],
    }


def build_issue_payload(project: ProjectRead, project_key: str, issue_type: str) -> dict[str, Any]:
    urgency = getattr(project.urgency_level, "value", project.urgency_level)
    fields: dict[str, Any] = {
        "project": {"key": project_key},
        "summary": project.title,
        "description": build_description(project),
        "issuetype": {"name": issue_type},
        "priority": {"name": PRIORITY_BY_URGENCY[urgency]},
        FIELD_REQUIRES_CHANGES: {"id": YES_OPTION if project.has_external_dependencies else NO_OPTION},
    }
    department = DEPARTMENT_OPTIONS.get(project.requesting_department)
    if department:
        fields[FIELD_DEPARTMENT] = {"id": department}
    categories = [
        {"id": IMPACT_CATEGORY_OPTIONS[c]} for c in project.impact_categories or [] if c in IMPACT_CATEGORY_OPTIONS
    ]
    if categories:
        fields[FIELD_IMPACT_CATEGORIES] = categories
    if project.impact_description:
        fields[FIELD_IMPACT_DESCRIPTION] = project.impact_description
    if project.impact_score in IMPACT_SCORE_OPTIONS:
        fields[FIELD_IMPACT_SCORE] = {"id": IMPACT_SCORE_OPTIONS[project.impact_score]}
    if project.frequency_description:
        fields[FIELD_FREQUENCY_DESCRIPTION] = project.frequency_description
    if project.frequency_score in FREQUENCY_SCORE_OPTIONS:
        fields[FIELD_FREQUENCY_SCORE] = {"id": FREQUENCY_SCORE_OPTIONS[project.frequency_score]}
    if project.dependencies_detail:
        fields[FIELD_DEPENDENCIES_DETAIL] = project.dependencies_detail
    if project.development_points is not None:
        fields[FIELD_STORY_POINTS] = project.development_points
    return {"fields": fields}


class JiraTicketingService(TicketingService):
    """Creates Jira Cloud issues over the REST v3 API with basic auth."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self.settings = settings
        self.base_url = f"https://{settings.jira_domain}"
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(
                base_url=self.base_url,
                auth=(settings.jira_email, settings.jira_api_token),
                headers={"Accept": "application/json"},
                timeout=settings.jira_timeout_seconds,
            )
        )

    async def create_ticket(self, project: ProjectRead) -> Ticket:
        payload = build_issue_payload(project, self.settings.jira_project_key, self.settings.jira_issue_type)
        async with self._client_factory() as client:
            try:
                response = await client.post("/rest/api/3/issue", json=payload)
            except httpx.HTTPError as e:
                raise TicketingError(f"Jira request failed: {e}", project_id=project.id) from e
            if response.is_error:
                raise TicketingError(
                    f"Jira rejected issue for project {project.id}",
                    project_id=project.id,
                    status_code=response.status_code,
                    response_body=response.text,
                )
            key = response.json()["key"]
            await self._move_to_backlog(client, key)
        ticket = Ticket(key=key, url=f"{self.base_url}/browse/{key}")
        logger.info("Created Jira issue %s for project %s", key, project.id)
        return ticket

    async def _move_to_backlog(self, client: httpx.AsyncClient, key: str) -> None:
        """Best effort: a missing transition or failed call only logs."""
        path = f"/rest/api/3/issue/{key}/transitions"
        try:
            response = await client.get(path)
            if response.is_error:
                logger.warning("Could not list transitions for %s: HTTP %d", key, response.status_code)
                return
            for transition in response.json().get("transitions", []):
                target = (transition.get("to") or {}).get("name", "")
                if transition.get("name", "").lower() == "backlog" or target.lower() == "backlog":
                    await client.post(path, json={"transition": {"id": transition["id"]}})
                    return
        except httpx.HTTPError as e:
            logger.warning("Backlog transition failed for %s: %s", key, e)


def build_ticketing(settings: Settings) -> TicketingService:
    if settings.jira_configured:
        logger.info("Jira ticketing enabled for project %s", settings.jira_project_key)
        return JiraTicketingService(settings)
    return NullTicketingService()


async def dispatch_project_ticket(ticketing: TicketingService, project: ProjectRead) -> None:
    """Background task body. Failures are logged and never reach the request that created the project."""
    try:
        await ticketing.create_ticket(project)
    except TicketingError as e:
        logger.error("Ticket creation failed for project %s: %s", project.id, e.to_dict())
    except Exception:
        logger.exception("Unexpected error creating ticket for project %s", project.id)
