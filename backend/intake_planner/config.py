"""Application configuration."""
from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings

from intake_planner.models.project import ProjectStatus


class Settings(BaseSettings):
    """Application settings from environment."""

    # Storage: "auto" uses the database when database_url is set, memory otherwise
    database_url: str = ""
    storage_backend: Literal["auto", "database", "memory"] = "auto"
    database_echo: bool = False

    # Application
    app_env: str = "development"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    log_level: str = "INFO"

    # Seed weights for the active priority configuration
    default_impact_weight: float = 0.4
    default_frequency_weight: float = 0.4
    default_urgency_weight: float = 0.2

    # Scoring tolerances
    weights_sum_epsilon: float = 1e-6
    score_change_epsilon: float = 1e-6
    recalculation_conflict_retries: int = 1

    # Backlog / listings
    backlog_status: ProjectStatus = ProjectStatus.PRIORITIZED
    default_list_limit: int = 100

    # Jira ticketing
    jira_domain: str = ""
    jira_email: str = ""
    jira_api_token: str = ""
    jira_project_key: str = ""
    jira_issue_type: str = "Task"
    jira_timeout_seconds: float = 10.0

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def resolved_storage_backend(self) -> str:
        if self.storage_backend != "auto":
            return self.storage_backend
        return "database" if self.database_url.strip() else "memory"

    @property
    def jira_configured(self) -> bool:
        return all(
            v.strip()
            for v in (self.jira_domain, self.jira_email, self.jira_api_token, self.jira_project_key)
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
