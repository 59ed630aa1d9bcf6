"""FastAPI dependencies."""
from typing import Annotated, AsyncIterator

from fastapi import Depends, Request

from intake_planner.config import Settings
from intake_planner.repositories.base import Repositories, Storage
from intake_planner.services.ticketing import TicketingService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


async def get_repositories(storage: Annotated[Storage, Depends(get_storage)]) -> AsyncIterator[Repositories]:
    async with storage.session() as repos:
        yield repos


def get_ticketing(request: Request) -> TicketingService:
    return request.app.state.ticketing


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ReposDep = Annotated[Repositories, Depends(get_repositories)]
TicketingDep = Annotated[TicketingService, Depends(get_ticketing)]
