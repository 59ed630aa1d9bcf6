"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intake_planner.config import Settings, get_settings
from intake_planner.errors import IntakeError, ValidationError
from intake_planner.repositories import build_storage
from intake_planner.routers import projects, sprints, weights
from intake_planner.schemas.weights import PriorityWeights
from intake_planner.services.ticketing import build_ticketing

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    storage = build_storage(settings)
    await storage.start(
        PriorityWeights(
            impact_weight=settings.default_impact_weight,
            frequency_weight=settings.default_frequency_weight,
            urgency_weight=settings.default_urgency_weight,
        )
    )
    app.state.storage = storage
    app.state.ticketing = build_ticketing(settings)
    logger.info("Intake Planner started (env=%s, storage=%s)", settings.app_env, storage.name)
    yield
    await storage.close()


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict()})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors.setdefault(".".join(loc) or "request", []).append(error.get("msg", "invalid"))
    err = ValidationError("Request validation failed", field_errors=field_errors)
    return JSONResponse(status_code=err.http_status, content={"detail": err.to_dict()})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="Intake Planner",
        description="Development request intake, priority scoring and sprint capacity planning",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(weights.router)
    app.include_router(projects.router)
    app.include_router(sprints.router)
    app.include_router(sprints.allocations_router)

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "storage": request.app.state.storage.name}

    return app


app = create_app()
