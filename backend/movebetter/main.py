"""
MoveBetter - clinic management API for home-care physiotherapy.
Patients, scheduling, clinical records, treatment plans, packages and finances.
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import models  # noqa: F401  registers every table
from .api import (
    admin,
    appointments,
    auth,
    cep,
    clinical,
    dashboard,
    financial,
    packages,
    patients,
    realtime,
    reports,
    treatment_plans,
)
from .core.audit_middleware import AuditMiddleware
from .core.config import settings
from .core.exceptions import register_exception_handlers
from .datastore.client import BackendClient
from .models.base import Base, SessionLocal
from .seed_demo import seed_demo_data

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # NOTE: production deployments run Alembic migrations instead of create_all()
    Base.metadata.create_all(bind=app.state.session_factory.kw["bind"])
    if settings.SEED_DEMO_DATA:
        seed_demo_data(app.state.session_factory)
    logger.info("%s %s started", settings.APP_NAME, settings.VERSION)
    yield
    logger.info("%s shutting down", settings.APP_NAME)


def create_app(session_factory: Optional[Callable[[], Session]] = None) -> FastAPI:
    app = FastAPI(
        title="MoveBetter Clinic API",
        description=(
            "Clinic management for home-care physiotherapy: patients, sessions, "
            "medical records and evolutions, exercise plans, packages and finances."
        ),
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.session_factory = session_factory or SessionLocal
    app.state.backend = BackendClient(app.state.session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AuditMiddleware)
    register_exception_handlers(app)

    for router in (
        auth.router,
        patients.router,
        appointments.router,
        treatment_plans.router,
        treatment_plans.exercise_router,
        clinical.router,
        financial.router,
        packages.router,
        dashboard.router,
        reports.router,
        cep.router,
        realtime.router,
        admin.router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}

    return app


app = create_app()
