"""FastAPI application factory for BuildTrack.

Creates and configures the FastAPI app with CORS, sessions,
and all route modules registered.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from buildtrack import __version__
from buildtrack.core.clients import ClientManager
from buildtrack.core.config import Settings, get_settings
from buildtrack.core.onboarding import OnboardingService
from buildtrack.core.phases.tracker import PhaseTracker
from buildtrack.core.quiz import QuizManager

logger = logging.getLogger(__name__)


def create_app(db_manager, settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_manager: DatabaseManager instance
        settings: Settings instance (defaults to get_settings())

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="BuildTrack API",
        description="Client onboarding and 14-day build tracking",
        version=__version__,
    )

    # Session middleware (email login sessions)
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store shared dependencies on app state
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.phase_tracker = PhaseTracker(db_manager)
    app.state.client_manager = ClientManager(db_manager)
    app.state.quiz_manager = QuizManager(db_manager)
    app.state.onboarding_service = OnboardingService(db_manager)

    # Register routers
    from .routes.auth import router as auth_router
    from .routes.users import router as users_router
    from .routes.my_project import router as my_project_router
    from .routes.onboarding import router as onboarding_router
    from .routes.quiz import router as quiz_router
    from .routes.projects import router as projects_router

    app.include_router(auth_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(my_project_router, prefix="/api")
    app.include_router(onboarding_router, prefix="/api")
    app.include_router(quiz_router, prefix="/api")
    app.include_router(projects_router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "ok",
            "service": "buildtrack",
            "database": "ok" if db_manager.ping() else "unavailable",
        }

    logger.info("FastAPI app created with all routes registered")
    return app
