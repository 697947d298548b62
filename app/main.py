import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings as default_settings
from app.core.database import Database
from app.core.exceptions import register_exception_handlers
from app.core.logging import configure_logging
from app.middleware import CorrelationIdMiddleware
from app.services.gemini_service import GeminiImageAnalyzer
from app.services.inspection_service import sweep_stale_analyses
from utils.file_utils import ImageStorage

# Route imports
from app.api.health import router as health_router
from app.api.v1 import auth as auth_router
from app.api.v1 import dashboard as v1_dashboard
from app.api.v1 import inspections as v1_inspections
from app.api.v1 import reports as v1_reports

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, analyzer=None, storage: Optional[ImageStorage] = None) -> FastAPI:
    """Build the API. ``analyzer`` and ``storage`` replace the Gemini client and disk storage when given."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting app", extra={"app": settings.APP_NAME, "environment": settings.ENVIRONMENT})
        db = Database(settings.DATABASE_URL)
        if settings.CREATE_TABLES_ON_START:
            await db.create_all()
        async with db.session() as session:
            await sweep_stale_analyses(session, timedelta(minutes=settings.ANALYSIS_GRACE_MINUTES))

        app.state.db = db
        app.state.storage = storage or ImageStorage(
            settings.UPLOAD_DIR, settings.MAX_FILE_SIZE, settings.ALLOWED_IMAGE_EXTENSIONS
        )
        app.state.analyzer = analyzer or GeminiImageAnalyzer(settings)
        try:
            yield
        finally:
            logger.info("Shutting down")
            await db.dispose()

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.settings = settings

    # Middleware: correlation id
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Content-Disposition"],
    )

    # Register routers
    app.include_router(health_router, prefix="/api", tags=["health"])

    # v1 API routes
    app.include_router(auth_router.router, prefix="/api/v1", tags=["auth"])
    app.include_router(v1_inspections.router, prefix="/api/v1", tags=["inspections"])
    app.include_router(v1_dashboard.router, prefix="/api/v1", tags=["dashboard"])
    app.include_router(v1_reports.router, prefix="/api/v1", tags=["reports"])

    # Exception handlers
    register_exception_handlers(app)
    return app


app = create_app()
