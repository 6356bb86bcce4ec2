"""Consultancy ERP FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from src.core.auth.router import router as auth_router
from src.core.config import settings
from src.core.exceptions import AppException
from src.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    sqlalchemy_db_error_handler,
    validation_exception_handler,
)
from src.core.log_config import configure_logging
from src.modules.colleges.router import router as colleges_router
from src.modules.enquiries.router import router as enquiries_router
from src.modules.handovers.router import router as handovers_router
from src.modules.payments.router import router as payments_router
from src.modules.students.router import router as students_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    yield
    # Shutdown


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Consultancy ERP",
        description="Admissions, academic progression and fee collection for an educational consultancy",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_db_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(colleges_router, prefix="/api/v1")
    app.include_router(students_router, prefix="/api/v1")
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(handovers_router, prefix="/api/v1")
    app.include_router(enquiries_router, prefix="/api/v1")

    return app


app = create_app()
