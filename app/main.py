import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text

from .config import settings
from .database import engine, get_db
from .models import Base
from .core.middleware import ExceptionHandlingMiddleware
from .schemas.result import Result

# Import routes
from .api.v1 import auth, user, households, invitations

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # No migration tool yet; make sure the tables exist
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="HouseBudget API - Shared household membership and account lifecycle",
)

# Exception handling first so it wraps everything below
ExceptionHandlingMiddleware.install(app, log_internal_errors=True)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["authentication"]
)
app.include_router(user.router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])
app.include_router(
    invitations.router,
    prefix=f"{settings.API_V1_STR}/households/invitations",
    tags=["invitations"]
)
app.include_router(
    households.router,
    prefix=f"{settings.API_V1_STR}/households",
    tags=["households"]
)


@app.get("/", response_model=Result[dict])
def root():
    """Root endpoint with API information"""
    return Result.successful(
        data={
            "message": f"Welcome to {settings.PROJECT_NAME} API",
            "version": settings.VERSION,
            "docs": "/docs",
            "status": "online",
        }
    )


@app.get("/health", response_model=Result[dict])
def health_check(db: Session = Depends(get_db)):
    """Liveness check that also pings the database. A failing ping surfaces as a 500."""
    db.execute(text("SELECT 1"))
    return Result.successful(data={"status": "healthy", "database": "connected"})
