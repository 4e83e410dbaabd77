"""Kanban Core FastAPI application - Solo mode (no authentication)."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kanban_core import __version__
from kanban_core.config import get_settings
from .routers import organizations, users, projects, tasks, comments, invitations

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("kanban-core")

logger.info("Starting Kanban Core API (solo mode - no authentication)")

# Create FastAPI app
app = FastAPI(
    title="Kanban Core API",
    description="Multi-tenant project management with Kanban boards",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - Open for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers with /api/v1 prefix
app.include_router(organizations.router, prefix="/api/v1/organizations")
app.include_router(users.router, prefix="/api/v1/users")
app.include_router(projects.router, prefix="/api/v1/projects")
app.include_router(tasks.router, prefix="/api/v1/tasks")
app.include_router(comments.router, prefix="/api/v1/comments")
app.include_router(invitations.router, prefix="/api/v1/invitations")


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "Kanban Core API",
        "version": __version__,
        "mode": "solo",
        "authentication": False,
        "docs": "/docs",
        "description": "Multi-tenant project management with Kanban boards"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "mode": "solo"}
