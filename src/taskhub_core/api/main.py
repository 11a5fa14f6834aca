"""TaskHub Core FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from .error_handlers import register_error_handlers
from .routers import projects, tasks, users

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("taskhub-core")

logger.info("Starting TaskHub Core API")

# Create FastAPI app
app = FastAPI(
    title="TaskHub Core API",
    description="Users, projects and tasks with role and assignment based access control",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include all business logic routers with /api/v1 prefix
app.include_router(users.router, prefix="/api/v1/users")
app.include_router(projects.router, prefix="/api/v1/projects")
app.include_router(tasks.router, prefix="/api/v1/tasks")


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "TaskHub Core API",
        "version": "1.0.0",
        "docs": "/docs",
        "description": "Users, projects and tasks with role and assignment based access control",
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
