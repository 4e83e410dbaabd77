"""FastAPI application and routers for Kanban Core."""
