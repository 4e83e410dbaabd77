"""Kanban Core - multi-tenant project management backend.

This package provides the persistence layer, CRUD operations and HTTP API
for organizations, users, projects, Kanban tasks, comments and invitations.

Modules:
- config: Environment-driven settings
- database: Engine and session management
- models: SQLAlchemy models
- schemas: Pydantic request/response schemas
- task_ordering: Dense per-column task positioning primitives
- crud: CRUD operations for every resource
- api: FastAPI application and routers
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
