"""API routers for Kanban Core."""

from . import organizations, users, projects, tasks, comments, invitations

__all__ = ["organizations", "users", "projects", "tasks", "comments", "invitations"]
