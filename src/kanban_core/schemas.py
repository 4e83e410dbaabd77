"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, EmailStr

from .models import (
    UserRole,
    TaskStatus,
    TaskPriority,
)


# ============================================================================
# Organization Schemas
# ============================================================================

class OrganizationBase(BaseModel):
    """Base schema for organization fields."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")


class OrganizationCreate(OrganizationBase):
    """Schema for creating a new organization."""

    pass


class OrganizationUpdate(BaseModel):
    """Schema for updating an organization."""

    name: str = Field(..., min_length=1, max_length=255)


class OrganizationResponse(OrganizationBase):
    """Schema for organization responses."""

    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class OrganizationListResponse(BaseModel):
    """Schema for paginated organization list."""

    items: list[OrganizationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============================================================================
# User Schemas
# ============================================================================

class UserCreate(BaseModel):
    """Schema for creating a user inside an organization."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.MEMBER
    organization_id: UUID
    avatar_url: Optional[str] = Field(None, max_length=1024)


class UserUpdate(BaseModel):
    """Schema for updating a user. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[UserRole] = None
    avatar_url: Optional[str] = Field(None, max_length=1024)
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    """Schema for user responses."""

    id: UUID
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: UserRole
    organization_id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# ============================================================================
# Project Schemas
# ============================================================================

class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    organization_id: UUID
    created_by: UUID


class ProjectUpdate(BaseModel):
    """Schema for updating a project."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None


class ProjectResponse(BaseModel):
    """Schema for project responses."""

    id: UUID
    name: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    organization_id: UUID
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class ProjectListResponse(BaseModel):
    """Schema for paginated project list."""

    items: list[ProjectResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============================================================================
# Project Member Schemas
# ============================================================================

class ProjectMemberCreate(BaseModel):
    """Schema for adding a user to a project."""

    user_id: UUID
    role: UserRole = UserRole.MEMBER


class ProjectMemberUpdate(BaseModel):
    """Schema for updating a project member's role."""

    role: UserRole


class ProjectMemberResponse(BaseModel):
    """Schema for project member responses."""

    id: UUID
    project_id: UUID
    user_id: UUID
    role: UserRole
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# ============================================================================
# Task Schemas
# ============================================================================

class TaskCreate(BaseModel):
    """Schema for creating a new task.

    The task is appended to the end of its status column; the position is
    never supplied by the caller.
    """

    title: str = Field(..., min_length=1, max_length=200, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    project_id: UUID = Field(..., description="Project UUID")
    assignee_id: Optional[UUID] = Field(None, description="Assigned user UUID (optional)")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(TaskStatus.TODO, description="Initial board column")
    due_date: Optional[datetime] = Field(None, description="Due date (optional)")
    created_by: UUID = Field(..., description="Creator user UUID")


class TaskUpdate(BaseModel):
    """Schema for partially updating a task.

    Only fields present in the request are applied, so ``assignee_id`` and
    ``due_date`` can be cleared by sending an explicit null. A status change
    without ``position`` appends the task to its new column; an explicit
    ``position`` is stored as given.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    assignee_id: Optional[UUID] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    position: Optional[int] = Field(None, ge=0)


class TaskMove(BaseModel):
    """Schema for moving a task on the board (drag & drop)."""

    status: TaskStatus = Field(..., description="Destination column")
    position: int = Field(..., ge=0, description="Zero-based index in the destination column after the move")


class TaskResponse(BaseModel):
    """Schema for full task response."""

    id: UUID
    title: str
    description: Optional[str] = None
    project_id: UUID
    assignee_id: Optional[UUID] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    position: int
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class TaskDeleteResponse(BaseModel):
    """Result of a task deletion; False when the task did not exist."""

    deleted: bool


class BoardColumn(BaseModel):
    """One status column of a project board."""

    status: TaskStatus
    tasks: list[TaskResponse]


class BoardResponse(BaseModel):
    """A project's tasks grouped into ordered columns."""

    project_id: UUID
    columns: list[BoardColumn]


class BoardHealthResponse(BaseModel):
    """Dense-ordering check result for a project board."""

    project_id: UUID
    consistent: bool
    violations: dict[str, list[int]] = Field(default_factory=dict)


# ============================================================================
# Comment Schemas
# ============================================================================

class CommentCreate(BaseModel):
    """Schema for adding a comment to a task."""

    content: str = Field(..., min_length=1)
    author_id: UUID


class CommentUpdate(BaseModel):
    """Schema for editing a comment."""

    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    """Schema for comment responses."""

    id: UUID
    content: str
    task_id: UUID
    author_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# ============================================================================
# Invitation Schemas
# ============================================================================

class InvitationCreate(BaseModel):
    """Schema for inviting an email address to an organization."""

    email: EmailStr
    organization_id: UUID
    role: UserRole = UserRole.MEMBER
    invited_by: UUID


class InvitationAccept(BaseModel):
    """Schema for accepting an invitation."""

    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)


class InvitationResponse(BaseModel):
    """Schema for invitation responses."""

    id: UUID
    email: str
    organization_id: UUID
    role: UserRole
    token: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    invited_by: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
