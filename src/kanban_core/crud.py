"""CRUD operations for organizations, users, projects, tasks, comments and invitations."""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from . import models, schemas
from .config import get_settings
from .exceptions import (
    AssigneeNotFoundError,
    AuthorNotFoundError,
    ConflictError,
    CreatorNotFoundError,
    InvitationError,
    InvitationNotFoundError,
    InviterNotFoundError,
    MembershipNotFoundError,
    OrganizationNotFoundError,
    PositionOutOfRangeError,
    ProjectNotFoundError,
    TaskNotFoundError,
    UserNotFoundError,
)
from .task_ordering import (
    column_size,
    locked_project,
    next_position,
    shift_positions,
    status_sort_expression,
)

logger = logging.getLogger("kanban-core.crud")


# ============================================================================
# Organization CRUD Operations
# ============================================================================

def create_organization(
    db: Session,
    name: str,
    slug: str,
) -> models.Organization:
    """
    Create a new organization.

    Args:
        db: Database session
        name: Organization name
        slug: URL-friendly slug (lowercase, alphanumeric, hyphens)

    Returns:
        Created organization instance

    Raises:
        ConflictError: If the slug is already taken
    """
    if get_organization_by_slug(db, slug):
        raise ConflictError(f"Organization with slug '{slug}' already exists")

    db_org = models.Organization(name=name, slug=slug)
    db.add(db_org)
    db.commit()
    db.refresh(db_org)
    logger.debug(f"Created organization {db_org.id} ({db_org.slug})")
    return db_org


def get_organization(db: Session, organization_id: UUID) -> Optional[models.Organization]:
    """
    Get an organization by ID.

    Args:
        db: Database session
        organization_id: Organization UUID

    Returns:
        Organization instance or None if not found
    """
    return db.query(models.Organization).filter(models.Organization.id == organization_id).first()


def get_organization_by_slug(db: Session, slug: str) -> Optional[models.Organization]:
    """
    Get an organization by slug.

    Args:
        db: Database session
        slug: Organization slug

    Returns:
        Organization instance or None if not found
    """
    return db.query(models.Organization).filter(models.Organization.slug == slug).first()


def get_organizations(
    db: Session,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[models.Organization], int]:
    """
    Get organizations with pagination.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return

    Returns:
        Tuple of (organizations list, total count)
    """
    query = db.query(models.Organization)
    total = query.count()
    organizations = (
        query.order_by(models.Organization.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return organizations, total


def update_organization(
    db: Session,
    organization_id: UUID,
    name: str,
) -> Optional[models.Organization]:
    """
    Rename an organization.

    Returns:
        Updated organization or None if not found
    """
    db_org = get_organization(db, organization_id)
    if not db_org:
        return None

    db_org.name = name
    db.commit()
    db.refresh(db_org)
    logger.debug(f"Updated organization {organization_id}")
    return db_org


def delete_organization(db: Session, organization_id: UUID) -> bool:
    """
    Delete an organization and all its data (cascading delete).

    Returns:
        True if deleted, False if not found
    """
    db_org = get_organization(db, organization_id)
    if not db_org:
        return False

    db.delete(db_org)
    db.commit()
    logger.debug(f"Deleted organization {organization_id}")
    return True


# ============================================================================
# User CRUD Operations
# ============================================================================

def user_exists(db: Session, user_id: UUID) -> bool:
    """Return True if a user with this ID exists."""
    return db.query(models.User.id).filter(models.User.id == user_id).first() is not None


def get_user(db: Session, user_id: UUID) -> Optional[models.User]:
    """Get a user by ID, or None if not found."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """Get a user by email address (case-insensitive)."""
    return db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()


def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    """
    Create a user inside an organization.

    Args:
        db: Database session
        user: User creation data

    Returns:
        Created user

    Raises:
        OrganizationNotFoundError: If the organization does not exist
        ConflictError: If the email is already registered
    """
    if not get_organization(db, user.organization_id):
        raise OrganizationNotFoundError(user.organization_id)
    if get_user_by_email(db, user.email):
        raise ConflictError(f"User with email '{user.email}' already exists")

    db_user = models.User(
        email=user.email,
        name=user.name,
        role=user.role,
        organization_id=user.organization_id,
        avatar_url=user.avatar_url,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.debug(f"Created user {db_user.id} ({db_user.email}) in org {user.organization_id}")
    return db_user


def get_users_by_organization(
    db: Session,
    organization_id: UUID,
    include_inactive: bool = False,
) -> list[models.User]:
    """
    List the users of an organization, active users only by default.

    Raises:
        OrganizationNotFoundError: If the organization does not exist
    """
    if not get_organization(db, organization_id):
        raise OrganizationNotFoundError(organization_id)

    query = db.query(models.User).filter(models.User.organization_id == organization_id)
    if not include_inactive:
        query = query.filter(models.User.is_active.is_(True))
    return query.order_by(models.User.name).all()


def update_user(
    db: Session,
    user_id: UUID,
    user_update: schemas.UserUpdate,
) -> Optional[models.User]:
    """
    Update the fields present in ``user_update``.

    Returns:
        Updated user or None if not found
    """
    db_user = get_user(db, user_id)
    if not db_user:
        return None

    for field, value in user_update.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "role", "is_active"):
            continue
        setattr(db_user, field, value)

    db.commit()
    db.refresh(db_user)
    logger.debug(f"Updated user {user_id}")
    return db_user


def deactivate_user(db: Session, user_id: UUID) -> Optional[models.User]:
    """
    Soft-delete a user by clearing ``is_active``.

    Returns:
        Updated user or None if not found
    """
    db_user = get_user(db, user_id)
    if not db_user:
        return None

    db_user.is_active = False
    db.commit()
    db.refresh(db_user)
    logger.info(f"Deactivated user {user_id}")
    return db_user


# ============================================================================
# Project CRUD Operations
# ============================================================================

def project_exists(db: Session, project_id: UUID) -> bool:
    """Return True if a project with this ID exists."""
    return db.query(models.Project.id).filter(models.Project.id == project_id).first() is not None


def create_project(db: Session, project: schemas.ProjectCreate) -> models.Project:
    """
    Create a new project and make its creator a project admin.

    Both rows are written in one transaction.

    Args:
        db: Database session
        project: Project creation data

    Returns:
        Created project instance

    Raises:
        OrganizationNotFoundError: If the organization does not exist
        CreatorNotFoundError: If the creating user does not exist
    """
    if not get_organization(db, project.organization_id):
        raise OrganizationNotFoundError(project.organization_id)
    if not user_exists(db, project.created_by):
        raise CreatorNotFoundError(project.created_by)

    db_project = models.Project(
        organization_id=project.organization_id,
        name=project.name,
        description=project.description,
        deadline=project.deadline,
        created_by=project.created_by,
    )
    db.add(db_project)
    db.flush()  # Get project ID for the membership row

    db.add(models.ProjectMember(
        project_id=db_project.id,
        user_id=project.created_by,
        role=models.UserRole.ADMIN,
    ))
    db.commit()
    db.refresh(db_project)
    logger.debug(f"Created project {db_project.id} in org {project.organization_id}")
    return db_project


def get_project(db: Session, project_id: UUID) -> Optional[models.Project]:
    """
    Get a project by ID.

    Args:
        db: Database session
        project_id: Project UUID

    Returns:
        Project instance or None if not found
    """
    return db.query(models.Project).filter(models.Project.id == project_id).first()


def get_projects(
    db: Session,
    organization_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[models.Project], int]:
    """
    Get projects with optional organization filter and pagination.

    Returns:
        Tuple of (projects list, total count)
    """
    query = db.query(models.Project)
    if organization_id:
        query = query.filter(models.Project.organization_id == organization_id)

    total = query.count()
    projects = (
        query.order_by(models.Project.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return projects, total


def update_project(
    db: Session,
    project_id: UUID,
    project_update: schemas.ProjectUpdate,
) -> Optional[models.Project]:
    """
    Update the fields present in ``project_update``.

    Returns:
        Updated project or None if not found
    """
    db_project = get_project(db, project_id)
    if not db_project:
        return None

    for field, value in project_update.model_dump(exclude_unset=True).items():
        if value is None and field == "name":
            continue
        setattr(db_project, field, value)

    db.commit()
    db.refresh(db_project)
    logger.debug(f"Updated project {project_id}")
    return db_project


def delete_project(db: Session, project_id: UUID) -> bool:
    """
    Delete a project with its tasks and members (cascading delete).

    Returns:
        True if deleted, False if not found
    """
    db_project = get_project(db, project_id)
    if not db_project:
        return False

    db.delete(db_project)
    db.commit()
    logger.debug(f"Deleted project {project_id}")
    return True


# ============================================================================
# Project Member CRUD Operations
# ============================================================================

def get_project_member(
    db: Session,
    project_id: UUID,
    user_id: UUID,
) -> Optional[models.ProjectMember]:
    """Get a single project membership, or None."""
    return (
        db.query(models.ProjectMember)
        .filter(
            and_(
                models.ProjectMember.project_id == project_id,
                models.ProjectMember.user_id == user_id,
            )
        )
        .first()
    )


def add_project_member(
    db: Session,
    project_id: UUID,
    user_id: UUID,
    role: models.UserRole = models.UserRole.MEMBER,
) -> models.ProjectMember:
    """
    Add a user to a project with a specific role.

    Args:
        db: Database session
        project_id: Project UUID
        user_id: User UUID
        role: Project role

    Returns:
        Created project member instance

    Raises:
        UserNotFoundError: If the user does not exist
        ProjectNotFoundError: If the project does not exist
        ValueError: If the user belongs to a different organization
        ConflictError: If the user is already a member
    """
    user = get_user(db, user_id)
    if not user:
        raise UserNotFoundError(user_id)
    project = get_project(db, project_id)
    if not project:
        raise ProjectNotFoundError(project_id)

    if user.organization_id != project.organization_id:
        raise ValueError("User must be in the same organization as the project")

    if get_project_member(db, project_id, user_id):
        raise ConflictError("User is already a member of this project")

    db_member = models.ProjectMember(
        project_id=project_id,
        user_id=user_id,
        role=role,
    )
    db.add(db_member)
    db.commit()
    db.refresh(db_member)
    logger.debug(f"Added user {user_id} to project {project_id} with role {role.value}")
    return db_member


def get_project_members(
    db: Session,
    project_id: UUID,
) -> list[models.ProjectMember]:
    """
    Get all members of a project.

    Returns:
        List of project members, oldest first
    """
    return (
        db.query(models.ProjectMember)
        .filter(models.ProjectMember.project_id == project_id)
        .order_by(models.ProjectMember.created_at)
        .all()
    )


def update_project_member_role(
    db: Session,
    project_id: UUID,
    user_id: UUID,
    role: models.UserRole,
) -> models.ProjectMember:
    """
    Update a project member's role.

    Raises:
        MembershipNotFoundError: If the user is not a member of the project
    """
    db_member = get_project_member(db, project_id, user_id)
    if not db_member:
        raise MembershipNotFoundError(message="Project membership not found")

    db_member.role = role
    db.commit()
    db.refresh(db_member)
    logger.debug(f"Updated user {user_id} role in project {project_id} to {role.value}")
    return db_member


def remove_project_member(
    db: Session,
    project_id: UUID,
    user_id: UUID,
) -> bool:
    """
    Remove a user from a project.

    Tasks in the project assigned to the user are unassigned in the same
    transaction.

    Raises:
        MembershipNotFoundError: If the user is not a member of the project
    """
    db_member = get_project_member(db, project_id, user_id)
    if not db_member:
        raise MembershipNotFoundError(message="Project membership not found")

    unassigned = (
        db.query(models.Task)
        .filter(
            models.Task.project_id == project_id,
            models.Task.assignee_id == user_id,
        )
        .update({models.Task.assignee_id: None}, synchronize_session=False)
    )
    db.delete(db_member)
    db.commit()
    logger.debug(f"Removed user {user_id} from project {project_id} ({unassigned} task(s) unassigned)")
    return True


def is_project_member(db: Session, project_id: UUID, user_id: UUID) -> bool:
    """Return True if the user is a member of the project."""
    return get_project_member(db, project_id, user_id) is not None


def get_user_project_role(
    db: Session,
    project_id: UUID,
    user_id: UUID,
) -> Optional[models.UserRole]:
    """Return the user's role in the project, or None if not a member."""
    db_member = get_project_member(db, project_id, user_id)
    return db_member.role if db_member else None


# ============================================================================
# Task CRUD Operations
# ============================================================================

def _lock_task(db: Session, task_id: UUID) -> Optional[models.Task]:
    # Re-read inside the project lock so positions reflect committed writers
    return (
        db.query(models.Task)
        .filter(models.Task.id == task_id)
        .populate_existing()
        .first()
    )


def create_task(db: Session, task_data: schemas.TaskCreate) -> models.Task:
    """
    Create a new task at the end of its status column.

    All referenced entities are checked before anything is written.

    Args:
        db: Database session
        task_data: Task creation data

    Returns:
        Created Task with its computed position

    Raises:
        ProjectNotFoundError: If the project does not exist
        CreatorNotFoundError: If created_by does not exist
        AssigneeNotFoundError: If assignee_id is given and does not exist
    """
    if not project_exists(db, task_data.project_id):
        raise ProjectNotFoundError(task_data.project_id)
    if not user_exists(db, task_data.created_by):
        raise CreatorNotFoundError(task_data.created_by)
    if task_data.assignee_id is not None and not user_exists(db, task_data.assignee_id):
        raise AssigneeNotFoundError(task_data.assignee_id)

    with locked_project(db, task_data.project_id):
        task = models.Task(
            title=task_data.title,
            description=task_data.description,
            project_id=task_data.project_id,
            assignee_id=task_data.assignee_id,
            priority=task_data.priority,
            status=task_data.status,
            due_date=task_data.due_date,
            position=next_position(db, task_data.project_id, task_data.status),
            created_by=task_data.created_by,
        )
        db.add(task)
        db.flush()

    db.refresh(task)
    logger.info(f"Created task {task.id} at {task.status.value}[{task.position}]: {task.title}")
    return task


def get_task(db: Session, task_id: UUID) -> Optional[models.Task]:
    """
    Get a task by ID.

    Returns:
        Task or None if not found
    """
    return db.query(models.Task).filter(models.Task.id == task_id).first()


def get_tasks(db: Session, project_id: UUID) -> list[models.Task]:
    """
    Get all tasks of a project in board order (column, then position).

    Raises:
        ProjectNotFoundError: If the project does not exist
    """
    if not project_exists(db, project_id):
        raise ProjectNotFoundError(project_id)

    return (
        db.query(models.Task)
        .filter(models.Task.project_id == project_id)
        .order_by(status_sort_expression(), models.Task.position.asc())
        .all()
    )


def get_board(db: Session, project_id: UUID) -> dict[models.TaskStatus, list[models.Task]]:
    """
    Get a project's tasks grouped by column.

    Every status is present in the result, in board order, even when empty.

    Raises:
        ProjectNotFoundError: If the project does not exist
    """
    board: dict[models.TaskStatus, list[models.Task]] = {status: [] for status in models.TaskStatus}
    for task in get_tasks(db, project_id):
        board[task.status].append(task)
    return board


def get_tasks_by_assignee(db: Session, assignee_id: UUID) -> list[models.Task]:
    """
    Get all tasks assigned to a user.

    Ordered by due date (earliest first, undated last), then priority (high
    first), then creation time.

    Raises:
        AssigneeNotFoundError: If the user does not exist
    """
    if not user_exists(db, assignee_id):
        raise AssigneeNotFoundError(assignee_id)

    priority_order = case(
        {
            models.TaskPriority.HIGH: 0,
            models.TaskPriority.MEDIUM: 1,
            models.TaskPriority.LOW: 2,
        },
        value=models.Task.priority,
    )
    return (
        db.query(models.Task)
        .filter(models.Task.assignee_id == assignee_id)
        .order_by(
            models.Task.due_date.asc().nulls_last(),
            priority_order,
            models.Task.created_at.asc(),
        )
        .all()
    )


def update_task(
    db: Session,
    task_id: UUID,
    task_update: schemas.TaskUpdate,
) -> models.Task:
    """
    Apply a partial update to a task.

    Only fields present in ``task_update`` are changed. When the status
    changes and no position is given, the task is appended to its new column
    and the gap it leaves in the old column is closed. An explicit position is
    written exactly as given, without shifting any other task.

    Args:
        db: Database session
        task_id: Task UUID
        task_update: Update data

    Returns:
        Updated Task

    Raises:
        TaskNotFoundError: If the task does not exist
        AssigneeNotFoundError: If a new assignee does not exist
    """
    existing = get_task(db, task_id)
    if not existing:
        raise TaskNotFoundError(task_id)

    changes = task_update.model_dump(exclude_unset=True)
    new_assignee = changes.get("assignee_id")
    if new_assignee is not None and not user_exists(db, new_assignee):
        raise AssigneeNotFoundError(new_assignee)

    new_status = changes.pop("status", None)
    new_position = changes.pop("position", None)

    with locked_project(db, existing.project_id):
        task = _lock_task(db, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        for field, value in changes.items():
            if value is None and field in ("title", "priority"):
                continue
            setattr(task, field, value)

        if new_status is not None and new_status != task.status:
            if new_position is None:
                new_position = next_position(db, task.project_id, new_status)
                shift_positions(db, task.project_id, task.status, -1, start=task.position + 1)
            logger.debug(f"Task {task_id} status {task.status.value} -> {new_status.value}")
            task.status = new_status

        if new_position is not None:
            task.position = new_position

        task.updated_at = datetime.utcnow()

    db.refresh(task)
    logger.info(f"Updated task {task.id}")
    return task


def move_task(
    db: Session,
    task_id: UUID,
    status: models.TaskStatus,
    position: int,
) -> models.Task:
    """
    Move a task to a column and index (Kanban drag & drop).

    ``position`` is the index the task occupies in the destination column
    after the move. Tasks between the old and new slot are shifted so both
    columns stay dense. The shifts and the final assignment commit together
    or not at all.

    Targets past the end of the destination are rejected rather than accepted
    as-is: the largest valid position is the destination size with the moved
    task left out (the last slot within the same column, one past the last
    slot in another column). Clients that relied on any position being
    accepted must clamp before calling.

    Args:
        db: Database session
        task_id: Task UUID
        status: Destination column
        position: Destination index

    Returns:
        The moved Task

    Raises:
        TaskNotFoundError: If the task does not exist
        PositionOutOfRangeError: If position is past the end of the column
    """
    existing = get_task(db, task_id)
    if not existing:
        raise TaskNotFoundError(task_id)

    with locked_project(db, existing.project_id):
        task = _lock_task(db, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        project_id = task.project_id
        current_status = task.status
        current_position = task.position
        same_column = status == current_status

        # Size of the destination without the moved task is also its last valid index
        last_index = column_size(db, project_id, status, exclude_task_id=task.id)
        if position > last_index:
            raise PositionOutOfRangeError(
                f"Position {position} is out of range for column '{status.value}' "
                f"(valid positions: 0-{last_index})",
                requested_position=position,
                max_position=last_index,
            )

        if same_column:
            if position < current_position:
                # Moving up: make room by pushing [position, current) down
                shift_positions(db, project_id, status, +1, start=position, end=current_position - 1)
            elif position > current_position:
                # Moving down: pull (current, position] up into the gap
                shift_positions(db, project_id, status, -1, start=current_position + 1, end=position)
        else:
            shift_positions(db, project_id, status, +1, start=position)
            shift_positions(db, project_id, current_status, -1, start=current_position + 1)

        task.status = status
        task.position = position
        task.updated_at = datetime.utcnow()

    db.refresh(task)
    logger.info(
        f"Moved task {task.id} from {current_status.value}[{current_position}] "
        f"to {status.value}[{position}]"
    )
    return task


def delete_task(db: Session, task_id: UUID) -> bool:
    """
    Delete a task and close the gap it leaves in its column.

    A missing task is not an error: the call returns False and changes
    nothing.

    Returns:
        True if the task was deleted, False if it did not exist
    """
    existing = get_task(db, task_id)
    if not existing:
        return False

    deleted = False
    with locked_project(db, existing.project_id):
        task = _lock_task(db, task_id)
        if task is not None:
            status = task.status
            position = task.position
            db.delete(task)
            db.flush()
            shift_positions(db, task.project_id, status, -1, start=position + 1)
            deleted = True

    if deleted:
        logger.info(f"Deleted task {task_id} from {status.value}[{position}]")
    return deleted


# ============================================================================
# Comment CRUD Operations
# ============================================================================

def create_comment(
    db: Session,
    task_id: UUID,
    comment: schemas.CommentCreate,
) -> models.Comment:
    """
    Add a comment to a task.

    Raises:
        TaskNotFoundError: If the task does not exist
        AuthorNotFoundError: If the author does not exist
    """
    if not get_task(db, task_id):
        raise TaskNotFoundError(task_id)
    if not user_exists(db, comment.author_id):
        raise AuthorNotFoundError(comment.author_id)

    db_comment = models.Comment(
        content=comment.content,
        task_id=task_id,
        author_id=comment.author_id,
    )
    db.add(db_comment)
    db.commit()
    db.refresh(db_comment)
    logger.debug(f"Added comment {db_comment.id} to task {task_id}")
    return db_comment


def get_comments(db: Session, task_id: UUID) -> list[models.Comment]:
    """
    Get all comments on a task, oldest first.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    if not get_task(db, task_id):
        raise TaskNotFoundError(task_id)

    return (
        db.query(models.Comment)
        .filter(models.Comment.task_id == task_id)
        .order_by(models.Comment.created_at.asc())
        .all()
    )


def get_comment(db: Session, comment_id: UUID) -> Optional[models.Comment]:
    """Get a comment by ID, or None if not found."""
    return db.query(models.Comment).filter(models.Comment.id == comment_id).first()


def update_comment(db: Session, comment_id: UUID, content: str) -> Optional[models.Comment]:
    """
    Replace a comment's content.

    Returns:
        Updated comment or None if not found
    """
    db_comment = get_comment(db, comment_id)
    if not db_comment:
        return None

    db_comment.content = content
    db.commit()
    db.refresh(db_comment)
    return db_comment


def delete_comment(db: Session, comment_id: UUID) -> bool:
    """
    Delete a comment.

    Returns:
        True if deleted, False if not found
    """
    db_comment = get_comment(db, comment_id)
    if not db_comment:
        return False

    db.delete(db_comment)
    db.commit()
    return True


# ============================================================================
# Invitation CRUD Operations
# ============================================================================

def generate_invitation_token() -> str:
    """Return a random 64-character hex token."""
    return secrets.token_hex(32)


def _invitation_expiry(ttl_days: Optional[int]) -> datetime:
    if ttl_days is None:
        ttl_days = get_settings().invitation_ttl_days
    return datetime.utcnow() + timedelta(days=ttl_days)


def _pending_invitations_query(db: Session, organization_id: UUID):
    return db.query(models.Invitation).filter(
        models.Invitation.organization_id == organization_id,
        models.Invitation.accepted_at.is_(None),
        models.Invitation.expires_at > datetime.utcnow(),
    )


def create_invitation(
    db: Session,
    invitation: schemas.InvitationCreate,
    ttl_days: Optional[int] = None,
) -> models.Invitation:
    """
    Invite an email address to join an organization.

    Args:
        db: Database session
        invitation: Invitation data
        ttl_days: Days until expiry (default from settings)

    Returns:
        Created invitation, including its token

    Raises:
        OrganizationNotFoundError: If the organization does not exist
        InviterNotFoundError: If the inviting user does not exist
        ConflictError: If the email already belongs to the organization or has a pending invitation
    """
    if not get_organization(db, invitation.organization_id):
        raise OrganizationNotFoundError(invitation.organization_id)
    if not user_exists(db, invitation.invited_by):
        raise InviterNotFoundError(invitation.invited_by)

    existing_user = get_user_by_email(db, invitation.email)
    if existing_user and existing_user.organization_id == invitation.organization_id:
        raise ConflictError("User with this email is already a member of this organization")

    pending = (
        _pending_invitations_query(db, invitation.organization_id)
        .filter(func.lower(models.Invitation.email) == invitation.email.lower())
        .first()
    )
    if pending:
        raise ConflictError("A pending invitation already exists for this email")

    db_invitation = models.Invitation(
        email=invitation.email,
        organization_id=invitation.organization_id,
        role=invitation.role,
        token=generate_invitation_token(),
        expires_at=_invitation_expiry(ttl_days),
        invited_by=invitation.invited_by,
    )
    db.add(db_invitation)
    db.commit()
    db.refresh(db_invitation)
    logger.info(f"Created invitation {db_invitation.id} for {invitation.email}")
    return db_invitation


def get_invitation(db: Session, invitation_id: UUID) -> Optional[models.Invitation]:
    """Get an invitation by ID, or None if not found."""
    return db.query(models.Invitation).filter(models.Invitation.id == invitation_id).first()


def get_invitation_by_token(db: Session, token: str) -> Optional[models.Invitation]:
    """
    Get a usable invitation by token.

    Returns:
        The invitation, or None if the token is unknown, expired or already accepted
    """
    invitation = db.query(models.Invitation).filter(models.Invitation.token == token).first()
    if not invitation:
        return None
    if invitation.accepted_at is not None or invitation.expires_at < datetime.utcnow():
        return None
    return invitation


def get_pending_invitations(db: Session, organization_id: UUID) -> list[models.Invitation]:
    """List unaccepted, unexpired invitations of an organization."""
    return (
        _pending_invitations_query(db, organization_id)
        .order_by(models.Invitation.created_at.desc())
        .all()
    )


def accept_invitation(db: Session, accept: schemas.InvitationAccept) -> models.User:
    """
    Accept an invitation, creating the invited user.

    The user gets the invitation's organization and role; the invitation is
    marked accepted in the same transaction.

    Raises:
        InvitationNotFoundError: If the token is unknown
        InvitationError: If the invitation was already accepted or has expired
        ConflictError: If a user with the invited email already exists
    """
    invitation = db.query(models.Invitation).filter(models.Invitation.token == accept.token).first()
    if not invitation:
        raise InvitationNotFoundError(message="Invalid invitation token")
    if invitation.accepted_at is not None:
        raise InvitationError("Invitation has already been accepted")
    if invitation.expires_at < datetime.utcnow():
        raise InvitationError("Invitation has expired")

    existing_user = get_user_by_email(db, invitation.email)
    if existing_user:
        if existing_user.organization_id == invitation.organization_id:
            raise ConflictError("User with this email is already a member of this organization")
        raise ConflictError(f"User with email '{invitation.email}' already exists")

    db_user = models.User(
        email=invitation.email,
        name=accept.name,
        role=invitation.role,
        organization_id=invitation.organization_id,
    )
    db.add(db_user)
    invitation.accepted_at = datetime.utcnow()
    db.commit()
    db.refresh(db_user)
    logger.info(f"Invitation {invitation.id} accepted by new user {db_user.id}")
    return db_user


def revoke_invitation(db: Session, invitation_id: UUID) -> bool:
    """
    Delete a pending invitation.

    Raises:
        InvitationNotFoundError: If the invitation does not exist
        InvitationError: If the invitation was already accepted
    """
    invitation = get_invitation(db, invitation_id)
    if not invitation:
        raise InvitationNotFoundError(invitation_id)
    if invitation.accepted_at is not None:
        raise InvitationError("Cannot revoke an already accepted invitation")

    db.delete(invitation)
    db.commit()
    logger.info(f"Revoked invitation {invitation_id}")
    return True


def resend_invitation(
    db: Session,
    invitation_id: UUID,
    ttl_days: Optional[int] = None,
) -> models.Invitation:
    """
    Issue a fresh token and expiry for a pending invitation.

    Raises:
        InvitationNotFoundError: If the invitation does not exist
        InvitationError: If the invitation was already accepted
    """
    invitation = get_invitation(db, invitation_id)
    if not invitation:
        raise InvitationNotFoundError(invitation_id)
    if invitation.accepted_at is not None:
        raise InvitationError("Cannot resend an already accepted invitation")

    invitation.token = generate_invitation_token()
    invitation.expires_at = _invitation_expiry(ttl_days)
    db.commit()
    db.refresh(invitation)
    logger.info(f"Reissued invitation {invitation_id}")
    return invitation
