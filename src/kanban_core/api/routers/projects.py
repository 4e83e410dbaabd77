"""Projects API endpoints (solo mode - no authentication)."""
import logging
from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kanban_core import crud, schemas, task_ordering
from kanban_core.database import get_db
from kanban_core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger("kanban-core.projects")

router = APIRouter(tags=["projects"])


@router.post("/", response_model=schemas.ProjectResponse, status_code=201)
def create_project(
    project: schemas.ProjectCreate,
    db: Session = Depends(get_db),
):
    """
    Create a new project. The creator becomes a project admin.

    - **organization_id**: Parent organization UUID
    - **name**: Project name
    - **description**: Optional description
    - **deadline**: Optional deadline
    - **created_by**: Creating user UUID
    """
    try:
        result = crud.create_project(db, project)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info(f"Created project '{result.name}' (ID: {result.id})")
    return result


@router.get("/", response_model=schemas.ProjectListResponse)
def list_projects(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    organization_id: Optional[UUID] = Query(None, description="Filter by organization"),
    db: Session = Depends(get_db),
):
    """
    List projects with optional filtering and pagination.

    - **page**: Page number (starts at 1)
    - **page_size**: Number of items per page (1-100)
    - **organization_id**: Filter by organization
    """
    skip = (page - 1) * page_size

    projects, total = crud.get_projects(
        db=db,
        organization_id=organization_id,
        skip=skip,
        limit=page_size,
    )

    return schemas.ProjectListResponse(
        items=projects,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/{project_id}", response_model=schemas.ProjectResponse)
def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a specific project by ID.
    """
    project = crud.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    return project


@router.put("/{project_id}", response_model=schemas.ProjectResponse)
def update_project(
    project_id: UUID,
    project_update: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
):
    """
    Update a project.

    - **name**: New project name (optional)
    - **description**: New description (optional)
    - **deadline**: New deadline (optional)
    """
    project = crud.update_project(db, project_id, project_update)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    return project


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Delete a project with all its tasks and members (cascading delete).

    Use with caution!
    """
    success = crud.delete_project(db, project_id)
    if not success:
        raise HTTPException(status_code=404, detail="Project not found")


# Project Members endpoints

@router.get("/{project_id}/members", response_model=list[schemas.ProjectMemberResponse])
def list_project_members(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    List all members of a project.
    """
    if not crud.project_exists(db, project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    return crud.get_project_members(db, project_id)


@router.post("/{project_id}/members", response_model=schemas.ProjectMemberResponse, status_code=201)
def add_project_member(
    project_id: UUID,
    member: schemas.ProjectMemberCreate,
    db: Session = Depends(get_db),
):
    """
    Add a user to a project.

    - **user_id**: UUID of the user to add (must be in the project's organization)
    - **role**: Project role (admin, manager, member, viewer)
    """
    try:
        return crud.add_project_member(
            db=db,
            project_id=project_id,
            user_id=member.user_id,
            role=member.role,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{project_id}/members/{user_id}", response_model=schemas.ProjectMemberResponse)
def update_project_member(
    project_id: UUID,
    user_id: UUID,
    member_update: schemas.ProjectMemberUpdate,
    db: Session = Depends(get_db),
):
    """
    Update a project member's role.

    - **role**: New project role
    """
    try:
        return crud.update_project_member_role(
            db=db,
            project_id=project_id,
            user_id=user_id,
            role=member_update.role,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{project_id}/members/{user_id}", status_code=204)
def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Remove a user from a project. Their tasks in the project are unassigned.
    """
    try:
        crud.remove_project_member(db=db, project_id=project_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Board endpoints

@router.get("/{project_id}/tasks", response_model=list[schemas.TaskResponse])
def list_project_tasks(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    List all tasks of a project in board order (column, then position).
    """
    try:
        return crud.get_tasks(db, project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{project_id}/board", response_model=schemas.BoardResponse)
def get_board(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a project's tasks grouped into Kanban columns.

    Every column is returned, in board order, even when empty.
    """
    try:
        board = crud.get_board(db, project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return schemas.BoardResponse(
        project_id=project_id,
        columns=[
            schemas.BoardColumn(
                status=status,
                tasks=[schemas.TaskResponse.model_validate(task) for task in tasks],
            )
            for status, tasks in board.items()
        ],
    )


@router.get("/{project_id}/board/health", response_model=schemas.BoardHealthResponse)
def get_board_health(
    project_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Check that every column of the board is densely ordered (0..k-1).

    - **consistent**: True when no column has gaps or duplicates
    - **violations**: Positions found in each inconsistent column
    """
    if not crud.project_exists(db, project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    violations = task_ordering.find_ordering_violations(db, project_id)
    return schemas.BoardHealthResponse(
        project_id=project_id,
        consistent=not violations,
        violations={status.value: positions for status, positions in violations.items()},
    )
