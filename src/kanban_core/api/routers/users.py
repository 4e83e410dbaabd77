"""Users API endpoints (solo mode - no authentication)."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kanban_core import crud, schemas
from kanban_core.database import get_db
from kanban_core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger("kanban-core.users")

router = APIRouter(tags=["users"])


@router.post("/", response_model=schemas.UserResponse, status_code=201)
def create_user(
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
):
    """
    Create a user inside an organization.

    - **email**: Unique email address
    - **name**: Display name
    - **role**: Organization role (admin, manager, member, viewer)
    - **organization_id**: Organization UUID
    - **avatar_url**: Optional avatar URL
    """
    try:
        result = crud.create_user(db, user)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Created user {result.email} (ID: {result.id})")
    return result


@router.get("/{user_id}", response_model=schemas.UserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a specific user by ID.
    """
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user


@router.patch("/{user_id}", response_model=schemas.UserResponse)
def update_user(
    user_id: UUID,
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
):
    """
    Update a user. Omitted fields are left unchanged.

    - **name**: New display name
    - **role**: New organization role
    - **avatar_url**: New avatar URL
    - **is_active**: Activate or deactivate the user
    """
    user = crud.update_user(db, user_id, user_update)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user


@router.delete("/{user_id}", response_model=schemas.UserResponse)
def deactivate_user(
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Deactivate a user (soft delete).
    """
    user = crud.deactivate_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user


@router.get("/{user_id}/tasks", response_model=list[schemas.TaskResponse])
def list_assigned_tasks(
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """
    List the tasks assigned to a user, soonest due first.
    """
    try:
        return crud.get_tasks_by_assignee(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
