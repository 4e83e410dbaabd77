"""Kanban task API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kanban_core import crud, schemas
from kanban_core.database import get_db
from kanban_core.exceptions import NotFoundError, PositionOutOfRangeError

logger = logging.getLogger("kanban-core.tasks")

router = APIRouter(tags=["tasks"])


@router.post("/", response_model=schemas.TaskResponse, status_code=201)
def create_task(
    task_data: schemas.TaskCreate,
    db: Session = Depends(get_db),
):
    """
    Create a new task at the end of its column.

    - **title**: Task title (1-200 chars)
    - **description**: Optional description
    - **project_id**: Project UUID
    - **assignee_id**: Optional assigned user UUID
    - **priority**: low, medium or high (default: medium)
    - **status**: Initial column (default: todo)
    - **due_date**: Optional due date
    - **created_by**: Creating user UUID
    """
    try:
        return crud.create_task(db, task_data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{task_id}", response_model=schemas.TaskResponse)
def get_task(
    task_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a specific task by ID.
    """
    task = crud.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    return task


@router.patch("/{task_id}", response_model=schemas.TaskResponse)
def update_task(
    task_id: UUID,
    task_update: schemas.TaskUpdate,
    db: Session = Depends(get_db),
):
    """
    Partially update a task.

    Only provided fields are changed; send null to clear **assignee_id** or
    **due_date**. Changing **status** without **position** appends the task
    to the new column. An explicit **position** is stored as given; use the
    move endpoint to reorder.
    """
    try:
        return crud.update_task(db, task_id, task_update)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{task_id}/move", response_model=schemas.TaskResponse)
def move_task(
    task_id: UUID,
    move: schemas.TaskMove,
    db: Session = Depends(get_db),
):
    """
    Move a task to a column and position (drag & drop).

    - **status**: Destination column
    - **position**: Zero-based index in the destination column after the move
    """
    try:
        return crud.move_task(db, task_id, status=move.status, position=move.position)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PositionOutOfRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{task_id}", response_model=schemas.TaskDeleteResponse)
def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Delete a task and close the gap in its column.

    Returns `{"deleted": false}` when the task does not exist.
    """
    return schemas.TaskDeleteResponse(deleted=crud.delete_task(db, task_id))


# Comment endpoints

@router.get("/{task_id}/comments", response_model=list[schemas.CommentResponse])
def list_task_comments(
    task_id: UUID,
    db: Session = Depends(get_db),
):
    """
    List comments on a task, oldest first.
    """
    try:
        return crud.get_comments(db, task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{task_id}/comments", response_model=schemas.CommentResponse, status_code=201)
def create_task_comment(
    task_id: UUID,
    comment: schemas.CommentCreate,
    db: Session = Depends(get_db),
):
    """
    Add a comment to a task.

    - **content**: Comment text
    - **author_id**: Author user UUID
    """
    try:
        return crud.create_comment(db, task_id, comment)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
