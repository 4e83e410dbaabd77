"""Comment API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kanban_core import crud, schemas
from kanban_core.database import get_db

logger = logging.getLogger("kanban-core.comments")

router = APIRouter(tags=["comments"])


@router.get("/{comment_id}", response_model=schemas.CommentResponse)
def get_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a specific comment by ID.
    """
    comment = crud.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    return comment


@router.put("/{comment_id}", response_model=schemas.CommentResponse)
def update_comment(
    comment_id: UUID,
    comment_update: schemas.CommentUpdate,
    db: Session = Depends(get_db),
):
    """
    Edit a comment.

    - **content**: New comment text
    """
    comment = crud.update_comment(db, comment_id, comment_update.content)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    return comment


@router.delete("/{comment_id}", status_code=204)
def delete_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Delete a comment.
    """
    if not crud.delete_comment(db, comment_id):
        raise HTTPException(status_code=404, detail="Comment not found")
