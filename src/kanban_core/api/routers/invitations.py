"""Organization invitation API endpoints.

Invitations are created and returned with their token; delivering the token
to the invitee is left to the caller.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kanban_core import crud, schemas
from kanban_core.database import get_db
from kanban_core.exceptions import ConflictError, InvitationError, NotFoundError

logger = logging.getLogger("kanban-core.invitations")

router = APIRouter(tags=["invitations"])


@router.post("/", response_model=schemas.InvitationResponse, status_code=201)
def create_invitation(
    invitation: schemas.InvitationCreate,
    db: Session = Depends(get_db),
):
    """
    Invite an email address to an organization.

    - **email**: Invitee email
    - **organization_id**: Organization UUID
    - **role**: Role the user gets on acceptance (default: member)
    - **invited_by**: Inviting user UUID
    """
    try:
        return crud.create_invitation(db, invitation)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/token/{token}", response_model=schemas.InvitationResponse)
def get_invitation_by_token(
    token: str,
    db: Session = Depends(get_db),
):
    """
    Look up a pending invitation by token.

    Unknown, expired and accepted invitations all return 404.
    """
    invitation = crud.get_invitation_by_token(db, token)
    if not invitation:
        raise HTTPException(status_code=404, detail="Invalid or expired invitation")

    return invitation


@router.post("/accept", response_model=schemas.UserResponse, status_code=201)
def accept_invitation(
    accept: schemas.InvitationAccept,
    db: Session = Depends(get_db),
):
    """
    Accept an invitation and create the invited user.

    - **token**: Invitation token
    - **name**: Display name of the new user
    """
    try:
        return crud.accept_invitation(db, accept)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvitationError, ConflictError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{invitation_id}/resend", response_model=schemas.InvitationResponse)
def resend_invitation(
    invitation_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Reissue an invitation with a new token and expiry.
    """
    try:
        return crud.resend_invitation(db, invitation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvitationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{invitation_id}", status_code=204)
def revoke_invitation(
    invitation_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Revoke a pending invitation.
    """
    try:
        crud.revoke_invitation(db, invitation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvitationError as e:
        raise HTTPException(status_code=400, detail=str(e))
