"""Organizations API endpoints (solo mode - no authentication)."""
import logging
from math import ceil
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kanban_core import crud, schemas
from kanban_core.database import get_db
from kanban_core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger("kanban-core.organizations")

router = APIRouter(tags=["organizations"])


@router.post("/", response_model=schemas.OrganizationResponse, status_code=201)
def create_organization(
    organization: schemas.OrganizationCreate,
    db: Session = Depends(get_db),
):
    """
    Create a new organization.

    - **name**: Organization name
    - **slug**: URL-friendly slug (lowercase, alphanumeric, hyphens)
    """
    try:
        result = crud.create_organization(
            db=db,
            name=organization.name,
            slug=organization.slug,
        )
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Created organization '{result.name}' (ID: {result.id})")
    return result


@router.get("/", response_model=schemas.OrganizationListResponse)
def list_organizations(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    db: Session = Depends(get_db),
):
    """
    List all organizations with pagination.

    - **page**: Page number (starts at 1)
    - **page_size**: Number of items per page (1-100)
    """
    skip = (page - 1) * page_size

    organizations, total = crud.get_organizations(
        db=db,
        skip=skip,
        limit=page_size,
    )

    return schemas.OrganizationListResponse(
        items=organizations,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/by-slug/{slug}", response_model=schemas.OrganizationResponse)
def get_organization_by_slug(
    slug: str,
    db: Session = Depends(get_db),
):
    """
    Get an organization by its slug.
    """
    organization = crud.get_organization_by_slug(db, slug)
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")

    return organization


@router.get("/{organization_id}", response_model=schemas.OrganizationResponse)
def get_organization(
    organization_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Get a specific organization by ID.
    """
    organization = crud.get_organization(db, organization_id)
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")

    return organization


@router.put("/{organization_id}", response_model=schemas.OrganizationResponse)
def update_organization(
    organization_id: UUID,
    organization_update: schemas.OrganizationUpdate,
    db: Session = Depends(get_db),
):
    """
    Update an organization.

    - **name**: New organization name
    """
    organization = crud.update_organization(db, organization_id, name=organization_update.name)
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")

    return organization


@router.delete("/{organization_id}", status_code=204)
def delete_organization(
    organization_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Delete an organization and all its users, projects and invitations.

    Use with caution!
    """
    success = crud.delete_organization(db, organization_id)
    if not success:
        raise HTTPException(status_code=404, detail="Organization not found")


@router.get("/{organization_id}/users", response_model=list[schemas.UserResponse])
def list_organization_users(
    organization_id: UUID,
    include_inactive: bool = Query(False, description="Include deactivated users"),
    db: Session = Depends(get_db),
):
    """
    List the users of an organization.

    - **include_inactive**: Also return deactivated users
    """
    try:
        return crud.get_users_by_organization(db, organization_id, include_inactive=include_inactive)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{organization_id}/invitations", response_model=list[schemas.InvitationResponse])
def list_pending_invitations(
    organization_id: UUID,
    db: Session = Depends(get_db),
):
    """
    List pending (unaccepted, unexpired) invitations of an organization.
    """
    if not crud.get_organization(db, organization_id):
        raise HTTPException(status_code=404, detail="Organization not found")

    return crud.get_pending_invitations(db, organization_id)
