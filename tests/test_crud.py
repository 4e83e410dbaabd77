"""Tests for organization, user, project, membership, comment and invitation CRUD."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from kanban_core import crud, models, schemas
from kanban_core.exceptions import (
    AuthorNotFoundError,
    ConflictError,
    CreatorNotFoundError,
    InvitationError,
    InvitationNotFoundError,
    InviterNotFoundError,
    MembershipNotFoundError,
    OrganizationNotFoundError,
    TaskNotFoundError,
)


class TestOrganizations:
    """Test organization CRUD."""

    def test_create_and_lookup(self, db):
        """Organizations can be fetched by id and slug."""
        org = crud.create_organization(db, name="Acme", slug="acme")

        assert crud.get_organization(db, org.id).name == "Acme"
        assert crud.get_organization_by_slug(db, "acme").id == org.id

    def test_duplicate_slug(self, db, organization):
        """A taken slug raises ConflictError."""
        with pytest.raises(ConflictError):
            crud.create_organization(db, name="Other", slug="acme")

    def test_pagination(self, db):
        """get_organizations returns one page plus the total count."""
        for i in range(5):
            crud.create_organization(db, name=f"Org {i}", slug=f"org-{i}")

        page, total = crud.get_organizations(db, skip=0, limit=2)

        assert total == 5
        assert len(page) == 2

    def test_update_and_delete(self, db, organization):
        """Rename then delete; missing ids return None/False."""
        assert crud.update_organization(db, organization.id, name="Acme Inc").name == "Acme Inc"
        assert crud.update_organization(db, uuid4(), name="x") is None

        assert crud.delete_organization(db, organization.id) is True
        assert crud.delete_organization(db, organization.id) is False

    def test_delete_cascades(self, db, organization, project, make_task):
        """Deleting an organization removes its users, projects and tasks."""
        make_task("A")

        crud.delete_organization(db, organization.id)

        assert db.query(models.User).count() == 0
        assert db.query(models.Project).count() == 0
        assert db.query(models.Task).count() == 0


class TestUsers:
    """Test user CRUD."""

    def test_create_requires_organization(self, db):
        """Unknown organization raises OrganizationNotFoundError."""
        with pytest.raises(OrganizationNotFoundError):
            crud.create_user(db, schemas.UserCreate(
                email="a@example.com", name="A", organization_id=uuid4(),
            ))

    def test_duplicate_email(self, db, organization, user):
        """Emails are unique across the service."""
        with pytest.raises(ConflictError):
            crud.create_user(db, schemas.UserCreate(
                email=user.email, name="Copy", organization_id=organization.id,
            ))

    def test_reserved_email_domain_rejected(self):
        """Special-use domains such as .test fail email validation."""
        with pytest.raises(ValidationError):
            schemas.UserCreate(email="owner@acme.test", name="A", organization_id=uuid4())

        assert schemas.UserCreate(
            email="owner@acme.example.com", name="A", organization_id=uuid4(),
        ).email == "owner@acme.example.com"

    def test_user_exists(self, db, user):
        assert crud.user_exists(db, user.id)
        assert not crud.user_exists(db, uuid4())

    def test_update_partial(self, db, user):
        """Only sent fields change."""
        updated = crud.update_user(db, user.id, schemas.UserUpdate(name="Renamed"))

        assert updated.name == "Renamed"
        assert updated.role == models.UserRole.ADMIN

    def test_deactivate_hides_user_from_listing(self, db, organization, user, other_user):
        """Inactive users are listed only on request."""
        crud.deactivate_user(db, other_user.id)

        active = crud.get_users_by_organization(db, organization.id)
        everyone = crud.get_users_by_organization(db, organization.id, include_inactive=True)

        assert [u.id for u in active] == [user.id]
        assert len(everyone) == 2


class TestProjects:
    """Test project CRUD and membership bookkeeping."""

    def test_creator_becomes_admin_member(self, db, project, user):
        """Project creation adds the creator as an admin member."""
        assert crud.is_project_member(db, project.id, user.id)
        assert crud.get_user_project_role(db, project.id, user.id) == models.UserRole.ADMIN

    def test_create_requires_creator(self, db, organization):
        """Unknown creator raises CreatorNotFoundError and writes nothing."""
        with pytest.raises(CreatorNotFoundError):
            crud.create_project(db, schemas.ProjectCreate(
                name="X", organization_id=organization.id, created_by=uuid4(),
            ))
        assert db.query(models.Project).count() == 0

    def test_list_filtered_by_organization(self, db, project, user):
        """Projects of other organizations are excluded."""
        other_org = crud.create_organization(db, name="Other", slug="other")

        mine, total = crud.get_projects(db, organization_id=project.organization_id)
        theirs, _ = crud.get_projects(db, organization_id=other_org.id)

        assert total == 1
        assert mine[0].id == project.id
        assert theirs == []

    def test_update_partial(self, db, project):
        """Omitted fields are left unchanged."""
        updated = crud.update_project(db, project.id, schemas.ProjectUpdate(description="Q3"))

        assert updated.description == "Q3"
        assert updated.name == "Launch"

    def test_add_member(self, db, project, other_user):
        member = crud.add_project_member(db, project.id, other_user.id)

        assert member.role == models.UserRole.MEMBER
        assert len(crud.get_project_members(db, project.id)) == 2

    def test_add_member_twice(self, db, project, other_user):
        """Duplicate membership raises ConflictError."""
        crud.add_project_member(db, project.id, other_user.id)

        with pytest.raises(ConflictError):
            crud.add_project_member(db, project.id, other_user.id)

    def test_add_member_from_other_organization(self, db, project):
        """Users outside the project's organization are rejected."""
        other_org = crud.create_organization(db, name="Other", slug="other")
        outsider = crud.create_user(db, schemas.UserCreate(
            email="out@other.example.com", name="Outsider", organization_id=other_org.id,
        ))

        with pytest.raises(ValueError, match="same organization"):
            crud.add_project_member(db, project.id, outsider.id)

    def test_update_member_role(self, db, project, other_user):
        crud.add_project_member(db, project.id, other_user.id)

        member = crud.update_project_member_role(db, project.id, other_user.id, models.UserRole.VIEWER)

        assert member.role == models.UserRole.VIEWER

    def test_remove_member_unassigns_tasks(self, db, project, other_user, make_task):
        """Removing a member clears them as assignee on the project's tasks."""
        crud.add_project_member(db, project.id, other_user.id)
        task = make_task("A", assignee_id=other_user.id)

        assert crud.remove_project_member(db, project.id, other_user.id) is True

        assert crud.get_task(db, task.id).assignee_id is None
        assert not crud.is_project_member(db, project.id, other_user.id)

    def test_remove_missing_member(self, db, project, other_user):
        with pytest.raises(MembershipNotFoundError):
            crud.remove_project_member(db, project.id, other_user.id)

    def test_delete_project_cascades_tasks(self, db, project, make_task):
        make_task("A")

        assert crud.delete_project(db, project.id) is True
        assert db.query(models.Task).count() == 0
        assert db.query(models.ProjectMember).count() == 0


class TestTasksByAssignee:
    """Test the per-user task listing order."""

    def test_order_due_date_then_priority(self, db, other_user, make_task):
        """Earliest due first, undated last, high priority breaks ties."""
        soon = datetime(2030, 1, 1)
        later = datetime(2030, 6, 1)
        make_task("undated", assignee_id=other_user.id)
        make_task("later", assignee_id=other_user.id, due_date=later)
        make_task("soon-low", assignee_id=other_user.id, due_date=soon, priority=models.TaskPriority.LOW)
        make_task("soon-high", assignee_id=other_user.id, due_date=soon, priority=models.TaskPriority.HIGH)

        titles = [t.title for t in crud.get_tasks_by_assignee(db, other_user.id)]

        assert titles == ["soon-high", "soon-low", "later", "undated"]


class TestComments:
    """Test comment CRUD."""

    def test_create_and_list(self, db, user, make_task):
        """Comments are listed oldest first."""
        task = make_task("A")
        crud.create_comment(db, task.id, schemas.CommentCreate(content="first", author_id=user.id))
        crud.create_comment(db, task.id, schemas.CommentCreate(content="second", author_id=user.id))

        assert [c.content for c in crud.get_comments(db, task.id)] == ["first", "second"]

    def test_missing_task_and_author(self, db, user, make_task):
        with pytest.raises(TaskNotFoundError):
            crud.create_comment(db, uuid4(), schemas.CommentCreate(content="x", author_id=user.id))

        task = make_task("A")
        with pytest.raises(AuthorNotFoundError):
            crud.create_comment(db, task.id, schemas.CommentCreate(content="x", author_id=uuid4()))

    def test_update_and_delete(self, db, user, make_task):
        task = make_task("A")
        comment = crud.create_comment(db, task.id, schemas.CommentCreate(content="typo", author_id=user.id))

        assert crud.update_comment(db, comment.id, "fixed").content == "fixed"
        assert crud.delete_comment(db, comment.id) is True
        assert crud.delete_comment(db, comment.id) is False


class TestInvitations:
    """Test the invitation lifecycle."""

    def _invite(self, db, organization, user, email="new@acme.example.com"):
        return crud.create_invitation(db, schemas.InvitationCreate(
            email=email,
            organization_id=organization.id,
            role=models.UserRole.MANAGER,
            invited_by=user.id,
        ))

    def test_create_sets_token_and_expiry(self, db, organization, user):
        """Token is 64 hex chars; expiry is about a week out."""
        invitation = self._invite(db, organization, user)

        assert len(invitation.token) == 64
        int(invitation.token, 16)
        assert timedelta(days=6) < invitation.expires_at - datetime.utcnow() <= timedelta(days=7)

    def test_custom_ttl(self, db, organization, user):
        invitation = crud.create_invitation(db, schemas.InvitationCreate(
            email="short@acme.example.com", organization_id=organization.id, invited_by=user.id,
        ), ttl_days=1)

        assert invitation.expires_at - datetime.utcnow() <= timedelta(days=1)

    def test_create_rejects_existing_member(self, db, organization, user):
        with pytest.raises(ConflictError):
            self._invite(db, organization, user, email=user.email)

    def test_create_rejects_duplicate_pending(self, db, organization, user):
        self._invite(db, organization, user)

        with pytest.raises(ConflictError):
            self._invite(db, organization, user)

    def test_create_requires_inviter(self, db, organization):
        with pytest.raises(InviterNotFoundError):
            crud.create_invitation(db, schemas.InvitationCreate(
                email="x@acme.example.com", organization_id=organization.id, invited_by=uuid4(),
            ))

    def test_accept_creates_user(self, db, organization, user):
        """Accepting creates the user with the invited role and organization."""
        invitation = self._invite(db, organization, user)

        new_user = crud.accept_invitation(db, schemas.InvitationAccept(token=invitation.token, name="Newbie"))

        assert new_user.email == "new@acme.example.com"
        assert new_user.organization_id == organization.id
        assert new_user.role == models.UserRole.MANAGER
        db.refresh(invitation)
        assert invitation.accepted_at is not None
        assert crud.get_invitation_by_token(db, invitation.token) is None

    def test_accept_twice(self, db, organization, user):
        invitation = self._invite(db, organization, user)
        accept = schemas.InvitationAccept(token=invitation.token, name="Newbie")
        crud.accept_invitation(db, accept)

        with pytest.raises(InvitationError, match="already been accepted"):
            crud.accept_invitation(db, accept)

    def test_accept_expired(self, db, organization, user):
        invitation = self._invite(db, organization, user)
        invitation.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        with pytest.raises(InvitationError, match="expired"):
            crud.accept_invitation(db, schemas.InvitationAccept(token=invitation.token, name="Late"))
        assert crud.get_invitation_by_token(db, invitation.token) is None

    def test_accept_unknown_token(self, db):
        with pytest.raises(InvitationNotFoundError):
            crud.accept_invitation(db, schemas.InvitationAccept(token="nope", name="X"))

    def test_pending_listing(self, db, organization, user):
        invitation = self._invite(db, organization, user)
        self._invite(db, organization, user, email="other@acme.example.com")
        crud.accept_invitation(db, schemas.InvitationAccept(token=invitation.token, name="Newbie"))

        pending = crud.get_pending_invitations(db, organization.id)

        assert [i.email for i in pending] == ["other@acme.example.com"]

    def test_resend_rotates_token(self, db, organization, user):
        invitation = self._invite(db, organization, user)
        old_token = invitation.token

        resent = crud.resend_invitation(db, invitation.id)

        assert resent.token != old_token
        assert crud.get_invitation_by_token(db, old_token) is None

    def test_revoke(self, db, organization, user):
        invitation = self._invite(db, organization, user)

        assert crud.revoke_invitation(db, invitation.id) is True
        with pytest.raises(InvitationNotFoundError):
            crud.revoke_invitation(db, invitation.id)

    def test_revoke_accepted(self, db, organization, user):
        invitation = self._invite(db, organization, user)
        crud.accept_invitation(db, schemas.InvitationAccept(token=invitation.token, name="Newbie"))

        with pytest.raises(InvitationError):
            crud.revoke_invitation(db, invitation.id)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
