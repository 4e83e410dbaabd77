"""Shared fixtures: a throwaway SQLite database per test plus seed records."""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from kanban_core import crud, models, schemas
from kanban_core.models import Base


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with the full schema created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'kanban.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def organization(db):
    return crud.create_organization(db, name="Acme", slug="acme")


@pytest.fixture
def user(db, organization):
    return crud.create_user(db, schemas.UserCreate(
        email="owner@acme.example.com",
        name="Owner",
        role=models.UserRole.ADMIN,
        organization_id=organization.id,
    ))


@pytest.fixture
def other_user(db, organization):
    return crud.create_user(db, schemas.UserCreate(
        email="dev@acme.example.com",
        name="Developer",
        organization_id=organization.id,
    ))


@pytest.fixture
def project(db, organization, user):
    return crud.create_project(db, schemas.ProjectCreate(
        name="Launch",
        organization_id=organization.id,
        created_by=user.id,
    ))


@pytest.fixture
def make_task(db, project, user):
    """Factory creating tasks in the default project."""

    def _make_task(title="Task", status=models.TaskStatus.TODO, **fields):
        return crud.create_task(db, schemas.TaskCreate(
            title=title,
            project_id=fields.pop("project_id", project.id),
            created_by=fields.pop("created_by", user.id),
            status=status,
            **fields,
        ))

    return _make_task


def column_titles(db, project_id, status):
    """Titles of a column's tasks in position order."""
    return [
        task.title
        for task in db.query(models.Task)
        .filter(models.Task.project_id == project_id, models.Task.status == status)
        .order_by(models.Task.position)
        .all()
    ]


def column_positions(db, project_id, status):
    """Sorted positions of a column's tasks."""
    return sorted(
        position
        for (position,) in db.query(models.Task.position)
        .filter(models.Task.project_id == project_id, models.Task.status == status)
        .all()
    )
