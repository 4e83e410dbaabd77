"""Concurrent writers against one project board.

SQLite has no ``SELECT ... FOR UPDATE``; opening every transaction with
``BEGIN IMMEDIATE`` takes the database write lock up front, which gives the
same serialization the project row lock provides on PostgreSQL.
"""
import random
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from kanban_core import crud, models, schemas
from kanban_core.exceptions import PositionOutOfRangeError, TaskNotFoundError
from kanban_core.models import Base
from kanban_core.task_ordering import find_ordering_violations

WORKERS = 4
OPS_PER_WORKER = 15


@pytest.fixture
def immediate_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrent.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_board(immediate_engine):
    """A project with a few tasks in every column; returns (Session, project_id, user_id)."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=immediate_engine)
    with Session() as db:
        org = crud.create_organization(db, name="Acme", slug="acme")
        user = crud.create_user(db, schemas.UserCreate(
            email="owner@acme.example.com", name="Owner", organization_id=org.id,
        ))
        project = crud.create_project(db, schemas.ProjectCreate(
            name="Launch", organization_id=org.id, created_by=user.id,
        ))
        for status in models.TaskStatus:
            for i in range(3):
                crud.create_task(db, schemas.TaskCreate(
                    title=f"{status.value}-{i}",
                    project_id=project.id,
                    created_by=user.id,
                    status=status,
                ))
        return Session, project.id, user.id


class TestConcurrentWriters:
    """Test that racing mutations keep every column dense."""

    def test_concurrent_creates_get_distinct_positions(self, seeded_board):
        """Parallel appends to one column never share a position."""
        Session, project_id, user_id = seeded_board

        def create(i):
            with Session() as db:
                task = crud.create_task(db, schemas.TaskCreate(
                    title=f"parallel-{i}",
                    project_id=project_id,
                    created_by=user_id,
                ))
                return task.position

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            positions = list(pool.map(create, range(WORKERS * 5)))

        assert sorted(positions) == list(range(3, 3 + WORKERS * 5))
        with Session() as db:
            assert find_ordering_violations(db, project_id) == {}

    def test_concurrent_moves_and_deletes_keep_board_dense(self, seeded_board):
        """Random moves and deletes from several threads leave no gaps or duplicates."""
        Session, project_id, _ = seeded_board
        statuses = list(models.TaskStatus)

        def worker(seed):
            rng = random.Random(seed)
            with Session() as db:
                for _ in range(OPS_PER_WORKER):
                    task_ids = [row.id for row in db.query(models.Task.id)
                                .filter(models.Task.project_id == project_id).all()]
                    db.rollback()
                    if not task_ids:
                        return
                    task_id = rng.choice(task_ids)
                    try:
                        if rng.random() < 0.15:
                            crud.delete_task(db, task_id)
                        else:
                            crud.move_task(db, task_id, rng.choice(statuses), rng.randint(0, 4))
                    except (PositionOutOfRangeError, TaskNotFoundError):
                        # Board changed under us; the operation changed nothing
                        db.rollback()

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            for future in [pool.submit(worker, seed) for seed in range(WORKERS)]:
                future.result()

        with Session() as db:
            assert find_ordering_violations(db, project_id) == {}
