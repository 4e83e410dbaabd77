"""Dense per-column ordering of Kanban tasks.

Every ``(project_id, status)`` pair is a column whose task positions must
form the contiguous sequence ``0..k-1``. The helpers here are the store
primitives the task operations in ``crud`` are built from:

- ``locked_project`` opens the unit of work for one project and takes a row
  lock on it, so concurrent mutations of the same board never compute shifts
  against a stale snapshot
- ``next_position`` / ``column_size`` read a column's extent
- ``shift_positions`` moves a contiguous range of a column by a fixed delta
- ``find_ordering_violations`` reports columns that are not dense

All functions take the caller's session; none of them commit on their own.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .exceptions import ProjectNotFoundError

logger = logging.getLogger("kanban-core.task_ordering")


# Left-to-right board order, used when listing a project's tasks
STATUS_SORT_ORDER: dict[models.TaskStatus, int] = {
    status: index for index, status in enumerate(models.TaskStatus)
}


def status_sort_expression():
    """Build SQLAlchemy CASE expression ordering tasks by board column."""
    return case(
        *[(models.Task.status == status, order)
          for status, order in STATUS_SORT_ORDER.items()],
        else_=99
    )


def lock_project(db: Session, project_id: UUID) -> Optional[models.Project]:
    """
    Take a row lock on a project for the rest of the current transaction.

    On backends without ``FOR UPDATE`` (SQLite) the clause is dropped and the
    database's own writer lock provides the serialization.

    Args:
        db: Database session
        project_id: Project UUID

    Returns:
        The locked project, or None if it does not exist
    """
    return (
        db.query(models.Project)
        .filter(models.Project.id == project_id)
        .with_for_update()
        .first()
    )


@contextmanager
def locked_project(db: Session, project_id: UUID) -> Iterator[models.Project]:
    """
    Run a block as one atomic unit of work against a project's board.

    The project row is locked on entry. The transaction commits when the block
    exits normally and is rolled back on any exception, including
    cancellation, so a shift is never persisted without its final assignment.

    Raises:
        ProjectNotFoundError: If the project does not exist
    """
    try:
        project = lock_project(db, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        yield project
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error on project {project_id} board: {e}", exc_info=True)
        db.rollback()
        raise
    except BaseException:
        db.rollback()
        raise


def max_position(
    db: Session,
    project_id: UUID,
    status: models.TaskStatus,
) -> Optional[int]:
    """Return the highest position in a column, or None if it is empty."""
    return (
        db.query(func.max(models.Task.position))
        .filter(
            models.Task.project_id == project_id,
            models.Task.status == status,
        )
        .scalar()
    )


def next_position(
    db: Session,
    project_id: UUID,
    status: models.TaskStatus,
) -> int:
    """Return the append position for a column (max + 1, or 0 when empty)."""
    current_max = max_position(db, project_id, status)
    return 0 if current_max is None else current_max + 1


def column_size(
    db: Session,
    project_id: UUID,
    status: models.TaskStatus,
    exclude_task_id: Optional[UUID] = None,
) -> int:
    """Count the tasks in a column, optionally ignoring one task."""
    query = db.query(func.count(models.Task.id)).filter(
        models.Task.project_id == project_id,
        models.Task.status == status,
    )
    if exclude_task_id is not None:
        query = query.filter(models.Task.id != exclude_task_id)
    return query.scalar()


def shift_positions(
    db: Session,
    project_id: UUID,
    status: models.TaskStatus,
    delta: int,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> int:
    """
    Add ``delta`` to every position in ``[start, end]`` of one column.

    Both bounds are inclusive; a bound of None leaves that side open. The
    update is a single statement and does not synchronize objects already
    loaded in the session.

    Args:
        db: Database session
        project_id: Project UUID
        status: Column status
        delta: Amount to add (+1 to make room, -1 to close a gap)
        start: Lowest position affected
        end: Highest position affected

    Returns:
        Number of rows shifted
    """
    if start is not None and end is not None and start > end:
        return 0

    query = db.query(models.Task).filter(
        models.Task.project_id == project_id,
        models.Task.status == status,
    )
    if start is not None:
        query = query.filter(models.Task.position >= start)
    if end is not None:
        query = query.filter(models.Task.position <= end)

    shifted = query.update(
        {
            models.Task.position: models.Task.position + delta,
            models.Task.updated_at: datetime.utcnow(),
        },
        synchronize_session=False,
    )
    logger.debug(
        f"Shifted {shifted} task(s) in {project_id}/{status.value} "
        f"range [{start}, {end}] by {delta:+d}"
    )
    return shifted


def find_ordering_violations(
    db: Session,
    project_id: UUID,
) -> dict[models.TaskStatus, list[int]]:
    """
    Check every column of a project for dense ordering.

    Args:
        db: Database session
        project_id: Project UUID

    Returns:
        Mapping of status to the sorted positions found, for each column whose
        positions are not exactly 0..k-1. Empty when the board is consistent.
    """
    rows = (
        db.query(models.Task.status, models.Task.position)
        .filter(models.Task.project_id == project_id)
        .all()
    )

    columns: dict[models.TaskStatus, list[int]] = {}
    for status, position in rows:
        columns.setdefault(status, []).append(position)

    violations = {}
    for status, positions in columns.items():
        positions.sort()
        if positions != list(range(len(positions))):
            violations[status] = positions

    if violations:
        logger.warning(
            f"Project {project_id} has non-dense columns: "
            + ", ".join(f"{s.value}={p}" for s, p in violations.items())
        )
    return violations
