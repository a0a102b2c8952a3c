"""Transaction boundary for multi-step workflows.

A workflow either commits every step or none. Storage failures inside a
step are reported as WorkflowError after the rollback; NotFoundError and
ValidationError reach the caller unchanged.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from salestrack.core.exceptions import DatabaseError, NotInitializedError, WorkflowError
from salestrack.core.logging import get_logger
from salestrack.db.database import Database

logger = get_logger(__name__)


@contextmanager
def atomic_workflow(db: Database, name: str, **context: Any) -> Iterator[sqlite3.Connection]:
    """Run a workflow body inside one transaction.

    Args:
        db: Database the steps write to
        name: Workflow name for logs and error messages
        **context: Identifiers added to the log record

    Raises:
        WorkflowError: A storage step failed; nothing was persisted
    """
    try:
        with db.transaction() as conn:
            yield conn
    except NotInitializedError:
        raise
    except DatabaseError as e:
        logger.error(
            f"Workflow {name} rolled back: {e}",
            extra={"context": {"workflow": name, **context}},
        )
        raise WorkflowError(f"{name} failed and was rolled back: {e}") from e
