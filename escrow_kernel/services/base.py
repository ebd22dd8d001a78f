"""
BaseService -- abstract base for escrow kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel.  Services receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit.  Lease operations open their own SAVEPOINT via
    ``atomic()`` so a failed operation rolls back only its own work.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar

from sqlalchemy.orm import Session

from escrow_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()``; the caller controls
          the outer transaction.
        - ``atomic()`` wraps one operation in a SAVEPOINT: released on
          success, rolled back (and the exception re-raised) on failure.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        with self.session.begin_nested():
            yield self.session
