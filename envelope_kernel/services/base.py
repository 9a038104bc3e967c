"""
BaseService -- common base for the kernel record services.

Responsibility:
    Holds the SQLAlchemy ``Session`` and the transaction-boundary policy
    shared by every record service.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - With ``auto_commit=True`` (standalone use) each public mutating method
      owns its transaction: commit on success, rollback on any exception,
      then re-raise.
    - With ``auto_commit=False`` (composed inside a module service) the
      service only flushes; the caller commits or rolls back, so multi-step
      operations stay atomic.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from envelope_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    def __init__(self, session: Session, auto_commit: bool = True):
        self.session = session
        self._auto_commit = auto_commit

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            if self._auto_commit:
                self.session.commit()
            else:
                self.session.flush()
        except Exception:
            if self._auto_commit:
                self.session.rollback()
            raise
