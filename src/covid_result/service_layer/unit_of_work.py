from __future__ import annotations
import abc
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.session import Session

from covid_result.adapters import clinical_store, repository

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(abc.ABC):
    test_results: clinical_store.AbstractClinicalStore
    notifications: repository.AbstractNotificationRepository
    viewed_results: repository.AbstractViewedResultRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        for record in self.test_results.seen:
            while record.events:
                yield record.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    Unit of work over the two stores.

    Ledger writes go through the local session and are committed here; the
    clinical session is only ever read from and is rolled back on exit.
    """

    def __init__(self, session_factory, clinical_session_factory):
        self.session_factory = session_factory
        self.clinical_session_factory = clinical_session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.clinical_session = self.clinical_session_factory()  # type: Session
        self.test_results = clinical_store.SqlAlchemyClinicalStore(self.clinical_session)
        self.notifications = repository.SqlAlchemyNotificationRepository(self.session)
        self.viewed_results = repository.SqlAlchemyViewedResultRepository(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()
        self.clinical_session.close()

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            cause = getattr(e, "orig", None) or e
            logger.error(f"Ledger commit failed: {cause}")
            raise LedgerWriteError(str(cause)) from e

    def rollback(self):
        self.session.rollback()
        self.clinical_session.rollback()


class LedgerWriteError(Exception):
    """Exception raised when a ledger write cannot be committed."""
    pass
