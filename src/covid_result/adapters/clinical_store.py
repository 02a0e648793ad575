"""Clinical records store - read-only adapter for the external test results table."""

import abc
import logging
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from covid_result.adapters.orm import covid_test_results
from covid_result.domain import model

logger = logging.getLogger(__name__)


class AbstractClinicalStore(abc.ABC):
    """Abstract base class for clinical records lookups."""

    def __init__(self):
        self.seen = set()  # type: Set[model.TestRecord]

    def get_latest_for_identity(self, identity: model.Identity) -> Optional[model.TestRecord]:
        record = self._get_latest_for_identity(identity)
        if record:
            self.seen.add(record)
        return record

    def get_latest_result(self, specimen_id: str, resulted_before: Optional[datetime] = None) -> Optional[str]:
        return self._get_latest_result(specimen_id, resulted_before)

    def sample(self, limit: int) -> List[model.TestRecord]:
        return self._sample(limit)

    @abc.abstractmethod
    def _get_latest_for_identity(self, identity: model.Identity) -> Optional[model.TestRecord]:
        """
        Fetch the authoritative test record for a normalized identity.

        The most recent collection wins; ties go to the most recently resulted
        record, with a pending result counting as resulted now.

        Raises:
            ClinicalQueryError: If the clinical store cannot be queried
        """
        raise NotImplementedError

    @abc.abstractmethod
    def _get_latest_result(self, specimen_id: str, resulted_before: Optional[datetime]) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def _sample(self, limit: int) -> List[model.TestRecord]:
        raise NotImplementedError


class SqlAlchemyClinicalStore(AbstractClinicalStore):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _get_latest_for_identity(self, identity):
        t = covid_test_results
        stmt = (
            select(t)
            .where(t.c.HCN == identity.health_care_number)
            .where(t.c.DOB == identity.dob)
            .where(t.c.LastName == identity.last_name)
            .order_by(
                t.c.CollectionDateTime.desc(),
                func.coalesce(t.c.ResultedDateTime, func.current_timestamp()).desc(),
            )
            .limit(1)
        )
        row = self._execute(stmt, "look up test result by identity").first()
        return _to_test_record(row) if row else None

    def _get_latest_result(self, specimen_id, resulted_before):
        t = covid_test_results
        stmt = select(t.c.Result).where(t.c.SpecimenID == specimen_id)
        if resulted_before is not None:
            stmt = stmt.where(t.c.ResultedDateTime <= resulted_before)
        stmt = stmt.order_by(
            func.coalesce(t.c.ResultedDateTime, func.current_timestamp()).desc()
        ).limit(1)
        return self._execute(stmt, f"look up result for specimen {specimen_id}").scalar()

    def _sample(self, limit):
        stmt = select(covid_test_results).limit(limit)
        return [_to_test_record(row) for row in self._execute(stmt, "sample test results")]

    def _execute(self, stmt, action: str):
        try:
            return self.session.execute(stmt)
        except SQLAlchemyError as e:
            # DBAPIError text includes the bound parameters; log the driver error only.
            logger.error(f"Attempt to {action} failed: {getattr(e, 'orig', None) or e}")
            # A failed statement leaves the session unusable until rolled back.
            self.session.rollback()
            raise ClinicalQueryError(f"Unable to {action}") from e


def _to_test_record(row) -> model.TestRecord:
    return model.TestRecord(
        patient_name=row.PatientName,
        dob=row.DOB,
        collection_time=row.CollectionDateTime,
        result_entered_time=row.ResultedDateTime,
        result=row.Result,
        specimen_id=str(row.SpecimenID),
    )


class ClinicalQueryError(Exception):
    """Exception raised when the clinical records store cannot be queried."""
    pass
