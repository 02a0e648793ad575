# pylint: disable=redefined-outer-name
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert
from sqlalchemy.orm import sessionmaker, clear_mappers
from sqlalchemy.pool import StaticPool

from covid_result.adapters import orm
from covid_result.adapters.clinical_store import AbstractClinicalStore, ClinicalQueryError
from covid_result.adapters.repository import (
    AbstractNotificationRepository,
    AbstractViewedResultRepository,
)
from covid_result.entrypoints.api import create_app
from covid_result.service_layer.unit_of_work import (
    AbstractUnitOfWork,
    LedgerWriteError,
    SqlAlchemyUnitOfWork,
)


def in_memory_engine():
    # One shared connection, so TestClient worker threads see the same database
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def sqlite_session_factory():
    """SQLite in-memory ledger store for fast testing."""
    engine = in_memory_engine()
    orm.metadata.create_all(engine)
    orm.start_mappers()

    yield sessionmaker(bind=engine)

    clear_mappers()
    engine.dispose()


@pytest.fixture
def clinical_session_factory():
    """SQLite in-memory stand-in for the clinical records database."""
    engine = in_memory_engine()
    orm.clinical_metadata.create_all(engine)

    yield sessionmaker(bind=engine)

    engine.dispose()


@pytest.fixture
def add_test_record(clinical_session_factory):
    """Insert a row into the clinical CovidTestResults table."""
    def _add(
        specimen_id,
        result="Negative",
        hcn="123456789",
        dob="19900102",
        last_name="SMITH",
        patient_name="SMITH, JOHN",
        collected=datetime(2021, 3, 1, 9, 0),
        resulted=datetime(2021, 3, 2, 14, 30),
    ):
        with clinical_session_factory() as session:
            session.execute(
                insert(orm.covid_test_results).values(
                    PatientName=patient_name,
                    DOB=dob,
                    CollectionDateTime=collected,
                    ResultedDateTime=resulted,
                    Result=result,
                    SpecimenID=specimen_id,
                    HCN=hcn,
                    LastName=last_name,
                )
            )
            session.commit()

    return _add


@pytest.fixture
def sqlite_uow(sqlite_session_factory, clinical_session_factory):
    return SqlAlchemyUnitOfWork(
        session_factory=sqlite_session_factory,
        clinical_session_factory=clinical_session_factory,
    )


@pytest.fixture
def client(sqlite_session_factory, clinical_session_factory):
    """API client wired to the in-memory stores (mappers already started)."""
    app = create_app(
        uow_factory=lambda: SqlAlchemyUnitOfWork(
            session_factory=sqlite_session_factory,
            clinical_session_factory=clinical_session_factory,
        ),
        start_orm=False,
    )
    return TestClient(app)


# ---------- Fakes ----------

class FakeClinicalStore(AbstractClinicalStore):
    def __init__(self):
        super().__init__()
        self.records = {}   # Identity -> TestRecord
        self.results = {}   # specimen_id -> result
        self.failing_specimens = set()
        self.unavailable = False

    def _get_latest_for_identity(self, identity):
        if self.unavailable:
            raise ClinicalQueryError("clinical store unavailable")
        return self.records.get(identity)

    def _get_latest_result(self, specimen_id, resulted_before):
        if self.unavailable or specimen_id in self.failing_specimens:
            raise ClinicalQueryError(f"lookup failed for {specimen_id}")
        return self.results.get(specimen_id)

    def _sample(self, limit):
        if self.unavailable:
            raise ClinicalQueryError("clinical store unavailable")
        return list(self.records.values())[:limit]


class FakeNotificationRepository(AbstractNotificationRepository):
    def __init__(self):
        self.requests = []
        self.purged = 0

    def _add(self, request):
        self.requests.append(request)

    def _purge_expired(self, before):
        kept = [r for r in self.requests if r.request_time >= before]
        deleted = len(self.requests) - len(kept)
        self.requests = kept
        self.purged += 1
        return deleted

    def _list_active(self, since):
        active = []
        for r in self.requests:
            key = (r.specimen_id, r.notification_telephone, r.preferred_language)
            if r.request_time > since and key not in active:
                active.append(key)
        return active


class FakeViewedResultRepository(AbstractViewedResultRepository):
    def __init__(self):
        self.viewed = []
        self.purged = 0

    def _add(self, viewed):
        self.viewed.append(viewed)

    def _purge_expired(self, before):
        self.purged += 1
        kept = [v for v in self.viewed if v.viewed_time >= before]
        deleted = len(self.viewed) - len(kept)
        self.viewed = kept
        return deleted

    def _list_recent(self, since):
        return [(v.specimen_id, v.viewed_time) for v in self.viewed if v.viewed_time > since]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self):
        self.test_results = FakeClinicalStore()
        self.notifications = FakeNotificationRepository()
        self.viewed_results = FakeViewedResultRepository()
        self.committed = False
        self.fail_commit = False

    def _commit(self):
        if self.fail_commit:
            raise LedgerWriteError("database is locked")
        self.committed = True

    def rollback(self):
        pass


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


@pytest.fixture
def fake_client(fake_uow):
    """API client over the fake unit of work."""
    return TestClient(create_app(uow_factory=lambda: fake_uow, start_orm=False))
