import logging
from sqlalchemy import (
    Table,
    MetaData,
    Column,
    Integer,
    String,
    Text,
    DateTime,
)
from sqlalchemy.orm import registry
from covid_result.domain import model

logger = logging.getLogger(__name__)

# SQLAlchemy 2.0 pattern: use registry
mapper_registry = registry()
metadata = mapper_registry.metadata

# Requests for SMS notification.
to_notify = Table(
    "to_notify",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("requestTime", DateTime, nullable=False, key="request_time"),
    Column("preferredLanguage", Text, key="preferred_language"),
    Column("notificationTelephone", Text, key="notification_telephone"),
    Column("specimenId", String(255), key="specimen_id"),
)

# Delivery of Negative test results.
viewed_result = Table(
    "viewed_result",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("viewedTime", DateTime, nullable=False, key="viewed_time"),
    Column("specimenId", String(255), key="specimen_id"),
)

# External clinical records table - read only, never created by this service.
# Kept on its own metadata so create_all() only touches the ledger tables.
clinical_metadata = MetaData()

covid_test_results = Table(
    "CovidTestResults",
    clinical_metadata,
    Column("PatientName", String(255)),
    Column("DOB", String(8)),
    Column("CollectionDateTime", DateTime),
    Column("ResultedDateTime", DateTime, nullable=True),
    Column("Result", String(255), nullable=True),
    Column("SpecimenID", String(255)),
    Column("HCN", String(255)),
    Column("LastName", String(255)),
)


def start_mappers():
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.NotificationRequest, to_notify)
    mapper_registry.map_imperatively(model.ViewedResult, viewed_result)
