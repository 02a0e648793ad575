import logging
from typing import Optional

import config
from covid_result.domain import commands, events, model
from covid_result.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class InvalidRequest(Exception):
    pass


class ResultNotFound(Exception):
    pass


def _require(command: commands.Command, *fields: str) -> None:
    missing = [name for name in fields if not getattr(command, name)]
    if missing:
        raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")


def _find_latest(command, uow: AbstractUnitOfWork) -> model.TestRecord:
    identity = model.Identity.normalize(
        command.health_care_number, command.birth_date, command.last_name
    )
    record = uow.test_results.get_latest_for_identity(identity)
    if record is None:
        raise ResultNotFound("The requested test result was Not Found.")
    return record


def retrieve_test_result(
    command: commands.RetrieveTestResult,
    uow: AbstractUnitOfWork,
) -> Optional[model.TestRecord]:
    """
    Look up the latest test result for an identity.

    Returns:
        The TestRecord if its result is a released Negative, otherwise None.
        Pending, positive and indeterminate results are indistinguishable to
        the caller.

    Raises:
        InvalidRequest: If an identity field is missing or empty
        ResultNotFound: If no clinical record matches the identity
        ClinicalQueryError: If the clinical store cannot be queried
    """
    _require(command, "last_name", "health_care_number", "birth_date")

    with uow:
        record = _find_latest(command, uow)
        if record.release():
            logger.info(f"Released Negative result for specimen {record.specimen_id}")
            return record

    logger.info("Requested test result is not ready")
    return None


def request_notification(
    command: commands.RequestNotification,
    uow: AbstractUnitOfWork,
) -> str:
    """
    Record a request for an SMS notification on the latest specimen.

    Unlike the view ledger, a failed insert here fails the request: recording
    it is the whole point of the call.

    Returns:
        The specimen id the request was recorded against
    """
    _require(
        command,
        "last_name",
        "health_care_number",
        "birth_date",
        "notification_telephone",
        "preferred_language",
    )

    with uow:
        record = _find_latest(command, uow)
        request = record.request_notification(
            command.notification_telephone, command.preferred_language
        )
        uow.notifications.add(request)
        uow.commit()

    logger.info(f"Recorded notification request for specimen {record.specimen_id}")
    return record.specimen_id


def record_viewed_result(event: events.NegativeResultReleased, uow: AbstractUnitOfWork):
    with uow:
        uow.viewed_results.add(model.ViewedResult(specimen_id=event.specimen_id))
        uow.commit()


def purge_expired_viewed_results(event: events.NegativeResultReleased, uow: AbstractUnitOfWork):
    with uow:
        deleted = uow.viewed_results.purge_expired(model.utcnow() - config.get_ledger_retention())
        uow.commit()
    logger.debug(f"Purged {deleted} expired viewed results")


def purge_expired_notification_requests(event: events.NotificationRequested, uow: AbstractUnitOfWork):
    with uow:
        deleted = uow.notifications.purge_expired(model.utcnow() - config.get_ledger_retention())
        uow.commit()
    logger.debug(f"Purged {deleted} expired notification requests")
