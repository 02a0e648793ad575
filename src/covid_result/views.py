"""
Views for read operations - separate from command/write path.
Following Cosmic Python CQRS pattern: views read the ledgers and the
clinical store without raising domain events.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import config
from covid_result.adapters.clinical_store import ClinicalQueryError
from covid_result.domain import model
from covid_result.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

STATUS_PROBE_ROWS = 5


class StatusCheckFailed(Exception):
    pass


def check_status(uow: AbstractUnitOfWork) -> str:
    """
    Verify the connection to the clinical store and that its table has data.

    Exactly five rows must come back, so a table with fewer than five records
    fails the check even though the connection works.
    """
    with uow:
        rows = uow.test_results.sample(STATUS_PROBE_ROWS)

    if len(rows) != STATUS_PROBE_ROWS:
        raise StatusCheckFailed("Unexpected number of test results in database.")
    return "API status verified."


def list_due_notifications(
    uow: AbstractUnitOfWork,
    cross_check: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Get the notification requests of the past week that now have a Negative result.

    Args:
        uow: Unit of work
        cross_check: Check each candidate against the clinical store. When
            False, every active request is returned as is. Defaults to the
            NOTIFY_CROSS_CHECK setting.

    Returns:
        Deduplicated list of specimenId / notificationTelephone / preferredLanguage
    """
    if cross_check is None:
        cross_check = config.get_notify_cross_check()
    since = model.utcnow() - config.get_active_window()

    due = []
    with uow:
        candidates = uow.notifications.list_active(since)

        for specimen_id, telephone, language in candidates:
            if cross_check:
                try:
                    result = uow.test_results.get_latest_result(specimen_id)
                except ClinicalQueryError as e:
                    logger.error(f"Dropping notification for specimen {specimen_id}: {e}")
                    continue
                if not model.is_negative_result(result):
                    continue

            due.append({
                "specimenId": specimen_id,
                "notificationTelephone": telephone,
                "preferredLanguage": language,
            })

    logger.info(f"{len(due)} of {len(candidates)} notification requests are due")
    return due


def verify_negative_results(uow: AbstractUnitOfWork) -> Tuple[bool, str]:
    """
    Audit the past week of released results against the clinical store.

    Each viewed result must have been Negative as of its viewing time. Viewing
    times are converted to the clinical store's CLINICAL_TIMEZONE before they
    are compared with ResultedDateTime.

    Returns:
        (verified, message)
    """
    since = model.utcnow() - config.get_active_window()
    clinical_tz = config.get_clinical_timezone()

    unverified = []
    with uow:
        viewed = uow.viewed_results.list_recent(since)
        for specimen_id, viewed_time in viewed:
            as_of = model.to_clinical_time(viewed_time, clinical_tz)
            result = uow.test_results.get_latest_result(specimen_id, resulted_before=as_of)
            if not model.is_negative_result(result):
                logger.warning(f"Viewed result for specimen {specimen_id} at {viewed_time} was not Negative: {result!r}")
                unverified.append(specimen_id)

    if unverified:
        return False, f"{len(unverified)} of {len(viewed)} viewed results could not be verified as Negative."
    return True, f"All {len(viewed)} viewed results verified as Negative."
