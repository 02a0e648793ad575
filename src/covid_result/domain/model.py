import re
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import List, Optional

from covid_result.domain.events import NegativeResultReleased, NotificationRequested

NEGATIVE_RESULT = re.compile(r"Negative\.?")
NAME_WORD = re.compile(r"\w\S*")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_clinical_time(moment: datetime, tz: tzinfo) -> datetime:
    """Express a ledger timestamp (UTC, naive when read back) as naive local time in tz."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).replace(tzinfo=None)


def is_negative_result(result: Optional[str]) -> bool:
    """A result is Negative only if it is exactly "Negative" or "Negative."."""
    if not result:
        return False
    return NEGATIVE_RESULT.fullmatch(str(result).strip()) is not None


def format_patient_name(name: str) -> str:
    """'SMITH, JOHN PAUL' -> 'Smith, John Paul'"""
    return NAME_WORD.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:], name.strip().lower())


def format_birth_date(dob: str) -> str:
    """'19900102' -> '1990-01-02'"""
    return f"{dob[:4]}-{dob[4:6]}-{dob[6:]}"


@dataclass(frozen=True)
class Identity:
    health_care_number: str  # digits only, no hyphens
    dob: str                 # YYYYMMDD
    last_name: str           # upper case

    @classmethod
    def normalize(cls, health_care_number: str, birth_date: str, last_name: str) -> "Identity":
        """
        Canonicalize client-supplied identity fields into the clinical store's format.

        No format validation is done here: malformed input simply matches no record.
        """
        return cls(
            health_care_number=health_care_number.replace("-", ""),
            dob=birth_date.replace("-", ""),
            last_name=last_name.upper(),
        )


@dataclass
class NotificationRequest:
    specimen_id: str
    notification_telephone: str
    preferred_language: str
    request_time: datetime = field(default_factory=utcnow)
    id: Optional[int] = None


@dataclass
class ViewedResult:
    specimen_id: str
    viewed_time: datetime = field(default_factory=utcnow)
    id: Optional[int] = None


@dataclass(unsafe_hash=True)
class TestRecord:
    """Latest test record for a patient, read from the clinical records store."""
    __test__ = False  # not a pytest test class

    patient_name: str
    dob: str
    collection_time: datetime
    result_entered_time: Optional[datetime]  # None while the result is pending
    result: Optional[str]
    specimen_id: str
    events: List = field(default_factory=list, compare=False, hash=False)

    @property
    def is_released_negative(self) -> bool:
        return is_negative_result(self.result)

    def release(self) -> bool:
        """
        Release the result to the client if it is a Negative.

        Generates NegativeResultReleased so the delivery is recorded in the
        view ledger. Any other result (pending, positive, indeterminate) is
        withheld and no event is raised.
        """
        if not self.is_released_negative:
            return False
        self.events.append(NegativeResultReleased(specimen_id=self.specimen_id))
        return True

    def request_notification(self, notification_telephone: str, preferred_language: str) -> NotificationRequest:
        request = NotificationRequest(
            specimen_id=self.specimen_id,
            notification_telephone=notification_telephone,
            preferred_language=preferred_language,
        )
        self.events.append(NotificationRequested(specimen_id=self.specimen_id))
        return request
