"""Commands for the test result service."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Command:
    """Base class for all commands."""
    pass


# Identity and contact fields are kept out of repr so they never reach the logs.

@dataclass
class RetrieveTestResult(Command):
    """Command to look up the latest test result for a client-supplied identity."""
    last_name: Optional[str] = field(repr=False)
    health_care_number: Optional[str] = field(repr=False)
    birth_date: Optional[str] = field(repr=False)


@dataclass
class RequestNotification(Command):
    """Command to record a request for an SMS once the result is ready."""
    last_name: Optional[str] = field(repr=False)
    health_care_number: Optional[str] = field(repr=False)
    birth_date: Optional[str] = field(repr=False)
    notification_telephone: Optional[str] = field(repr=False)
    preferred_language: Optional[str]
