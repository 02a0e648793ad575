"""Domain events for the test result service."""

from dataclasses import dataclass


@dataclass
class Event:
    """Base class for all domain events."""
    pass


@dataclass
class NegativeResultReleased(Event):
    """Event raised when a Negative result has been released to a client."""
    specimen_id: str


@dataclass
class NotificationRequested(Event):
    """Event raised when an SMS notification request has been recorded."""
    specimen_id: str
