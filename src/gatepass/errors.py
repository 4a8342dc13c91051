"""Domain exceptions raised by the registry, tracking and notify layers."""


class GatepassError(Exception):
    """Base exception for the check-in system."""


class PersonNotFoundError(GatepassError):
    """Raised when no visitor, foreign visitor or intern has the given id."""


class LocationNotFoundError(GatepassError):
    """Raised when no location record matches a gate action."""


class DuplicateCheckInError(GatepassError):
    """Raised when a person already has a location record for the check-in scope."""


class ConcurrentUpdateError(GatepassError):
    """Raised when a conditional write lost a race with another request."""


class NotificationError(GatepassError):
    """Raised when the mail relay rejects or cannot receive a message."""


class TagInUseError(GatepassError):
    """Raised when an RFID tag is already bound to another record with the same name."""
