"""Exception hierarchy for the slot-events framework."""


class EventSystemError(Exception):
    """Base exception for all slot-events errors."""


class ConfigurationError(EventSystemError):
    """Raised when a configuration value has the wrong kind or an unknown key."""


class PersistenceError(EventSystemError):
    """Raised by a snapshot sink when it cannot read or write a blob."""
