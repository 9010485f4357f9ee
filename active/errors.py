"""Exception hierarchy for Active.

ContractViolation  caller handed in something the core never accepts
StoreError         the backing store could not be read or written
SchedulingError    a notification scheduler rejected a request
"""

from __future__ import annotations


class ActiveError(Exception):
    """Base class for every error raised by the core."""


class ContractViolation(ActiveError, ValueError):
    """A programming-contract violation: validate input before calling."""


class StoreError(ActiveError):
    """The persistent store is unreadable, malformed or not writable."""


class SchedulingError(ActiveError):
    """Reminder scheduling was refused (permissions, OS rejection, hook failure)."""
