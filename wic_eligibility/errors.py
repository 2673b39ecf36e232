"""Exception taxonomy for the eligibility subsystem.

Not-found is never an exception: a code absent from the registry is an
ineligible verdict. Only client-input and operational failures raise.
"""

from __future__ import annotations


class EligibilityError(Exception):
    """Base class for all eligibility subsystem errors."""


class InvalidProductCodeError(EligibilityError, ValueError):
    """The raw product code does not normalize to 8-14 digits."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Invalid product code: {code!r} (must contain 8-14 digits)")


class RegistryUnavailableError(EligibilityError):
    """The APL registry read transport failed (connection, timeout, query error)."""


class UnsupportedStateError(EligibilityError):
    """No state policy is configured for the requested jurisdiction."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"State '{state}' is not currently supported")
