"""
DI-specific error types with readable diagnostics.
"""

from typing import List, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class DuplicateRegistrationError(DIError):
    """Two injectables or routes registered under the same identity."""

    def __init__(self, token: str, existing: Optional[str] = None):
        self.token = token
        self.existing = existing

        msg = f"Duplicate registration for token={token}"
        if existing:
            msg += f" (already registered by {existing})"
        msg += "\n\nSuggested fixes:"
        msg += "\n  - Remove the duplicate registration"
        msg += "\n  - Register one of them under an explicit name"

        super().__init__(msg)


class UnresolvedDependencyError(DIError):
    """Resolution requested for a token that was never registered."""

    def __init__(
        self,
        token: str,
        requested_by: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.token = token
        self.requested_by = requested_by
        self.candidates = candidates or []

        msg = f"No injectable registered for token={token}"
        if requested_by:
            msg += f"\nRequested by: {requested_by}"

        if self.candidates:
            msg += "\n\nSimilar tokens:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        super().__init__(msg)


class CyclicDependencyError(DIError):
    """Resolution revisited a token already on the resolution stack."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Detected dependency cycle:"
        msg += "\n  " + " -> ".join(cycle)
        msg += "\n\nSuggested fixes:"
        msg += "\n  - Extract the shared part into a separate injectable"
        msg += "\n  - Resolve one side lazily from the container at call time"

        super().__init__(msg)


class ScopeViolationError(DIError):
    """A request-scoped injectable was resolved outside of a request."""

    def __init__(self, token: str, consumer: Optional[str] = None):
        self.token = token
        self.consumer = consumer

        if consumer:
            msg = (
                f"Scope violation: request-scoped '{token}' required by "
                f"'{consumer}' while building a singleton or outside a request"
            )
        else:
            msg = f"Scope violation: request-scoped '{token}' resolved without a request scope"
        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Make '{token}' singleton or transient"
        if consumer:
            msg += f"\n  - Make '{consumer}' request-scoped"

        super().__init__(msg)
