"""
DI-specific error types with rich diagnostics.
"""

from typing import List, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class UnboundTokenError(DIError):
    """No binding registered for the requested token."""

    def __init__(
        self,
        token: str,
        requested_by: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.token = token
        self.requested_by = requested_by
        self.candidates = candidates or []

        msg = f"No binding found for token={token}"
        if requested_by:
            msg += f"\nRequested by: {requested_by}"

        if self.candidates:
            msg += "\n\nSimilar bindings:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Bind it: container.bind({token}).to(...).in_singleton_scope()"
        msg += "\n  - Give the constructor parameter a default to make it optional"

        super().__init__(msg)


class CircularDependencyError(DIError):
    """Circular dependency detected while resolving."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Circular dependency detected in DI container:\n  "
        msg += " -> ".join(cycle)

        msg += "\n\nSuggested fixes:"
        msg += "\n  1. Break the cycle by refactoring dependencies"
        msg += "\n  2. Extract shared dependencies into a separate service"
        msg += "\n  3. Pass a factory instead of the instance"

        super().__init__(msg)


class DuplicateBindingError(DIError):
    """Token already bound to a different target."""

    def __init__(self, token: str, existing: str, requested: str):
        self.token = token
        self.existing = existing
        self.requested = requested

        msg = (
            f"Token {token} is already bound to {existing}; refusing to bind it to {requested}.\n"
            f"\nSuggested fix:"
            f"\n  - Use container.rebind({token}) to replace an unresolved binding"
        )
        super().__init__(msg)


class BindingLockedError(DIError):
    """Binding changed after the token was resolved."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"Token {token} has already been resolved; its binding can no longer change"
        )
