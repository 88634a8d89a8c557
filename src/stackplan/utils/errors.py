"""Custom exception classes for stackplan."""

from typing import List, Optional


class StackPlanError(Exception):
    """Base exception for all stackplan errors."""
    pass


class InputError(StackPlanError):
    """Raised for problems in the declarative input, before any side effect."""

    def __init__(self, message: str, address: Optional[str] = None):
        self.address = address
        if address:
            message = f"{address}: {message}"
        super().__init__(message)


class ParseError(InputError):
    """Raised when a resource document is malformed."""
    pass


class ValidationError(InputError):
    """Raised when a resource type or attribute is not recognized."""
    pass


class DuplicateNameError(InputError):
    """Raised when two resources share the same (type, name) pair."""
    pass


class UnresolvedReferenceError(InputError):
    """Raised when a reference points to a resource that does not exist."""
    pass


class CycleError(InputError):
    """Raised when resource dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        chain = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Dependency cycle detected: {chain}", address=self.cycle[0] if self.cycle else None)


class ConfigError(StackPlanError):
    """Raised when configuration is invalid or missing."""
    pass


class CorruptStateError(StackPlanError):
    """Raised when the persisted state snapshot cannot be read."""
    pass


class StateLockError(StackPlanError):
    """Raised when the state file is locked by another run."""
    pass


class ProvisioningError(StackPlanError):
    """Raised when the provisioning API rejects or fails an operation."""

    def __init__(self, message: str, address: Optional[str] = None):
        self.address = address
        self.reason = message
        if address:
            message = f"{address}: {message}"
        super().__init__(message)


class PartialApplyError(StackPlanError):
    """Raised when some plan entries failed or were skipped during apply."""

    def __init__(self, result):
        self.result = result
        parts = [
            f"{len(result.succeeded)} succeeded",
            f"{len(result.failed)} failed",
            f"{len(result.skipped)} skipped",
        ]
        message = "Apply incomplete: " + ", ".join(parts)
        if result.cancelled:
            message += " (cancelled)"
        for address in result.failed:
            message += f"\n  {address}: {result.errors.get(address, 'unknown error')}"
        super().__init__(message)

    @property
    def succeeded(self) -> List[str]:
        return self.result.succeeded

    @property
    def failed(self) -> List[str]:
        return self.result.failed

    @property
    def skipped(self) -> List[str]:
        return self.result.skipped
