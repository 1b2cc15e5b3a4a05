"""
Exceptions raised by the reward/staking engine.

Every exception here aborts the operation that raised it; the engine restores
its pre-call state before the exception reaches the caller.
"""


class ValidationError(Exception):
    """Raised when an operation is rejected."""
    pass


class ConfigurationError(ValidationError):
    """Engine not initialized, or initialized twice."""
    pass


class AuthorizationError(ValidationError):
    """Caller is not the owner."""
    pass


class PausedError(ValidationError):
    """Operation attempted while the engine is paused."""
    pass


class ReplayError(ValidationError):
    """Claim nonce does not match the account's current nonce."""
    pass


class AuthenticationError(ValidationError):
    """Claim signature does not recover to the claiming account."""
    pass


class StateError(ValidationError):
    """Account state does not allow the operation."""
    pass


class ExternalCallFailure(ValidationError):
    """Token or vault capability reported failure."""
    pass


class ReentrancyError(ValidationError):
    """A guarded operation was entered while another one is in flight."""
    pass


class ArithmeticOverflow(ValidationError):
    """Integer result outside the uint256 range."""
    pass
