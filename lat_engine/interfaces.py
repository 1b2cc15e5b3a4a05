"""
Capabilities the engine calls out to.

The engine never holds balances itself: staked value sits in a vault and
rewards are minted by the token. Implementations may raise, or (for
transfer_from) return False, to signal failure; either aborts the engine
operation.
"""
from abc import ABC, abstractmethod

from lat_engine.errors import ExternalCallFailure, ReentrancyError


class TokenMintInterface(ABC):
    @abstractmethod
    def mint(self, account: bytes, amount: int):
        """Create `amount` tokens for `account`, fully or not at all."""


class TokenTransferInterface(ABC):
    @abstractmethod
    def transfer_from(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        """Move `amount` from `sender` to `recipient` using the caller's allowance."""


class TreasuryVaultInterface(ABC):
    address: bytes

    @abstractmethod
    def withdraw(self, recipient: bytes, amount: int):
        """Release `amount` of staked value to `recipient`."""


class Transactional(ABC):
    """
    Collaborators that can take part in an engine operation's rollback.
    """

    @abstractmethod
    def snapshot(self):
        """Capture current state."""

    @abstractmethod
    def restore(self, snapshot):
        """Return to a state captured by snapshot()."""


def call_external(capability: str, fn, *args):
    """Invoke a collaborator; other exceptions it raises become ExternalCallFailure."""
    try:
        return fn(*args)
    except (ExternalCallFailure, ReentrancyError):
        raise
    except Exception as e:
        raise ExternalCallFailure(f"{capability} failed: {e}") from e
