"""
In-memory token and vault used by tests and local runs.

MockLAT mirrors the token the engine was deployed against: balances,
allowances, mint, and transferFrom on behalf of an approved operator.
TreasuryVault keeps staked value as a MockLAT balance at its own address.
"""
import logging

from lat_engine.config import ENGINE_ADDRESS, VAULT_ADDRESS
from lat_engine.interfaces import (
    TokenMintInterface,
    TokenTransferInterface,
    Transactional,
    TreasuryVaultInterface,
)

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised by the mock token on an invalid movement."""
    pass


class MockLAT(TokenMintInterface, TokenTransferInterface, Transactional):
    def __init__(self, name: str = "LAT Token", symbol: str = "LAT",
                 operator: bytes = ENGINE_ADDRESS):
        self.name = name
        self.symbol = symbol
        # transfer_from spends allowances granted to this address
        self.operator = operator
        self.balances = {}
        self.allowances = {}  # {(owner, spender): amount}
        self.total_supply = 0

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, account: bytes, amount: int):
        if amount < 0:
            raise TokenError("Cannot mint a negative amount")
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount
        logger.debug(f"Minted {amount} {self.symbol} to {account.hex()[:8]}")

    def approve(self, owner: bytes, spender: bytes, amount: int) -> bool:
        self.allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: bytes, recipient: bytes, amount: int):
        if amount < 0 or self.balance_of(sender) < amount:
            raise TokenError(f"Insufficient {self.symbol} balance for transfer")
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

    def transfer_from(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        allowed = self.allowance(sender, self.operator)
        if amount < 0 or allowed < amount or self.balance_of(sender) < amount:
            return False
        self.allowances[(sender, self.operator)] = allowed - amount
        self.transfer(sender, recipient, amount)
        return True

    def snapshot(self):
        return dict(self.balances), dict(self.allowances), self.total_supply

    def restore(self, snapshot):
        balances, allowances, total_supply = snapshot
        self.balances = dict(balances)
        self.allowances = dict(allowances)
        self.total_supply = total_supply


class TreasuryVault(TreasuryVaultInterface, Transactional):
    """Custody of staked LAT."""

    def __init__(self, token: MockLAT, address: bytes = VAULT_ADDRESS):
        self.token = token
        self.address = address
        self.withdrawals = []  # [(recipient, amount)]

    @property
    def holdings(self) -> int:
        return self.token.balance_of(self.address)

    def withdraw(self, recipient: bytes, amount: int):
        self.token.transfer(self.address, recipient, amount)
        self.withdrawals.append((recipient, amount))

    def snapshot(self):
        return list(self.withdrawals)

    def restore(self, snapshot):
        self.withdrawals = list(snapshot)
