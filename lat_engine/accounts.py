"""
Per-account reward and stake records, and the aggregate engine state.

Every container converts to a plain dict (hex-encoded addresses as keys) so
the whole state can be msgpack-encoded for snapshots and persistence.
"""
import msgpack

from lat_engine.config import RewardsConfig
from lat_engine.epoch import EpochState
from lat_engine.signatures import NonceRegistry


class TraderStats:
    """Trading record for one account."""

    def __init__(self, data: dict = None):
        if data is None:
            data = {
                'trade_count': 0,
                'volume': 0,
                'pending_rewards': 0,
                'last_claim': 0,
            }

        self.trade_count = int(data['trade_count'])
        self.volume = int(data['volume'])
        self.pending_rewards = int(data['pending_rewards'])
        self.last_claim = int(data['last_claim'])

    def to_dict(self) -> dict:
        return {
            'trade_count': self.trade_count,
            'volume': self.volume,
            'pending_rewards': self.pending_rewards,
            'last_claim': self.last_claim,
        }

    def __repr__(self) -> str:
        return (
            f"TraderStats(trades={self.trade_count}, volume={self.volume}, "
            f"pending={self.pending_rewards}, last_claim={self.last_claim})"
        )


class StakePosition:
    """Staked balance for one account."""

    def __init__(self, data: dict = None):
        if data is None:
            data = {
                'amount': 0,
                'last_updated': 0,
                'stake_start': 0,
            }

        self.amount = int(data['amount'])
        self.last_updated = int(data['last_updated'])
        self.stake_start = int(data['stake_start'])

    def to_dict(self) -> dict:
        return {
            'amount': self.amount,
            'last_updated': self.last_updated,
            'stake_start': self.stake_start,
        }

    def __repr__(self) -> str:
        return (
            f"StakePosition(amount={self.amount}, "
            f"last_updated={self.last_updated}, stake_start={self.stake_start})"
        )


def _records_from(data: dict, record_cls) -> dict:
    return {bytes.fromhex(k): record_cls(v) for k, v in data.items()}


def _ints_from(data: dict) -> dict:
    return {bytes.fromhex(k): int(v) for k, v in data.items()}


def _records_to(records: dict) -> dict:
    return {addr.hex(): record.to_dict() for addr, record in records.items()}


def _ints_to(values: dict) -> dict:
    return {addr.hex(): value for addr, value in values.items()}


class EngineState:
    """All mutable engine state."""

    def __init__(self, data: dict = None):
        data = data or {}
        self.initialized = bool(data.get('initialized', False))
        self.paused = bool(data.get('paused', False))
        self.config = RewardsConfig.from_dict(data['config']) if data.get('config') else None
        self.total_trades = int(data.get('total_trades', 0))
        self.epoch = EpochState(data.get('epoch'))
        self.traders = _records_from(data.get('traders', {}), TraderStats)
        self.stakes = _records_from(data.get('stakes', {}), StakePosition)
        self.staked_weight = _ints_from(data.get('staked_weight', {}))
        self.liquidity_boost = _ints_from(data.get('liquidity_boost', {}))
        self.maker_rebates = _ints_from(data.get('maker_rebates', {}))
        self.taker_fees = _ints_from(data.get('taker_fees', {}))
        self.nonces = NonceRegistry(data.get('nonces', {}))

    def to_dict(self) -> dict:
        return {
            'initialized': self.initialized,
            'paused': self.paused,
            'config': self.config.to_dict() if self.config else None,
            'total_trades': self.total_trades,
            'epoch': self.epoch.to_dict(),
            'traders': _records_to(self.traders),
            'stakes': _records_to(self.stakes),
            'staked_weight': _ints_to(self.staked_weight),
            'liquidity_boost': _ints_to(self.liquidity_boost),
            'maker_rebates': _ints_to(self.maker_rebates),
            'taker_fees': _ints_to(self.taker_fees),
            'nonces': self.nonces.to_dict(),
        }

    def encode(self) -> bytes:
        # uint256 values exceed msgpack's 64-bit integers, so they travel as strings
        return msgpack.packb(_stringify(self.to_dict()), use_bin_type=True)

    @classmethod
    def decode(cls, raw: bytes) -> 'EngineState':
        return cls(msgpack.unpackb(raw, raw=False))

    def trader(self, account: bytes) -> TraderStats:
        """Trader record, created on first access."""
        if account not in self.traders:
            self.traders[account] = TraderStats()
        return self.traders[account]


def _stringify(value):
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {k: _stringify(v) for k, v in value.items()}
    return value
