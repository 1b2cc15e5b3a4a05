"""
Liquidity Acceleration reward engine.

Wires trade accounting, staking and replay protection behind one owner-
controlled facade.

Guarantees:
- Every mutating operation runs under the reentrancy guard and is
  all-or-nothing: on any error the engine state, and the state of any
  snapshot-capable collaborator, is restored to what it was before the call.
- Events are published only after an operation commits.
- initialize() succeeds exactly once; nothing else mutates state before it.
- While paused, only set_paused() is accepted.
"""
import logging
import time
from contextlib import contextmanager
from typing import Optional

from lat_engine.accounts import EngineState, StakePosition, TraderStats
from lat_engine.config import (
    DEFAULT_LIQUIDITY_BOOST,
    ENGINE_ADDRESS,
    HOLDER_LIQUIDITY_BOOST,
    RewardsConfig,
)
from lat_engine.context import ChainContext
from lat_engine.errors import (
    ArithmeticOverflow,
    AuthorizationError,
    ConfigurationError,
    PausedError,
    ValidationError,
)
from lat_engine.events import Event, EventLog, LIQUIDITY_MULTIPLIER_UPDATED, PAUSED
from lat_engine.interfaces import Transactional
from lat_engine.reentrancy import ReentrancyGuard
from lat_engine.signatures import ReplayProtectionAuthority, claim_message
from lat_engine.staking import StakingEngine
from lat_engine.trading import TradeAccountingEngine
from lat_engine.utils.arith import require_uint256
from lat_engine.utils.encoding import normalize_address

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class LiquidityAccelerationToken:
    def __init__(self, owner: bytes, context: ChainContext = None,
                 address: bytes = ENGINE_ADDRESS, monitor=None, state: EngineState = None,
                 guard_timeout: float = None):
        """
        Args:
            owner: address allowed to initialize, pause and set boosts
            context: block time/height source (wall clock, height 0 if omitted)
            address: this engine's own address (token allowances are granted to it)
            monitor: optional Monitor receiving operation metrics
            state: previously saved state to resume from
            guard_timeout: seconds another thread waits for an operation in flight
                before giving up with ReentrancyError (wait forever if omitted)
        """
        self.owner = normalize_address(owner)
        self.address = normalize_address(address)
        self.context = context or ChainContext()
        self.monitor = monitor
        self.events = EventLog()
        self.guard = ReentrancyGuard(guard_timeout)

        self.token = None
        self.vault = None
        self.state = state or EngineState()
        self._pending_events = None
        self._wire()

    # ==========================================================================
    # WIRING & TRANSACTIONS
    # ==========================================================================

    def _wire(self):
        """(Re)build components over the current state object."""
        self.authority = ReplayProtectionAuthority(self.state.nonces)
        if self.state.config is None:
            self.trading = None
            self.staking = None
            return
        self.trading = TradeAccountingEngine(
            self.state, self.context, self.authority, self.token, self._emit
        )
        self.staking = StakingEngine(
            self.state, self.context, self.authority, self.token, self.vault,
            self.owner, self._emit
        )

    def _emit(self, event: Event):
        self._pending_events.append(event)

    def _participants(self) -> list:
        seen = []
        for collaborator in (self.token, self.vault):
            if isinstance(collaborator, Transactional) and all(c is not collaborator for c in seen):
                seen.append(collaborator)
        return seen

    @contextmanager
    def _transaction(self, operation: str):
        """
        Run one operation atomically under the reentrancy guard.
        """
        started = time.time()
        with self.guard.hold(operation):
            snapshot = self.state.encode()
            participants = self._participants()
            external = [(p, p.snapshot()) for p in participants]
            collaborators = (self.token, self.vault)
            self._pending_events = []
            try:
                yield
            except Exception as e:
                # ROLLBACK engine and collaborator state
                self.state = EngineState.decode(snapshot)
                self.token, self.vault = collaborators
                for participant, saved in external:
                    participant.restore(saved)
                self._wire()
                self._pending_events = None
                logger.warning(f"{operation} rejected: {e}")
                self._record(operation, 'failed', started)
                raise
            events, self._pending_events = self._pending_events, None
        self.events.publish(events)
        self._record(operation, 'ok', started)

    def _record(self, operation: str, status: str, started: float):
        if self.monitor is None:
            return
        self.monitor.record_operation(operation, status, time.time() - started)
        self.monitor.update(self.state)

    def _require_owner(self, caller: bytes):
        if caller != self.owner:
            raise AuthorizationError("Caller is not the owner")

    def _require_initialized(self):
        if not self.state.initialized:
            raise ConfigurationError("Engine not initialized")

    def _require_active(self):
        self._require_initialized()
        if self.state.paused:
            raise PausedError("Engine is paused")

    # ==========================================================================
    # ADMINISTRATION
    # ==========================================================================

    def initialize(self, caller, token, trade_reward_rate: int, stake_reward_rate: int,
                   trade_epoch_duration: int, pool_volume_threshold: int,
                   pool_boost_multiplier: int, epoch_duration: int, vault, **overrides):
        """
        One-time setup. `token` provides mint and transfer_from, `vault`
        provides withdraw and its address. Keyword overrides set the remaining
        RewardsConfig fields (early_withdrawal_fee, inactivity_slashing_delay,
        inactivity_penalty, max_claimable).
        """
        caller = normalize_address(caller)
        with self._transaction('initialize'):
            self._require_owner(caller)
            if self.state.initialized:
                raise ConfigurationError("Already initialized")
            try:
                config = RewardsConfig(
                    trade_reward_rate=trade_reward_rate,
                    stake_reward_rate=stake_reward_rate,
                    trade_epoch_duration=trade_epoch_duration,
                    epoch_duration=epoch_duration,
                    pool_volume_threshold=pool_volume_threshold,
                    pool_boost_multiplier=pool_boost_multiplier,
                    **overrides,
                )
            except (TypeError, ValueError, ArithmeticOverflow) as e:
                raise ConfigurationError(f"Invalid configuration: {e}") from e

            self.state.config = config
            self.state.epoch.epoch_trade_volume = 0
            self.state.epoch.pool_trading_volume = 0
            self.state.epoch.last_rollover_height = self.context.height
            self.state.initialized = True
            self.token = token
            self.vault = vault
            self._wire()
            logger.info(f"Engine initialized: {config}")

    def bind(self, caller, token, vault):
        """Reattach collaborators after resuming from a saved state. Owner only."""
        caller = normalize_address(caller)
        with self._transaction('bind'):
            self._require_owner(caller)
            self._require_initialized()
            self.token = token
            self.vault = vault
            self._wire()
            logger.info("Token and vault bound")

    def set_paused(self, caller, paused: bool):
        caller = normalize_address(caller)
        with self._transaction('set_paused'):
            self._require_owner(caller)
            self._require_initialized()
            self.state.paused = bool(paused)
            logger.info(f"Engine {'paused' if paused else 'unpaused'}")
            self._emit(Event(PAUSED, {'is_paused': bool(paused)}))

    def update_liquidity_multiplier(self, caller, account, attested_holding: int) -> int:
        """
        Set the account's liquidity boost from an owner-attested holding.
        The holding is not checked against any balance.
        """
        caller = normalize_address(caller)
        account = normalize_address(account)
        with self._transaction('update_liquidity_multiplier'):
            self._require_owner(caller)
            self._require_active()
            require_uint256(attested_holding, "attested_holding")
            multiplier = HOLDER_LIQUIDITY_BOOST if attested_holding > 0 else DEFAULT_LIQUIDITY_BOOST
            self.state.liquidity_boost[account] = multiplier
            logger.info(f"Liquidity multiplier for {account.hex()[:8]} set to {multiplier}")
            self._emit(Event(LIQUIDITY_MULTIPLIER_UPDATED, {
                'trader': account, 'multiplier': multiplier,
            }))
        return multiplier

    # ==========================================================================
    # TRADING
    # ==========================================================================

    def record_trade(self, caller, trade_volume: int, is_maker: bool) -> int:
        caller = normalize_address(caller)
        with self._transaction('record_trade'):
            self._require_active()
            reward = self.trading.record_trade(caller, trade_volume, is_maker)
        return reward

    def claim_trade_rewards(self, caller, expected_nonce: int, signature: bytes) -> int:
        caller = normalize_address(caller)
        with self._transaction('claim_trade_rewards'):
            self._require_active()
            reward = self.trading.claim_trade_rewards(caller, expected_nonce, signature)
        if self.monitor is not None:
            self.monitor.record_mint('trade', reward)
        return reward

    # ==========================================================================
    # STAKING
    # ==========================================================================

    def stake_lat(self, caller, amount: int):
        caller = normalize_address(caller)
        with self._transaction('stake_lat'):
            self._require_active()
            self.staking.stake_lat(caller, amount)

    def claim_stake_rewards(self, caller, expected_nonce: int) -> int:
        caller = normalize_address(caller)
        with self._transaction('claim_stake_rewards'):
            self._require_active()
            reward = self.staking.claim_stake_rewards(caller, expected_nonce)
        if self.monitor is not None:
            self.monitor.record_mint('stake', reward)
        return reward

    def withdraw_stake(self, caller, amount: int) -> tuple[int, int]:
        caller = normalize_address(caller)
        with self._transaction('withdraw_stake'):
            self._require_active()
            net_amount, penalty = self.staking.withdraw_stake(caller, amount)
        if self.monitor is not None and penalty:
            self.monitor.record_penalty(penalty)
        return net_amount, penalty

    # ==========================================================================
    # READ ACCESSORS
    # ==========================================================================

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def config(self) -> Optional[RewardsConfig]:
        return self.state.config

    @property
    def vault_address(self) -> Optional[bytes]:
        return self.vault.address if self.vault is not None else None

    @property
    def total_trades(self) -> int:
        return self.state.total_trades

    @property
    def last_rollover_height(self) -> int:
        return self.state.epoch.last_rollover_height

    @property
    def epoch_trade_volume(self) -> int:
        return self.state.epoch.epoch_trade_volume

    @property
    def pool_trading_volume(self) -> int:
        return self.state.epoch.pool_trading_volume

    def nonce_of(self, account) -> int:
        return self.state.nonces.get(normalize_address(account))

    def trader_stats(self, account) -> TraderStats:
        """Copy of the account's trading record (zeros if it never traded)."""
        stats = self.state.traders.get(normalize_address(account))
        return TraderStats(stats.to_dict()) if stats else TraderStats()

    def stake_of(self, account) -> StakePosition:
        position = self.state.stakes.get(normalize_address(account))
        return StakePosition(position.to_dict()) if position else StakePosition()

    def staked_weight(self, account) -> int:
        return self.state.staked_weight.get(normalize_address(account), 0)

    def liquidity_multiplier(self, account) -> int:
        return self.state.liquidity_boost.get(normalize_address(account), DEFAULT_LIQUIDITY_BOOST)

    def maker_rebate(self, account) -> int:
        return self.state.maker_rebates.get(normalize_address(account), 0)

    def taker_fee(self, account) -> int:
        return self.state.taker_fees.get(normalize_address(account), 0)

    def claim_message_for(self, account) -> bytes:
        """Message an off-chain signer must sign for the account's next trade claim."""
        account = normalize_address(account)
        return claim_message(account, self.state.nonces.get(account))

    def get_stats(self) -> dict:
        return {
            'initialized': self.state.initialized,
            'paused': self.state.paused,
            'total_trades': str(self.state.total_trades),
            'epoch_trade_volume': str(self.state.epoch.epoch_trade_volume),
            'pool_trading_volume': str(self.state.epoch.pool_trading_volume),
            'last_rollover_height': self.state.epoch.last_rollover_height,
            'stakers': len(self.state.stakes),
            'traders': len(self.state.traders),
        }

    # ==========================================================================
    # PERSISTENCE
    # ==========================================================================

    def save(self, db):
        with self.guard.hold('save'):
            db.save_state(self.state, self.context.height)

    @classmethod
    def load(cls, db, owner: bytes, token, vault, context: ChainContext = None,
             height: int = None, **kwargs) -> 'LiquidityAccelerationToken':
        """Resume from the latest snapshot, or the one saved at `height`."""
        state = db.load_state(height)
        if state is None:
            raise ValidationError("No saved engine state")
        engine = cls(owner, context=context, state=state, **kwargs)
        if state.initialized:
            engine.bind(owner, token, vault)
        return engine
