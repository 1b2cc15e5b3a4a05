"""
Trade recording and trade reward claims.

Reward per trade:

    multiplier = 150 if epoch volume (after this trade) < pool threshold else 100
    reward     = volume * trade_reward_rate * multiplier // 100

Rewards accrue as pending and are minted on a signed claim once the trade
epoch has elapsed since the last claim.
"""
import logging

from lat_engine.accounts import EngineState
from lat_engine.config import BASE_MULTIPLIER, FEE_RATE_PERCENT, TRADE_BONUS_MULTIPLIER
from lat_engine.context import ChainContext
from lat_engine.epoch import EpochTracker
from lat_engine.errors import StateError
from lat_engine.events import Event, TRADE_RECORDED, TRADE_REWARDS_CLAIMED
from lat_engine.interfaces import call_external
from lat_engine.signatures import ReplayProtectionAuthority
from lat_engine.utils.arith import checked_add, checked_mul, require_uint256

logger = logging.getLogger(__name__)


class TradeAccountingEngine:
    def __init__(self, state: EngineState, context: ChainContext,
                 authority: ReplayProtectionAuthority, token, emit):
        self.state = state
        self.context = context
        self.authority = authority
        self.token = token
        self.emit = emit
        self.epoch_tracker = EpochTracker(state.epoch, state.config.epoch_duration)

    def reward_multiplier(self) -> int:
        if self.state.epoch.epoch_trade_volume < self.state.config.pool_volume_threshold:
            return TRADE_BONUS_MULTIPLIER
        return BASE_MULTIPLIER

    def compute_trade_reward(self, trade_volume: int, multiplier: int) -> int:
        raw = checked_mul(checked_mul(trade_volume, self.state.config.trade_reward_rate), multiplier)
        return raw // 100

    def record_trade(self, trader: bytes, trade_volume: int, is_maker: bool) -> int:
        """Record a trade and accrue its reward. Returns the reward accrued."""
        require_uint256(trade_volume, "trade_volume")
        self.epoch_tracker.checkpoint(self.context.height)

        self.state.total_trades = checked_add(self.state.total_trades, 1)
        self.state.epoch.add_volume(trade_volume)

        first_trade = trader not in self.state.traders
        stats = self.state.trader(trader)
        stats.trade_count = checked_add(stats.trade_count, 1)
        stats.volume = checked_add(stats.volume, trade_volume)

        multiplier = self.reward_multiplier()
        reward = self.compute_trade_reward(trade_volume, multiplier)
        stats.pending_rewards = checked_add(stats.pending_rewards, reward)

        fee = checked_mul(trade_volume, FEE_RATE_PERCENT) // 100
        ledger = self.state.maker_rebates if is_maker else self.state.taker_fees
        ledger[trader] = checked_add(ledger.get(trader, 0), fee)

        if first_trade:
            stats.last_claim = self.context.timestamp

        logger.debug(
            f"Trade by {trader.hex()[:8]}: volume={trade_volume} maker={is_maker} "
            f"multiplier={multiplier} reward={reward}"
        )
        self.emit(Event(TRADE_RECORDED, {
            'trader': trader, 'volume': trade_volume, 'is_maker': bool(is_maker),
        }))
        return reward

    def claim_trade_rewards(self, trader: bytes, expected_nonce: int, signature: bytes) -> int:
        """Mint the trader's pending reward. Returns the amount minted."""
        self.authority.consume(trader, expected_nonce, signature, require_signature=True)

        config = self.state.config
        stats = self.state.traders.get(trader)
        last_claim = stats.last_claim if stats else 0
        now = self.context.timestamp
        if now < last_claim + config.trade_epoch_duration:
            raise StateError(
                f"Trade epoch not elapsed: next claim at {last_claim + config.trade_epoch_duration}"
            )

        reward = stats.pending_rewards if stats else 0
        if reward == 0:
            raise StateError("No pending trade rewards")
        if reward > config.max_claimable:
            raise StateError(f"Reward {reward} exceeds max claimable {config.max_claimable}")

        # Zeroed before minting so a reentrant claim finds nothing
        stats.pending_rewards = 0
        stats.last_claim = now
        call_external("mint", self.token.mint, trader, reward)

        logger.info(f"Trade rewards claimed by {trader.hex()[:8]}: {reward}")
        self.emit(Event(TRADE_REWARDS_CLAIMED, {'trader': trader, 'reward': reward}))
        return reward
