"""
Stake lifecycle and staking rewards.

Reward for a claim after `elapsed` seconds:

    rate   = stake_reward_rate
    rate   = rate * pool_boost // 100        if pool volume > threshold
    rate   = rate * liquidity_boost // 100   (default 100)
    reward = (amount * rate * elapsed) * weight // 100
    reward -= reward * inactivity_penalty // 100   if now > last_updated + slashing delay

Every stake after the first adds STAKED_WEIGHT_STEP to the account's weight.
Weight and stake_start survive withdrawals, including full ones.
"""
import logging

from lat_engine.accounts import EngineState, StakePosition
from lat_engine.config import (
    BASE_STAKED_WEIGHT,
    DEFAULT_LIQUIDITY_BOOST,
    EARLY_WITHDRAWAL_LOCK,
    STAKED_WEIGHT_STEP,
)
from lat_engine.context import ChainContext
from lat_engine.errors import ExternalCallFailure, StateError
from lat_engine.events import Event, STAKE_LAT, STAKE_REWARDS_CLAIMED, STAKE_WITHDRAWN
from lat_engine.interfaces import call_external
from lat_engine.signatures import ReplayProtectionAuthority
from lat_engine.utils.arith import checked_add, checked_mul, checked_sub, mul_div, require_uint256

logger = logging.getLogger(__name__)


class StakingEngine:
    def __init__(self, state: EngineState, context: ChainContext,
                 authority: ReplayProtectionAuthority, token, vault, owner: bytes, emit):
        self.state = state
        self.context = context
        self.authority = authority
        self.token = token
        self.vault = vault
        self.owner = owner
        self.emit = emit

    def effective_rate(self, staker: bytes) -> int:
        config = self.state.config
        rate = config.stake_reward_rate
        if self.state.epoch.pool_trading_volume > config.pool_volume_threshold:
            rate = mul_div(rate, config.pool_boost_multiplier, 100)
        boost = self.state.liquidity_boost.get(staker, DEFAULT_LIQUIDITY_BOOST)
        return mul_div(rate, boost, 100)

    def compute_reward(self, staker: bytes, position: StakePosition, now: int) -> tuple[int, int]:
        """Returns (reward after slashing, slashed amount)."""
        config = self.state.config
        elapsed = checked_sub(now, position.last_updated)
        rate = self.effective_rate(staker)

        raw = checked_mul(checked_mul(position.amount, rate), elapsed)
        weight = self.state.staked_weight.get(staker, BASE_STAKED_WEIGHT)
        reward = mul_div(raw, weight, 100)

        slashed = 0
        if now > position.last_updated + config.inactivity_slashing_delay:
            slashed = mul_div(reward, config.inactivity_penalty, 100)
            reward = checked_sub(reward, slashed)
        return reward, slashed

    def stake_lat(self, staker: bytes, amount: int):
        require_uint256(amount, "amount")
        ok = call_external("transfer_from", self.token.transfer_from,
                           staker, self.vault.address, amount)
        if not ok:
            raise ExternalCallFailure("Stake transfer failed")

        now = self.context.timestamp
        position = self.state.stakes.get(staker)
        if position is None:
            position = StakePosition()
            position.stake_start = now
            self.state.stakes[staker] = position
            self.state.staked_weight[staker] = BASE_STAKED_WEIGHT
        else:
            self.state.staked_weight[staker] = checked_add(
                self.state.staked_weight.get(staker, BASE_STAKED_WEIGHT), STAKED_WEIGHT_STEP
            )

        position.amount = checked_add(position.amount, amount)
        position.last_updated = now

        logger.info(
            f"Stake by {staker.hex()[:8]}: +{amount} (total {position.amount}, "
            f"weight {self.state.staked_weight[staker]})"
        )
        self.emit(Event(STAKE_LAT, {'trader': staker, 'amount': amount}))

    def claim_stake_rewards(self, staker: bytes, expected_nonce: int) -> int:
        # Nonce only: stake claims carry no signature
        self.authority.consume(staker, expected_nonce, require_signature=False)

        position = self.state.stakes.get(staker)
        if position is None or position.amount == 0:
            raise StateError("No stake found")

        now = self.context.timestamp
        if now <= position.last_updated:
            raise StateError("No time elapsed since last stake update")

        reward, slashed = self.compute_reward(staker, position, now)
        if slashed:
            logger.info(f"Inactivity penalty for {staker.hex()[:8]}: {slashed}")

        position.last_updated = now
        call_external("mint", self.token.mint, staker, reward)

        logger.info(f"Stake rewards claimed by {staker.hex()[:8]}: {reward}")
        self.emit(Event(STAKE_REWARDS_CLAIMED, {'trader': staker, 'reward': reward}))
        return reward

    def withdraw_stake(self, staker: bytes, amount: int) -> tuple[int, int]:
        """Returns (net amount paid out, penalty)."""
        require_uint256(amount, "amount")
        position = self.state.stakes.get(staker)
        staked = position.amount if position else 0
        if amount > staked:
            raise StateError(f"Insufficient stake: have {staked}, requested {amount}")

        now = self.context.timestamp
        stake_start = position.stake_start if position else 0
        penalty = 0
        if now < stake_start + EARLY_WITHDRAWAL_LOCK:
            penalty = mul_div(amount, self.state.config.early_withdrawal_fee, 100)
        net_amount = checked_sub(amount, penalty)

        if position is not None:
            position.amount = checked_sub(position.amount, amount)

        call_external("withdraw", self.vault.withdraw, staker, net_amount)
        if penalty > 0:
            call_external("withdraw", self.vault.withdraw, self.owner, penalty)

        logger.info(
            f"Stake withdrawn by {staker.hex()[:8]}: net={net_amount} penalty={penalty}"
        )
        self.emit(Event(STAKE_WITHDRAWN, {
            'trader': staker, 'net_amount': net_amount, 'penalty': penalty,
        }))
        return net_amount, penalty
