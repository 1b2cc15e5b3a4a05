"""
Height-based trade volume window.
"""
import logging

from lat_engine.utils.arith import checked_add

logger = logging.getLogger(__name__)


class EpochState:
    """
    Volume bookkeeping shared by every trade.

    epoch_trade_volume resets on rollover; pool_trading_volume never does.
    """

    def __init__(self, data: dict = None):
        if data is None:
            data = {
                'last_rollover_height': 0,
                'epoch_trade_volume': 0,
                'pool_trading_volume': 0,
            }

        self.last_rollover_height = int(data['last_rollover_height'])
        self.epoch_trade_volume = int(data['epoch_trade_volume'])
        self.pool_trading_volume = int(data['pool_trading_volume'])

    def to_dict(self) -> dict:
        return {
            'last_rollover_height': self.last_rollover_height,
            'epoch_trade_volume': self.epoch_trade_volume,
            'pool_trading_volume': self.pool_trading_volume,
        }

    def add_volume(self, volume: int):
        self.epoch_trade_volume = checked_add(self.epoch_trade_volume, volume)
        self.pool_trading_volume = checked_add(self.pool_trading_volume, volume)

    def __repr__(self) -> str:
        return (
            f"EpochState("
            f"last_rollover_height={self.last_rollover_height}, "
            f"epoch_volume={self.epoch_trade_volume}, "
            f"pool_volume={self.pool_trading_volume})"
        )


class EpochTracker:
    """Rolls the epoch over once `epoch_duration` heights have passed."""

    def __init__(self, state: EpochState, epoch_duration: int):
        self.state = state
        self.epoch_duration = epoch_duration

    def checkpoint(self, current_height: int) -> bool:
        """Returns True if the epoch rolled over."""
        if current_height >= self.state.last_rollover_height + self.epoch_duration:
            logger.debug(
                f"Epoch rollover at height {current_height} "
                f"(previous volume {self.state.epoch_trade_volume})"
            )
            self.state.epoch_trade_volume = 0
            self.state.last_rollover_height = current_height
            return True
        return False
