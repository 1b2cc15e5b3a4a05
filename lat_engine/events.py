"""
Domain events emitted by committed engine operations.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)

TRADE_RECORDED = "TradeRecorded"
TRADE_REWARDS_CLAIMED = "TradeRewardsClaimed"
STAKE_LAT = "StakeLat"
STAKE_REWARDS_CLAIMED = "StakeRewardsClaimed"
STAKE_WITHDRAWN = "StakeWithdrawn"
LIQUIDITY_MULTIPLIER_UPDATED = "LiquidityMultiplierUpdated"
PAUSED = "Paused"


@dataclass(frozen=True)
class Event:
    name: str
    args: dict = field(default_factory=dict)

    def __getitem__(self, key):
        return self.args[key]


class EventLog:
    """Ordered history of committed events, with subscriber callbacks."""

    def __init__(self):
        self.events = []
        self._subscribers = []

    def subscribe(self, callback: Callable[[Event], None]):
        self._subscribers.append(callback)

    def publish(self, events: list):
        for event in events:
            self.events.append(event)
            logger.debug(f"Event {event.name}: {event.args}")
            for callback in self._subscribers:
                try:
                    callback(event)
                except Exception:
                    # The operation already committed; a subscriber cannot undo it
                    logger.exception(f"Subscriber {callback!r} failed on {event.name}")

    def by_name(self, name: str) -> list:
        return [e for e in self.events if e.name == name]

    def __len__(self) -> int:
        return len(self.events)
