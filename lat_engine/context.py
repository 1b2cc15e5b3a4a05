"""
Block time and height seen by engine operations.
"""
import time
from typing import Optional


class ChainContext:
    """
    Current timestamp (seconds) and block height.

    With no fixed timestamp the wall clock is used. Tests and replays pin
    both values and move them with advance().
    """

    def __init__(self, timestamp: Optional[int] = None, height: int = 0):
        self._timestamp = timestamp
        self.height = height

    @property
    def timestamp(self) -> int:
        if self._timestamp is None:
            return int(time.time())
        return self._timestamp

    @timestamp.setter
    def timestamp(self, value: int):
        self._timestamp = value

    def advance(self, seconds: int = 0, blocks: int = 0):
        self._timestamp = self.timestamp + seconds
        self.height += blocks

    def __repr__(self) -> str:
        return f"ChainContext(timestamp={self.timestamp}, height={self.height})"
