"""
LevelDB-backed snapshot store for engine state.

Layout:
    engine:state            latest msgpack-encoded EngineState
    engine:height           height the latest snapshot was taken at (ascii)
    engine:history:<h>      snapshot taken at height h (8-byte big-endian)
"""
import logging
from contextlib import contextmanager
from typing import Optional

import plyvel

from lat_engine.accounts import EngineState
from lat_engine.config import DatabaseConfig

logger = logging.getLogger(__name__)

STATE_KEY = b'engine:state'
HEIGHT_KEY = b'engine:height'
HISTORY_PREFIX = b'engine:history:'


def _history_key(height: int) -> bytes:
    return HISTORY_PREFIX + height.to_bytes(8, 'big')


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = 4 * 1024 * 1024,
                 max_open_files: int = 100,
                 compression: str = 'snappy'):
        self.path = db_path
        try:
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
                compression=compression,
            )
        except plyvel.Error as e:
            logger.error(f"Cannot open snapshot store {db_path}: {e}")
            raise
        self._closed = False
        logger.info(f"Snapshot store ready at {db_path}")

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> 'DB':
        return cls(
            config.path,
            write_buffer_size=config.write_buffer_size,
            max_open_files=config.max_open_files,
            compression=config.compression,
        )

    def _ensure_open(self):
        if self._closed:
            raise RuntimeError(f"Snapshot store {self.path} is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        self._ensure_open()
        return self._db.get(key)

    def put(self, key: bytes, value: bytes):
        self._ensure_open()
        self._db.put(key, value)

    @contextmanager
    def write_batch(self):
        """All puts inside the block land together or not at all."""
        self._ensure_open()
        batch = self._db.write_batch(transaction=True)
        try:
            yield batch
        except Exception as e:
            logger.error(f"Discarding batch for {self.path}: {e}")
            raise
        batch.write()

    def save_state(self, state: EngineState, height: int = 0):
        """Store `state` as the latest snapshot and in the history at `height`."""
        encoded = state.encode()
        with self.write_batch() as batch:
            batch.put(STATE_KEY, encoded)
            batch.put(HEIGHT_KEY, str(height).encode())
            batch.put(_history_key(height), encoded)
        logger.info(f"Engine snapshot saved at height {height} ({len(encoded)} bytes)")

    def load_state(self, height: Optional[int] = None) -> Optional[EngineState]:
        """Latest snapshot, or the one taken at `height`. None if absent."""
        key = STATE_KEY if height is None else _history_key(height)
        raw = self.get(key)
        if raw is None:
            return None
        return EngineState.decode(raw)

    def saved_height(self) -> Optional[int]:
        raw = self.get(HEIGHT_KEY)
        return int(raw.decode()) if raw is not None else None

    def snapshot_heights(self) -> list:
        """Heights with a stored snapshot, ascending."""
        self._ensure_open()
        return [
            int.from_bytes(key[len(HISTORY_PREFIX):], 'big')
            for key in self._db.iterator(prefix=HISTORY_PREFIX, include_value=False)
        ]

    def close(self):
        if self._closed:
            return
        self._db.close()
        self._closed = True
        logger.info(f"Snapshot store {self.path} closed")
