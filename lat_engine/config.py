"""
Configuration management for the reward engine.
"""
import json
import os
from dataclasses import dataclass, asdict, fields

from lat_engine.utils.arith import require_uint256

TOKEN_UNIT = 10 ** 18

# Reserved addresses
ENGINE_ADDRESS = b'\x00' * 19 + b'\x4c'
VAULT_ADDRESS = b'\x00' * 19 + b'\x56'

# Staking constants
EARLY_WITHDRAWAL_LOCK = 86400 * 7  # 7 days
BASE_STAKED_WEIGHT = 100
STAKED_WEIGHT_STEP = 10

# Trading constants
TRADE_BONUS_MULTIPLIER = 150
BASE_MULTIPLIER = 100
FEE_RATE_PERCENT = 1

# Liquidity boost
DEFAULT_LIQUIDITY_BOOST = 100
HOLDER_LIQUIDITY_BOOST = 120

# Defaults for the parameters initialize() does not take positionally
DEFAULT_EARLY_WITHDRAWAL_FEE = 5
DEFAULT_INACTIVITY_SLASHING_DELAY = 86400 * 30  # 30 days
DEFAULT_INACTIVITY_PENALTY = 10
DEFAULT_MAX_CLAIMABLE = 1_000_000 * TOKEN_UNIT


@dataclass(frozen=True)
class RewardsConfig:
    """Reward economy parameters. Fixed once the engine is initialized."""
    trade_reward_rate: int
    stake_reward_rate: int
    trade_epoch_duration: int  # seconds
    epoch_duration: int  # block heights
    pool_volume_threshold: int
    pool_boost_multiplier: int  # percent
    early_withdrawal_fee: int = DEFAULT_EARLY_WITHDRAWAL_FEE  # percent
    inactivity_slashing_delay: int = DEFAULT_INACTIVITY_SLASHING_DELAY  # seconds
    inactivity_penalty: int = DEFAULT_INACTIVITY_PENALTY  # percent
    max_claimable: int = DEFAULT_MAX_CLAIMABLE

    def __post_init__(self):
        for f in fields(self):
            require_uint256(getattr(self, f.name), f.name)
        if self.early_withdrawal_fee > 100:
            raise ValueError("early_withdrawal_fee cannot exceed 100 percent")
        if self.inactivity_penalty > 100:
            raise ValueError("inactivity_penalty cannot exceed 100 percent")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'RewardsConfig':
        return cls(**{f.name: int(data[f.name]) for f in fields(cls) if f.name in data})


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./lat_engine_data"
    write_buffer_size: int = 4 * 1024 * 1024  # 4MB
    max_open_files: int = 100
    compression: str = "snappy"


@dataclass
class Config:
    """Main configuration."""
    monitoring: MonitoringConfig
    database: DatabaseConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            monitoring=MonitoringConfig(),
            database=DatabaseConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            database=DatabaseConfig(**data.get('database', {}))
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'monitoring': asdict(self.monitoring),
            'database': asdict(self.database)
        }
