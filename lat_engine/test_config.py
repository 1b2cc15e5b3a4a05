"""
Tests for reward parameters and the node configuration file.
"""
import os
import shutil
import tempfile
import unittest

from lat_engine.config import (
    Config,
    DEFAULT_EARLY_WITHDRAWAL_FEE,
    DEFAULT_INACTIVITY_PENALTY,
    DEFAULT_INACTIVITY_SLASHING_DELAY,
    DEFAULT_MAX_CLAIMABLE,
    RewardsConfig,
)
from lat_engine.errors import ArithmeticOverflow


def rewards(**overrides):
    params = dict(
        trade_reward_rate=100,
        stake_reward_rate=200,
        trade_epoch_duration=3600,
        epoch_duration=6500,
        pool_volume_threshold=50000,
        pool_boost_multiplier=120,
    )
    params.update(overrides)
    return RewardsConfig(**params)


class TestRewardsConfig(unittest.TestCase):
    def test_defaults(self):
        config = rewards()
        self.assertEqual(config.early_withdrawal_fee, DEFAULT_EARLY_WITHDRAWAL_FEE)
        self.assertEqual(config.inactivity_slashing_delay, DEFAULT_INACTIVITY_SLASHING_DELAY)
        self.assertEqual(config.inactivity_penalty, DEFAULT_INACTIVITY_PENALTY)
        self.assertEqual(config.max_claimable, DEFAULT_MAX_CLAIMABLE)

    def test_dict_round_trip(self):
        config = rewards(max_claimable=2 ** 255)
        self.assertEqual(RewardsConfig.from_dict(config.to_dict()), config)

    def test_from_dict_accepts_strings(self):
        data = {k: str(v) for k, v in rewards().to_dict().items()}
        self.assertEqual(RewardsConfig.from_dict(data), rewards())

    def test_rejects_out_of_range_values(self):
        with self.assertRaises(ArithmeticOverflow):
            rewards(trade_reward_rate=-1)
        with self.assertRaises(ArithmeticOverflow):
            rewards(max_claimable=2 ** 256)
        with self.assertRaises(ArithmeticOverflow):
            rewards(epoch_duration=True)

    def test_rejects_percent_above_100(self):
        with self.assertRaises(ValueError):
            rewards(early_withdrawal_fee=101)
        with self.assertRaises(ValueError):
            rewards(inactivity_penalty=101)

    def test_is_immutable(self):
        config = rewards()
        with self.assertRaises(AttributeError):
            config.trade_reward_rate = 1


class TestConfigFile(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_default(self):
        config = Config.default()
        self.assertFalse(config.monitoring.enabled)
        self.assertEqual(config.monitoring.port, 9090)
        self.assertEqual(config.database.compression, 'snappy')

    def test_file_round_trip(self):
        path = os.path.join(self.test_dir, 'nested', 'config.json')
        config = Config.default()
        config.monitoring.enabled = True
        config.database.path = '/var/lib/lat'
        config.to_file(path)

        loaded = Config.from_file(path)
        self.assertEqual(loaded.to_dict(), config.to_dict())
        self.assertTrue(loaded.monitoring.enabled)

    def test_partial_file_uses_defaults(self):
        path = os.path.join(self.test_dir, 'config.json')
        with open(path, 'w') as f:
            f.write('{"monitoring": {"port": 9100}}')

        loaded = Config.from_file(path)
        self.assertEqual(loaded.monitoring.port, 9100)
        self.assertEqual(loaded.database.path, './lat_engine_data')


if __name__ == '__main__':
    unittest.main()
