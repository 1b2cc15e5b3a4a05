"""
Prometheus metrics recorded by engine operations.
"""
import urllib.request

import pytest

from lat_engine.config import ENGINE_ADDRESS, MonitoringConfig
from lat_engine.context import ChainContext
from lat_engine.crypto import generate_key_pair, public_key_to_address
from lat_engine.engine import LiquidityAccelerationToken
from lat_engine.errors import StateError
from lat_engine.mock_token import MockLAT, TreasuryVault
from lat_engine.monitoring import Monitor


@pytest.fixture
def monitored():
    monitor = Monitor(port=0)
    context = ChainContext(timestamp=1_700_000_000, height=10)
    _, owner_pub = generate_key_pair()
    owner = public_key_to_address(owner_pub)
    trader = b'\x33' * 20
    token = MockLAT()
    token.mint(trader, 1000)
    token.approve(trader, ENGINE_ADDRESS, 1000)

    engine = LiquidityAccelerationToken(owner, context=context, monitor=monitor)
    engine.initialize(owner, token, 100, 200, 3600, 50000, 120, 6500, TreasuryVault(token))
    return engine, monitor, context, owner, trader


def sample(monitor, name, labels=None):
    return monitor.registry.get_sample_value(name, labels or {})


def test_operation_counters(monitored):
    engine, monitor, _, _, trader = monitored
    engine.record_trade(trader, 1000, True)
    engine.record_trade(trader, 1000, False)
    with pytest.raises(StateError):
        engine.withdraw_stake(trader, 1)

    assert sample(monitor, 'lat_operations_total', {'operation': 'initialize', 'status': 'ok'}) == 1
    assert sample(monitor, 'lat_operations_total', {'operation': 'record_trade', 'status': 'ok'}) == 2
    assert sample(monitor, 'lat_operations_total', {'operation': 'withdraw_stake', 'status': 'failed'}) == 1
    assert sample(monitor, 'lat_operation_latency_seconds_count', {'operation': 'record_trade'}) == 2


def test_gauges_follow_state(monitored):
    engine, monitor, _, owner, trader = monitored
    engine.record_trade(trader, 1500, True)
    engine.set_paused(owner, True)

    assert sample(monitor, 'lat_trades_total') == 1
    assert sample(monitor, 'lat_epoch_trade_volume') == 1500
    assert sample(monitor, 'lat_pool_trading_volume') == 1500
    assert sample(monitor, 'lat_paused') == 1
    assert sample(monitor, 'system_memory_percent') is not None


def test_mint_and_penalty_counters(monitored):
    engine, monitor, context, _, trader = monitored
    engine.stake_lat(trader, 100)
    context.advance(seconds=10)
    engine.claim_stake_rewards(trader, 0)
    engine.withdraw_stake(trader, 40)

    assert sample(monitor, 'lat_rewards_minted_total', {'kind': 'stake'}) == 100 * 200 * 10
    assert sample(monitor, 'lat_withdrawal_penalties_total') == 2


def test_monitors_use_separate_registries():
    first, second = Monitor(), Monitor()
    first.record_operation('record_trade', 'ok', 0.01)

    assert first.registry.get_sample_value(
        'lat_operations_total', {'operation': 'record_trade', 'status': 'ok'}) == 1
    assert second.registry.get_sample_value(
        'lat_operations_total', {'operation': 'record_trade', 'status': 'ok'}) is None


def test_from_config():
    monitor = Monitor.from_config(MonitoringConfig(enabled=True, host='127.0.0.1', port=9400))
    assert (monitor.host, monitor.port) == ('127.0.0.1', 9400)
    assert monitor.bound_port is None


def test_exporter_serves_registry():
    monitor = Monitor(port=0)
    monitor.record_operation('stake_lat', 'ok', 0.002)
    monitor.start_server()
    try:
        opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))
        with opener.open(f"http://127.0.0.1:{monitor.bound_port}/metrics", timeout=5) as resp:
            body = resp.read().decode()
    finally:
        monitor.stop_server()

    assert 'lat_operations_total{operation="stake_lat",status="ok"} 1.0' in body
    assert monitor.server is None
