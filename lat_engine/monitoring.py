# lat_engine/monitoring.py
import errno
import logging
import threading
import time
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

import psutil
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.exposition import make_wsgi_app

from lat_engine.config import MonitoringConfig

logger = logging.getLogger(__name__)


class MetricsServer(ThreadingMixIn, WSGIServer):
    """Serves /metrics on daemon threads beside the engine."""
    allow_reuse_address = True
    daemon_threads = True


class QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        logger.debug(f"metrics scrape from {self.client_address[0]}: {format % args}")


class Monitor:
    def __init__(self, host="127.0.0.1", port=9090, bind_attempts=5, retry_delay=2.0):
        self.host = host
        self.port = port
        self.bind_attempts = bind_attempts
        self.retry_delay = retry_delay
        self.server = None
        self._serve_thread = None

        # Isolated registry so several engines can live in one process
        self.registry = CollectorRegistry()

        self.operations = Counter('lat_operations_total', 'Engine operations by outcome', ['operation', 'status'], registry=self.registry)
        self.operation_latency = Histogram('lat_operation_latency_seconds', 'Time to run an engine operation', ['operation'], registry=self.registry)
        self.rewards_minted = Counter('lat_rewards_minted_total', 'Reward tokens minted', ['kind'], registry=self.registry)
        self.stake_penalties = Counter('lat_withdrawal_penalties_total', 'Early withdrawal penalties collected', registry=self.registry)
        self.epoch_volume = Gauge('lat_epoch_trade_volume', 'Trade volume in the current epoch', registry=self.registry)
        self.pool_volume = Gauge('lat_pool_trading_volume', 'All-time pool trading volume', registry=self.registry)
        self.total_trades = Gauge('lat_trades_total', 'Trades recorded', registry=self.registry)
        self.paused = Gauge('lat_paused', '1 while the engine is paused', registry=self.registry)
        self.cpu_usage = Gauge('system_cpu_percent', 'Process host CPU usage percent', registry=self.registry)
        self.memory_usage = Gauge('system_memory_percent', 'Process host memory usage percent', registry=self.registry)

    @classmethod
    def from_config(cls, config: MonitoringConfig) -> 'Monitor':
        return cls(host=config.host, port=config.port)

    @property
    def bound_port(self):
        """Actual listening port (differs from `port` when 0 was requested)."""
        return self.server.server_port if self.server else None

    def start_server(self):
        """Expose the registry over HTTP, retrying while the port is taken."""
        app = make_wsgi_app(self.registry)

        for attempt in range(1, self.bind_attempts + 1):
            try:
                self.server = make_server(self.host, self.port, app,
                                          server_class=MetricsServer, handler_class=QuietHandler)
                break
            except OSError as e:
                if e.errno != errno.EADDRINUSE or attempt == self.bind_attempts:
                    logger.error(f"Metrics exporter could not bind {self.host}:{self.port}: {e}")
                    raise
                logger.warning(
                    f"Metrics port {self.port} busy, attempt {attempt}/{self.bind_attempts}; "
                    f"waiting {self.retry_delay}s"
                )
                time.sleep(self.retry_delay)

        self._serve_thread = threading.Thread(
            target=self.server.serve_forever, name="lat-metrics", daemon=True
        )
        self._serve_thread.start()
        logger.info(f"Metrics exporter listening on http://{self.host}:{self.bound_port}/metrics")

    def stop_server(self):
        if self.server is None:
            return
        self.server.shutdown()
        self.server.server_close()
        self._serve_thread.join(timeout=5)
        self.server = None
        self._serve_thread = None
        logger.info("Metrics exporter stopped")

    def update(self, state):
        """Refresh gauges from an EngineState."""
        self.epoch_volume.set(state.epoch.epoch_trade_volume)
        self.pool_volume.set(state.epoch.pool_trading_volume)
        self.total_trades.set(state.total_trades)
        self.paused.set(1 if state.paused else 0)

        self.cpu_usage.set(psutil.cpu_percent(interval=None))
        self.memory_usage.set(psutil.virtual_memory().percent)

    def record_operation(self, operation: str, status: str, latency: float):
        self.operations.labels(operation=operation, status=status).inc()
        self.operation_latency.labels(operation=operation).observe(latency)

    def record_mint(self, kind: str, amount: int):
        self.rewards_minted.labels(kind=kind).inc(amount)

    def record_penalty(self, amount: int):
        self.stake_penalties.inc(amount)
