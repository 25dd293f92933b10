"""Oracle monitoring: Prometheus gauges and the polling service."""
from .metrics import MonitorMetrics
from .service import MonitorError, OracleMonitor, load_oracles

__all__ = ["MonitorMetrics", "OracleMonitor", "MonitorError", "load_oracles"]
