"""Syndesis Operator Sensor Framework.

Hook-based instrumentation of operator lifecycle events.

Key components:
- OperatorSensor: Base class defining lifecycle hooks
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter
- init_metrics_server: Background /metrics endpoint

Usage:
    from syndesis.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from syndesis.sensors.base import OperatorSensor
from syndesis.sensors.delegate import SensorDelegate
from syndesis.sensors.prometheus import PrometheusMonitor
from syndesis.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
