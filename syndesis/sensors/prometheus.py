"""Prometheus monitoring backend for the Syndesis operator.

PrometheusMonitor turns operator lifecycle events into Prometheus metrics:

1. Reconciliation health - duration, throughput, errors
2. Upgrade progress - phase transitions, attempt counters, task phases, status commits
3. Resource apply - operation counts, latency, errors

All metrics carry the installation name and namespace as labels.
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import Counter, Histogram, Gauge, REGISTRY, CollectorRegistry

from syndesis.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the Syndesis operator.

    Metric families:
    - syndesisop_reconcile_* - Reconciliation loop metrics
    - syndesisop_upgrade_* / syndesisop_phase_* - Upgrade progress
    - syndesisop_status_* - Status commits
    - syndesisop_resource_* - Upgrade resource apply metrics

    Example:
        monitor = PrometheusMonitor()

        state = monitor.on_reconcile_start("syndesis", "myproject", "Upgrading", "timer")
        monitor.on_reconcile_complete("syndesis", "myproject", state, True)
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'syndesisop_reconcile_duration_seconds',
            'Time spent in reconciliation loop',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'syndesisop_reconcile_total',
            'Total number of reconciliation attempts',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'syndesisop_reconcile_errors_total',
            'Total number of reconciliation errors',
            labelnames=['name', 'namespace', 'error_type'],
            registry=registry,
        )

        # =============================================================================
        # Upgrade Progress Metrics
        # =============================================================================

        self.phase_transitions = Counter(
            'syndesisop_phase_transitions_total',
            'Total number of committed installation phase transitions',
            labelnames=['name', 'namespace', 'from_phase', 'to_phase', 'reason'],
            registry=registry,
        )

        self.upgrade_attempts = Gauge(
            'syndesisop_upgrade_attempts',
            'Failed upgrade attempts recorded in the installation status',
            labelnames=['name', 'namespace'],
            registry=registry,
        )

        self.upgrade_task_observations = Counter(
            'syndesisop_upgrade_task_observations_total',
            'Upgrade task lookups by observed pod phase',
            labelnames=['name', 'namespace', 'task_phase'],
            registry=registry,
        )

        self.status_commits = Counter(
            'syndesisop_status_commits_total',
            'Installation status submissions',
            labelnames=['name', 'namespace', 'result'],
            registry=registry,
        )

        # =============================================================================
        # Resource Apply Metrics
        # =============================================================================

        self.resource_apply_duration = Histogram(
            'syndesisop_resource_apply_duration_seconds',
            'Time spent applying upgrade resources',
            labelnames=['name', 'namespace', 'resource_kind', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_apply_total = Counter(
            'syndesisop_resource_apply_total',
            'Total number of resource apply operations',
            labelnames=['name', 'namespace', 'resource_kind', 'operation', 'result'],
            registry=registry,
        )

        self.resource_apply_errors = Counter(
            'syndesisop_resource_apply_errors_total',
            'Total number of resource apply errors',
            labelnames=['name', 'namespace', 'resource_kind', 'resource_name', 'error_type'],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        phase: str,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconciliation start time."""
        return {
            'start_time': time.time(),
            'trigger_source': trigger_source,
        }

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconciliation duration and result."""
        if state:
            duration = time.time() - state['start_time']
            trigger_source = state['trigger_source']
            result = 'success' if success else 'failure'

            self.reconcile_duration.labels(
                name=name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                name=name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                name=name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Upgrade Progress Hooks
    # =============================================================================

    def on_phase_transition(
        self,
        name: str,
        namespace: str,
        from_phase: str,
        to_phase: str,
        reason: str,
        upgrade_attempts: int,
    ) -> None:
        """Count the transition and track the attempt counter."""
        self.phase_transitions.labels(
            name=name,
            namespace=namespace,
            from_phase=from_phase or 'None',
            to_phase=to_phase or 'None',
            reason=reason or 'None',
        ).inc()
        self.upgrade_attempts.labels(name=name, namespace=namespace).set(
            upgrade_attempts or 0
        )

    def on_upgrade_task_observed(
        self,
        name: str,
        namespace: str,
        task_name: str,
        task_phase: Optional[str],
    ) -> None:
        self.upgrade_task_observations.labels(
            name=name,
            namespace=namespace,
            task_phase=task_phase or 'Absent',
        ).inc()

    def on_status_commit(
        self,
        name: str,
        namespace: str,
        attempt: int,
        success: bool,
        conflict: bool = False,
    ) -> None:
        if success:
            result = 'success'
        elif conflict:
            result = 'conflict'
        else:
            result = 'failure'
        self.status_commits.labels(name=name, namespace=namespace, result=result).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_apply_start(
        self,
        name: str,
        namespace: str,
        resource_name: str,
        resource_kind: str,
    ) -> Optional[Dict[str, Any]]:
        """Record resource apply start time."""
        return {
            'start_time': time.time(),
        }

    def on_resource_apply_complete(
        self,
        name: str,
        namespace: str,
        resource_name: str,
        resource_kind: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record resource apply duration and result."""
        result = 'success' if success else 'failure'
        if state:
            duration = time.time() - state['start_time']
            self.resource_apply_duration.labels(
                name=name,
                namespace=namespace,
                resource_kind=resource_kind,
                operation=operation,
                result=result,
            ).observe(duration)

        self.resource_apply_total.labels(
            name=name,
            namespace=namespace,
            resource_kind=resource_kind,
            operation=operation,
            result=result,
        ).inc()

        if error:
            self.resource_apply_errors.labels(
                name=name,
                namespace=namespace,
                resource_kind=resource_kind,
                resource_name=resource_name,
                error_type=error.__class__.__name__,
            ).inc()
