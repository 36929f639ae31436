"""Sensor delegation for fan-out pattern.

SensorDelegate routes every sensor event to a set of monitoring backends.
Each backend receives the same events and keeps its own state, so a start
hook returns a dict keyed by sensor and the matching complete hook hands
each sensor back its own entry.

A failing backend is logged and skipped, it never breaks a reconciliation.
"""

from typing import Set, Dict, Optional, Any
import logging

from syndesis.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(LoggingSensor())
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("syndesis", "myproject", "Upgrading", "timer")
        delegate.on_reconcile_complete("syndesis", "myproject", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def __len__(self) -> int:
        return len(self._sensors)

    def _dispatch(self, hook: str, *args, **kwargs) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    def _dispatch_start(self, hook: str, *args) -> Optional[Dict[OperatorSensor, Any]]:
        if not self._sensors:
            return None

        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

        return states if states else None

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        phase: str,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        """Delegate reconcile_start to all sensors.

        Returns:
            Dict mapping each sensor to its returned state, or None if no sensors
        """
        return self._dispatch_start(
            "on_reconcile_start", name, namespace, phase, trigger_source
        )

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Delegate reconcile_complete to all sensors with their specific state."""
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_reconcile_complete(name, namespace, sensor_state, success, error)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_reconcile_complete: {e}",
                    exc_info=True,
                )

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
        self._dispatch(
            "on_phase_transition",
            name,
            namespace,
            from_phase,
            to_phase,
            reason,
            upgrade_attempts,
        )

    def on_upgrade_task_observed(
        self,
        name: str,
        namespace: str,
        task_name: str,
        task_phase: Optional[str],
    ) -> None:
        self._dispatch("on_upgrade_task_observed", name, namespace, task_name, task_phase)

    def on_status_commit(
        self,
        name: str,
        namespace: str,
        attempt: int,
        success: bool,
        conflict: bool = False,
    ) -> None:
        self._dispatch(
            "on_status_commit", name, namespace, attempt, success, conflict=conflict
        )

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_apply_start(
        self,
        name: str,
        namespace: str,
        resource_name: str,
        resource_kind: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._dispatch_start(
            "on_resource_apply_start", name, namespace, resource_name, resource_kind
        )

    def on_resource_apply_complete(
        self,
        name: str,
        namespace: str,
        resource_name: str,
        resource_kind: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_resource_apply_complete(
                    name,
                    namespace,
                    resource_name,
                    resource_kind,
                    sensor_state,
                    operation,
                    success,
                    error,
                )
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_resource_apply_complete: {e}",
                    exc_info=True,
                )

    def asdict(self) -> Dict[str, Any]:
        return {
            "sensors": [sensor.__class__.__name__ for sensor in self._sensors],
        }
