"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

The hook pattern follows Faust's sensor design:
- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
- All hooks are optional - sensors only implement what they need
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for Syndesis operator monitoring.

    Hooks fall into three groups:
    1. Reconciliation lifecycle (one pass over an installation)
    2. Upgrade progress (phase transitions, task observations, status commits)
    3. Resource operations (applying rendered manifests)

    All methods are no-ops by default.

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, name, namespace, phase, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, name, namespace, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {name} in {duration}s")
    """

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
        """Called when a reconciliation pass begins.

        Args:
            name: Syndesis resource name
            namespace: Kubernetes namespace
            phase: Installation phase at the start of the pass
            trigger_source: What triggered reconciliation (event, resume, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconciliation pass completes.

        Args:
            name: Syndesis resource name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            success: Whether reconciliation succeeded
            error: Exception if reconciliation failed
        """
        pass

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
        """Called after a phase change has been committed.

        Args:
            name: Syndesis resource name
            namespace: Kubernetes namespace
            from_phase: Phase before the commit
            to_phase: Phase after the commit
            reason: Status reason after the commit
            upgrade_attempts: Upgrade attempt counter after the commit
        """
        pass

    def on_upgrade_task_observed(
        self,
        name: str,
        namespace: str,
        task_name: str,
        task_phase: Optional[str],
    ) -> None:
        """Called each time the upgrade task is looked up.

        Args:
            name: Syndesis resource name
            namespace: Kubernetes namespace
            task_name: Name of the upgrade pod
            task_phase: Pod phase, None when the pod does not exist
        """
        pass

    def on_status_commit(
        self,
        name: str,
        namespace: str,
        attempt: int,
        success: bool,
        conflict: bool = False,
    ) -> None:
        """Called after each status submission.

        Args:
            name: Syndesis resource name
            namespace: Kubernetes namespace
            attempt: 1-based read-clone-mutate-submit cycle number
            success: Whether the submission was accepted
            conflict: Whether it was rejected for a stale resourceVersion
        """
        pass

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
        """Called before a rendered manifest is applied.

        Args:
            name: Owning Syndesis resource name
            namespace: Kubernetes namespace
            resource_name: Manifest name
            resource_kind: Manifest kind (ConfigMap, Pod, ...)

        Returns:
            Optional state dict passed to on_resource_apply_complete
        """
        pass

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
        """Called after a rendered manifest was applied.

        Args:
            name: Owning Syndesis resource name
            namespace: Kubernetes namespace
            resource_name: Manifest name
            resource_kind: Manifest kind
            state: State dict returned from on_resource_apply_start
            operation: created, replaced or unchanged
            success: Whether the apply succeeded
            error: Exception if the apply failed
        """
        pass
