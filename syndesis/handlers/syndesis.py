import asyncio
import kopf
from logging import Logger
from collections import defaultdict
from typing import Dict, Optional, Sequence
from kubernetes_asyncio.client import ApiException
from marshmallow import ValidationError
from syndesis.actions import (
    Action,
    BackoffOutcome,
    Observation,
    UPDATE_AVAILABLE,
    run_actions,
)
from syndesis.resources import Installation, StatusStore
from syndesis.types.models import StatusReason
from syndesis.utils.errors import (
    SyndesisError,
    convert_api_exception,
    convert_syndesis_error,
)

GROUP = Installation.GROUP_NAME
VERSION = Installation.GROUP_VERSION
PLURAL = Installation.PLURAL_NAME

# At most one reconciliation per installation at a time, keyed by namespace/name
reconciliation_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

# Outcome -> (event type, reason) published on the installation
OUTCOME_EVENTS = {
    Observation.ALREADY_UPGRADED: ("Normal", "Upgraded"),
    Observation.TASK_SUCCEEDED: ("Normal", "Upgraded"),
    Observation.UPGRADE_REQUIRED: ("Normal", "UpgradeStarted"),
    Observation.TASK_SUCCEEDED_VERSION_MISMATCH: ("Warning", "UpgradeVersionMismatch"),
    Observation.TASK_FAILED: ("Warning", StatusReason.UPGRADE_POD_FAILED),
    BackoffOutcome.RETRY: ("Normal", "UpgradeRetry"),
    BackoffOutcome.GAVE_UP: ("Warning", StatusReason.TOO_MANY_UPGRADE_ATTEMPTS),
    UPDATE_AVAILABLE: ("Normal", UPDATE_AVAILABLE),
}


def get_sensor():
    """Get sensor from the Action class.

    Returns:
        Sensor instance or None
    """
    return getattr(Action, "sensor", None)


def publish_outcome(body, installation: Installation, outcome: Optional[str]) -> None:
    """Surface a reconciliation outcome as a Kubernetes event."""
    if outcome not in OUTCOME_EVENTS:
        return
    type_, reason = OUTCOME_EVENTS[outcome]
    message = f"{outcome} ({installation.namespace}/{installation.name})"
    if type_ == "Warning":
        kopf.warn(body, reason=reason, message=message)
    else:
        kopf.event(body, type=type_, reason=reason, message=message)


def installation_key(body) -> str:
    metadata = body.get("metadata") or {}
    return f"{metadata.get('namespace')}/{metadata.get('name')}"


async def reconcile_installation(
    body,
    logger: Logger,
    trigger_source: str = "manual",
    actions: Sequence[Action] = None,
    store: StatusStore = None,
) -> None:
    """Run one reconciliation pass over a Syndesis installation.

    Passes for the same installation queue on its lock. The installation
    is read again once the lock is held, since `body` predates whatever
    the pass ahead in the queue committed.
    """
    store = store or StatusStore()
    metadata = body.get("metadata") or {}
    name, namespace = metadata.get("name"), metadata.get("namespace")
    async with reconciliation_locks[f"{namespace}/{name}"]:
        try:
            installation = await store.read(name, namespace)
        except ValidationError as e:
            logger.error(f"Invalid Syndesis resource: {e.messages}")
            raise kopf.PermanentError(f"Invalid Syndesis resource: {e.messages}") from e
        except SyndesisError as e:
            logger.warning(f"Cannot read Syndesis {namespace}/{name}: {e}")
            convert_syndesis_error(e, delay=Action.conf.temporary_error_delay_seconds)
        if installation is None:
            logger.info(f"Syndesis {namespace}/{name} no longer exists, nothing to do.")
            return

        sensor = get_sensor()
        sensor_state = None
        if sensor:
            sensor_state = sensor.on_reconcile_start(
                name, namespace, installation.phase, trigger_source
            )

        success = True
        error = None
        try:
            logger.debug(
                f"Reconciling {installation!r} in phase {installation.phase or 'None'}."
            )
            _, outcome = await run_actions(installation, logger, actions)
            publish_outcome(body, installation, outcome)
        except SyndesisError as e:
            success = False
            error = e
            if e.likely_permanent:
                logger.error(
                    f"Reconciliation of {installation!r} failed, "
                    f"this is likely a defect of the operator build: {e}"
                )
            else:
                logger.warning(f"Reconciliation of {installation!r} failed: {e}")
            convert_syndesis_error(e, delay=Action.conf.temporary_error_delay_seconds)
        except ApiException as e:
            success = False
            error = e
            logger.error(f"Kubernetes API error while reconciling {installation!r}: {e}")
            convert_api_exception(e, permanent=False)
        finally:
            if sensor:
                sensor.on_reconcile_complete(name, namespace, sensor_state, success, error)


@kopf.on.resume(GROUP, VERSION, PLURAL)
@kopf.on.create(GROUP, VERSION, PLURAL)
async def on_create(body, logger: Logger, **kwargs):
    """Reconcile a Syndesis installation when it appears or the operator restarts."""
    await reconcile_installation(body, logger, trigger_source="event")


@kopf.timer(GROUP, VERSION, PLURAL, interval=Action.conf.reconcile_interval_seconds)
async def periodic_reconciliation(body, logger: Logger, **kwargs):
    """Reconcile Syndesis installations on a fixed cadence."""
    await reconcile_installation(body, logger, trigger_source="timer")


@kopf.on.delete(GROUP, VERSION, PLURAL, optional=True)
async def on_delete(body, logger: Logger, **kwargs):
    """Forget the reconciliation lock of a deleted installation."""
    key = installation_key(body)
    reconciliation_locks.pop(key, None)
    logger.debug(f"Dropped reconciliation lock of {key}.")
