"""Upgrade of an installation to the version bundled with the operator.

Each pass classifies what it sees into one observation and looks the
observation up in ``TRANSITIONS``, which names the next phase and the
effect to run::

    observation                   next phase              effect
    AlreadyUpgraded               Installed               complete
    UpgradeRequired               (unchanged)             start_upgrade
    TaskSucceeded                 Installed               complete
    TaskSucceededVersionMismatch  (unchanged)             force_retry
    TaskFailed                    UpgradeFailureBackoff   record_failure
    TaskRunning                   (unchanged)             wait

A pending ``forceUpgrade`` takes priority over an existing upgrade task,
so a forced pass behaves as if no task had run yet.
"""
import logging
from typing import Callable, Dict, List, NamedTuple, Optional
from syndesis.actions.base import Action
from syndesis.resources import (
    Installation,
    Manifest,
    TaskResource,
    TaskPhase,
    load_manifests,
    locate_task,
)
from syndesis.common.models.version import Version
from syndesis.templates import render_upgrade_resources
from syndesis.types.models import InstallationPhase, StatusReason, SyndesisStatus
from syndesis.utils.helpers import utc_now


class Observation:
    ALREADY_UPGRADED = "AlreadyUpgraded"
    UPGRADE_REQUIRED = "UpgradeRequired"
    TASK_SUCCEEDED = "TaskSucceeded"
    TASK_SUCCEEDED_VERSION_MISMATCH = "TaskSucceededVersionMismatch"
    TASK_FAILED = "TaskFailed"
    TASK_RUNNING = "TaskRunning"


class Transition(NamedTuple):
    next_phase: Optional[str]
    effect: str


TRANSITIONS: Dict[str, Transition] = {
    Observation.ALREADY_UPGRADED: Transition(InstallationPhase.INSTALLED, "complete"),
    Observation.UPGRADE_REQUIRED: Transition(None, "start_upgrade"),
    Observation.TASK_SUCCEEDED: Transition(InstallationPhase.INSTALLED, "complete"),
    Observation.TASK_SUCCEEDED_VERSION_MISMATCH: Transition(None, "force_retry"),
    Observation.TASK_FAILED: Transition(
        InstallationPhase.UPGRADE_FAILURE_BACKOFF, "record_failure"
    ),
    Observation.TASK_RUNNING: Transition(None, "wait"),
}


def classify(forced: bool, task_phase: Optional[str], versions_match: bool) -> str:
    """Map the state seen in one pass to an observation.

    `task_phase` is None when the upgrade task does not exist.
    `versions_match` compares the live version against the target, for a
    succeeded task it must come from a fresh read taken after the task ended.
    """
    if forced or task_phase is None:
        if versions_match:
            return Observation.ALREADY_UPGRADED
        return Observation.UPGRADE_REQUIRED
    if task_phase == TaskPhase.SUCCEEDED:
        if versions_match:
            return Observation.TASK_SUCCEEDED
        return Observation.TASK_SUCCEEDED_VERSION_MISMATCH
    if task_phase == TaskPhase.FAILED:
        return Observation.TASK_FAILED
    return Observation.TASK_RUNNING


# Status mutators


def upgrade_completed(target: Version) -> Callable[[SyndesisStatus], None]:
    def mutate(status: SyndesisStatus) -> None:
        status.installation_phase = InstallationPhase.INSTALLED
        status.reason = StatusReason.MISSING
        status.version = str(target)
        status.last_upgrade_failure_time = None
        status.upgrade_attempts = 0
        status.force_upgrade = False

    return mutate


def upgrade_failed(status: SyndesisStatus) -> None:
    status.installation_phase = InstallationPhase.UPGRADE_FAILURE_BACKOFF
    status.reason = StatusReason.UPGRADE_POD_FAILED
    status.last_upgrade_failure_time = utc_now()
    status.upgrade_attempts = (status.upgrade_attempts or 0) + 1


def clear_force_upgrade(status: SyndesisStatus) -> None:
    status.force_upgrade = False


def set_force_upgrade(status: SyndesisStatus) -> None:
    status.force_upgrade = True


class UpgradeContext(NamedTuple):
    installation: Installation
    manifests: List[Manifest]
    task: TaskResource
    target: Version
    live: Version
    logger: logging.Logger


class Upgrade(Action):
    """Drives an installation in phase Upgrading to the bundled version."""

    name = "upgrade"

    def can_execute(self, installation: Installation) -> bool:
        return installation.phase == InstallationPhase.UPGRADING

    def render(self, installation: Installation, target: Version) -> List[Manifest]:
        raws = render_upgrade_resources(
            installation.spec, str(target), self.conf.template_path
        )
        return load_manifests(raws)

    async def execute(
        self, installation: Installation, logger: logging.Logger
    ) -> Optional[str]:
        target = self.resolver.target_version()
        live = await self.resolver.live_version(installation.namespace)

        manifests = self.render(installation, target)
        task = locate_task(manifests)
        task.service_account_name = self.conf.upgrade_service_account

        existing = await self.applier.fetch_pod(task.name, installation.namespace)
        task_phase = TaskResource.phase_of(existing)
        self.sensor.on_upgrade_task_observed(
            installation.name, installation.namespace, task.name, task_phase
        )

        forced = bool(installation.status.force_upgrade)
        if not forced and task_phase == TaskPhase.SUCCEEDED:
            live = await self.resolver.live_version(installation.namespace)

        observation = classify(forced, task_phase, live == target)
        transition = TRANSITIONS[observation]
        logger.debug(
            f"Upgrade of {installation!r}: task {task.name} is {task_phase or 'absent'}, "
            f"forced={forced}, live={live}, target={target} -> {observation}"
        )

        effect = getattr(self, transition.effect)
        await effect(
            UpgradeContext(installation, manifests, task, target, live, logger)
        )
        return observation

    # Effects

    async def complete(self, ctx: UpgradeContext) -> None:
        ctx.logger.info(f"{ctx.installation!r} upgraded to version {ctx.target}.")
        await self.commit(ctx.installation, upgrade_completed(ctx.target), ctx.logger)

    async def start_upgrade(self, ctx: UpgradeContext) -> None:
        ctx.logger.info(
            f"Upgrading {ctx.installation!r} from version {ctx.live} to {ctx.target}."
        )
        await self.applier.apply_all(
            ctx.manifests, ctx.installation, force_replace=True, logger=ctx.logger
        )
        if ctx.installation.status.force_upgrade:
            await self.commit(ctx.installation, clear_force_upgrade, ctx.logger)

    async def force_retry(self, ctx: UpgradeContext) -> None:
        ctx.logger.warning(
            f"Upgrade task {ctx.task.name} succeeded but version {ctx.live} does not "
            f"match target version {ctx.target}. Forcing upgrade."
        )
        await self.commit(ctx.installation, set_force_upgrade, ctx.logger)

    async def record_failure(self, ctx: UpgradeContext) -> None:
        ctx.logger.warning(
            f"Upgrade of {ctx.installation!r} to version {ctx.target} failed: "
            f"task {ctx.task.name} failed."
        )
        await self.commit(ctx.installation, upgrade_failed, ctx.logger)

    async def wait(self, ctx: UpgradeContext) -> None:
        ctx.logger.info(
            f"{ctx.installation!r} is being upgraded to version {ctx.target}."
        )
