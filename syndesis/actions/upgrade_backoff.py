import logging
from datetime import datetime, timedelta
from typing import Optional
from syndesis.actions.base import Action
from syndesis.resources import Installation
from syndesis.types.models import InstallationPhase, StatusReason, SyndesisStatus
from syndesis.utils.helpers import utc_now


class BackoffOutcome:
    GAVE_UP = "TooManyUpgradeAttempts"
    RETRY = "UpgradeRetry"
    WAITING = "UpgradeBackoffWaiting"


def retry_upgrade(status: SyndesisStatus) -> None:
    status.installation_phase = InstallationPhase.UPGRADING
    status.reason = StatusReason.MISSING
    status.force_upgrade = True


def give_up_upgrade(status: SyndesisStatus) -> None:
    status.installation_phase = InstallationPhase.UPGRADE_FAILED
    status.reason = StatusReason.TOO_MANY_UPGRADE_ATTEMPTS


class UpgradeBackoff(Action):
    """Schedules another upgrade attempt after a failed one.

    Attempts are spaced exponentially: the n-th retry waits
    ``interval * 2 ** (n - 1)`` seconds after the last failure, capped at the
    configured maximum. Setting ``forceUpgrade`` skips the wait and also
    revives an installation that ran out of attempts.
    """

    name = "upgrade-backoff"

    def can_execute(self, installation: Installation) -> bool:
        if installation.phase == InstallationPhase.UPGRADE_FAILURE_BACKOFF:
            return True
        return (
            installation.phase == InstallationPhase.UPGRADE_FAILED
            and bool(installation.status.force_upgrade)
        )

    def delay(self, attempts: int) -> timedelta:
        seconds = self.conf.upgrade_backoff_interval_seconds * 2 ** max(0, attempts - 1)
        return timedelta(
            seconds=min(seconds, self.conf.upgrade_backoff_max_interval_seconds)
        )

    def next_attempt_at(self, status: SyndesisStatus) -> Optional[datetime]:
        if status.last_upgrade_failure_time is None:
            return None
        return status.last_upgrade_failure_time + self.delay(status.upgrade_attempts or 0)

    def exhausted(self, status: SyndesisStatus) -> bool:
        max_attempts = self.conf.upgrade_max_attempts
        return max_attempts > 0 and (status.upgrade_attempts or 0) >= max_attempts

    async def execute(
        self, installation: Installation, logger: logging.Logger
    ) -> Optional[str]:
        status = installation.status
        forced = bool(status.force_upgrade)

        if not forced and self.exhausted(status):
            logger.warning(
                f"Giving up upgrading {installation!r} after "
                f"{status.upgrade_attempts} failed attempts."
            )
            await self.commit(installation, give_up_upgrade, logger)
            return BackoffOutcome.GAVE_UP

        due = self.next_attempt_at(status)
        if forced or due is None or utc_now() >= due:
            logger.info(
                f"Retrying upgrade of {installation!r} "
                f"(failed attempts so far: {status.upgrade_attempts or 0})."
            )
            await self.commit(installation, retry_upgrade, logger)
            return BackoffOutcome.RETRY

        logger.debug(f"Next upgrade attempt of {installation!r} at {due.isoformat()}.")
        return BackoffOutcome.WAITING
