import logging
from typing import Optional
from syndesis.actions.base import Action
from syndesis.resources import Installation
from syndesis.types.models import InstallationPhase, StatusReason, SyndesisStatus

UPDATE_AVAILABLE = "UpdateAvailable"


def start_upgrade(status: SyndesisStatus) -> None:
    status.installation_phase = InstallationPhase.UPGRADING
    status.reason = StatusReason.MISSING


class CheckUpdates(Action):
    """Moves an installed Syndesis to Upgrading when it runs another version."""

    name = "check-updates"

    def can_execute(self, installation: Installation) -> bool:
        return installation.phase == InstallationPhase.INSTALLED

    async def execute(
        self, installation: Installation, logger: logging.Logger
    ) -> Optional[str]:
        target = self.resolver.target_version()
        live = await self.resolver.live_version(installation.namespace)
        if live == target:
            return None

        logger.info(
            f"{installation!r} runs version {live}, operator supports {target}. "
            f"Starting upgrade."
        )
        await self.commit(installation, start_upgrade, logger)
        return UPDATE_AVAILABLE
