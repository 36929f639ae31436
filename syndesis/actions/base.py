import logging
from typing import Optional
from syndesis.resources import (
    Installation,
    VersionResolver,
    ResourceApplier,
    StatusStore,
)
from syndesis.resources.status import StatusMutator
from syndesis.sensors.base import OperatorSensor
from syndesis.types.settings import Settings


class Action:
    """One step of the installation lifecycle.

    The dispatcher runs the first action whose `can_execute` accepts the
    installation. `execute` returns a short outcome string describing
    what it observed, or None when nothing happened.
    """

    conf: Settings = Settings()
    sensor: OperatorSensor = OperatorSensor()

    name: str = None

    resolver: VersionResolver
    applier: ResourceApplier
    store: StatusStore

    def __init__(
        self,
        resolver: VersionResolver = None,
        applier: ResourceApplier = None,
        store: StatusStore = None,
    ) -> None:
        self.resolver = resolver or VersionResolver()
        self.applier = applier or ResourceApplier()
        self.store = store or StatusStore()

    def can_execute(self, installation: Installation) -> bool:
        raise NotImplementedError()

    async def execute(
        self, installation: Installation, logger: logging.Logger
    ) -> Optional[str]:
        raise NotImplementedError()

    async def commit(
        self,
        installation: Installation,
        mutator: StatusMutator,
        logger: logging.Logger,
    ) -> Installation:
        """Persist a status change and report phase transitions."""
        committed = await self.store.commit(installation, mutator, logger=logger)
        if committed.phase != installation.phase:
            logger.info(
                f"Installation phase changed from {installation.phase or 'None'} "
                f"to {committed.phase}."
            )
            self.sensor.on_phase_transition(
                installation.name,
                installation.namespace,
                installation.phase,
                committed.phase,
                committed.status.reason,
                committed.status.upgrade_attempts,
            )
        return committed

    def __repr__(self) -> str:
        return f"Action<{self.name or self.__class__.__name__}>"
