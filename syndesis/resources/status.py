import logging
from typing import Callable, Optional
from kubernetes_asyncio.client import ApiException
from syndesis.resources.base import BaseResource
from syndesis.resources.installation import Installation
from syndesis.types.models import SyndesisStatus
from syndesis.utils.errors import (
    StatusChangedError,
    StatusCommitError,
    StatusConflictError,
    conflict_error,
)

StatusMutator = Callable[[SyndesisStatus], None]

_logger = logging.getLogger(__name__)


class StatusStore(BaseResource):
    """Persists installation status with optimistic concurrency.

    Every commit works on a clone of the installation. The clone is
    submitted with the resourceVersion it was read at, so a concurrent
    writer makes the API answer 409. The whole read-clone-mutate-submit
    cycle is then repeated on a freshly read installation, as long as
    the writer left the phase and force flag alone.
    """

    async def read(self, name: str, namespace: str) -> Optional[Installation]:
        """Latest state of an installation, None once it has been deleted."""
        try:
            body = await self.get_custom_object(
                namespace,
                Installation.GROUP_NAME,
                Installation.GROUP_VERSION,
                Installation.PLURAL_NAME,
                name,
            )
        except ApiException as ex:
            raise StatusCommitError(
                f"Cannot read {Installation.KIND} {namespace}/{name}: {ex.reason}"
            ) from ex
        if body is None:
            return None
        return Installation.from_body(body)

    async def fetch(self, name: str, namespace: str) -> Installation:
        installation = await self.read(name, namespace)
        if installation is None:
            raise StatusCommitError(f"{Installation.KIND} {namespace}/{name} no longer exists")
        return installation

    @staticmethod
    def ensure_unchanged(decided_on: Installation, latest: Installation) -> None:
        """Raise StatusChangedError when `latest` left the state `decided_on` was in."""
        before = (decided_on.phase, bool(decided_on.status.force_upgrade))
        after = (latest.phase, bool(latest.status.force_upgrade))
        if before != after:
            raise StatusChangedError(
                f"{latest!r} moved from phase {before[0]} (forceUpgrade={before[1]}) "
                f"to {after[0]} (forceUpgrade={after[1]}) while a change was committed"
            )

    async def commit(
        self,
        installation: Installation,
        mutator: StatusMutator,
        logger: Optional[logging.Logger] = None,
    ) -> Installation:
        """Apply `mutator` to a copy of the status and persist it.

        Returns the installation as accepted by the API server. The
        installation passed in is left untouched. Raises
        StatusChangedError when a concurrent writer changed the phase or
        the force flag `installation` was read with.
        """
        logger = logger or _logger
        max_attempts = max(1, self.conf.status_commit_max_attempts)
        current = installation
        for attempt in range(1, max_attempts + 1):
            target = current.clone()
            mutator(target.status)
            try:
                accepted = await self.replace_custom_object_status(
                    target.namespace,
                    Installation.GROUP_NAME,
                    Installation.GROUP_VERSION,
                    Installation.PLURAL_NAME,
                    target.name,
                    target.as_body(),
                )
            except ApiException as ex:
                if conflict_error(ex):
                    self.sensor.on_status_commit(
                        target.name, target.namespace, attempt, False, conflict=True
                    )
                    logger.warning(
                        f"Status of {target!r} changed concurrently "
                        f"(attempt {attempt}/{max_attempts}), re-reading."
                    )
                    if attempt < max_attempts:
                        current = await self.fetch(target.name, target.namespace)
                        self.ensure_unchanged(installation, current)
                    continue
                self.sensor.on_status_commit(target.name, target.namespace, attempt, False)
                raise StatusCommitError(
                    f"Cannot update status of {target!r}: {ex.status} {ex.reason}"
                ) from ex

            self.sensor.on_status_commit(target.name, target.namespace, attempt, True)
            return Installation.from_body(accepted) if accepted else target

        raise StatusConflictError(
            f"Status of {installation!r} kept changing, gave up after {max_attempts} attempts"
        )
