import kopf
import logging
from typing import Iterable, List, Optional
from kubernetes_asyncio.client import ApiException
from syndesis.resources.base import BaseResource
from syndesis.resources.installation import Installation
from syndesis.resources.manifests import Manifest
from syndesis.common.models.labels import Labels
from syndesis.utils.errors import ApplyError, already_exists_error

_logger = logging.getLogger(__name__)


class ApplyOperation:
    CREATED = "created"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"


class ResourceApplier(BaseResource):
    """Creates rendered manifests in the owner's namespace."""

    def stamp(self, manifest: Manifest, owner: Installation) -> Manifest:
        """Bind a manifest to its owning installation.

        Forces the owner's namespace, adds an owner reference and the
        default labels, then records the content hash.
        """
        manifest.metadata["namespace"] = owner.namespace
        kopf.append_owner_reference(manifest.body, owner=owner.owner())
        defaults = Labels.generate_default_labels(
            owner.name, manifest.KIND.lower(), self.SYNDESIS_OPERATOR_NAME
        ).as_dict()
        for key, value in defaults.items():
            manifest.labels.setdefault(key, value)
        manifest.annotations.pop(Labels.SYNDESIS_RESOURCE_HASH_ANNOTATION, None)
        manifest.annotations.update(
            self.prepare_hash_annotation(self.compute_hash(manifest.body))
        )
        return manifest

    @staticmethod
    def hash_of(body: Optional[dict]) -> Optional[str]:
        annotations = ((body or {}).get("metadata") or {}).get("annotations") or {}
        return annotations.get(Labels.SYNDESIS_RESOURCE_HASH_ANNOTATION)

    async def apply(
        self,
        manifest: Manifest,
        owner: Installation,
        force_replace: bool,
        logger: logging.Logger = None,
    ) -> str:
        """Create `manifest`, or replace an existing one when forced.

        Returns the operation performed. Raises ApplyError when the
        cluster rejects the manifest.
        """
        logger = logger or _logger
        self.stamp(manifest, owner)
        sensor_state = self.sensor.on_resource_apply_start(
            owner.name, owner.namespace, manifest.name, manifest.kind
        )
        operation = ApplyOperation.CREATED
        success = True
        error = None
        try:
            operation = await self._apply(manifest, force_replace, logger)
            return operation
        except ApiException as ex:
            success = False
            error = ApplyError(
                f"Cannot apply {manifest.kind} {manifest.namespace}/{manifest.name}: "
                f"{ex.status} {ex.reason}",
                kind=manifest.kind,
                name=manifest.name,
            )
            raise error from ex
        finally:
            self.sensor.on_resource_apply_complete(
                owner.name,
                owner.namespace,
                manifest.name,
                manifest.kind,
                sensor_state,
                operation,
                success,
                error,
            )

    async def _apply(self, manifest: Manifest, force_replace: bool, logger) -> str:
        try:
            await manifest.create(self)
            logger.info(f"Created {manifest.kind} {manifest.name}.")
            return ApplyOperation.CREATED
        except ApiException as ex:
            if not already_exists_error(ex) and ex.status != 409:
                raise

        if not force_replace or manifest.KEEP_EXISTING:
            logger.debug(f"{manifest.kind} {manifest.name} already exists, kept as is.")
            return ApplyOperation.UNCHANGED

        existing = await manifest.fetch(self)
        if existing is None:
            # Deleted since the create attempt
            await manifest.create(self)
            logger.info(f"Created {manifest.kind} {manifest.name}.")
            return ApplyOperation.CREATED

        if not manifest.ALWAYS_REPLACE and self.hash_of(existing) == self.hash_of(
            manifest.body
        ):
            logger.debug(f"{manifest.kind} {manifest.name} is up to date.")
            return ApplyOperation.UNCHANGED

        await manifest.replace(self, existing)
        logger.info(f"Replaced {manifest.kind} {manifest.name}.")
        return ApplyOperation.REPLACED

    async def apply_all(
        self,
        manifests: Iterable[Manifest],
        owner: Installation,
        force_replace: bool,
        logger: logging.Logger = None,
    ) -> List[str]:
        """Apply manifests in order, stopping at the first failure."""
        return [
            await self.apply(manifest, owner, force_replace, logger=logger)
            for manifest in manifests
        ]
