from typing import Optional
from kubernetes_asyncio.client import ApiException
from syndesis.resources.base import BaseResource
from syndesis.templates import load_template
from syndesis.common.models.version import Version
from syndesis.utils.errors import NamespaceStateUnreadableError


class VersionResolver(BaseResource):
    """Answers which Syndesis version should run and which one does."""

    #: Shared by every resolver in the process, immutable once set.
    _target: Optional[Version] = None

    def target_version(self) -> Version:
        """Version bundled with this operator build.

        Read once from the upgrade template; later calls return the
        cached value. A failed read is not cached.
        """
        if VersionResolver._target is None:
            template = load_template(self.conf.template_path)
            VersionResolver._target = Version.from_str(template.version)
        return VersionResolver._target

    async def live_version(self, namespace: str) -> Version:
        """Version currently deployed in `namespace`, read fresh on every call."""
        name = self.conf.server_deployment_name
        try:
            deployment = await self.fetch_deployment(name, namespace)
        except ApiException as ex:
            raise NamespaceStateUnreadableError(
                f"Cannot read deployment {namespace}/{name}: {ex.status} {ex.reason}"
            ) from ex
        if deployment is None:
            raise NamespaceStateUnreadableError(
                f"Deployment {namespace}/{name} not found"
            )
        labels = (deployment.metadata.labels if deployment.metadata else None) or {}
        value = (labels.get(self.conf.version_label) or "").strip()
        if not value:
            raise NamespaceStateUnreadableError(
                f"Deployment {namespace}/{name} has no {self.conf.version_label} label"
            )
        return Version.from_str(value)
