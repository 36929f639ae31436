"""Typed view of rendered manifests.

Every manifest carries a tag derived from its ``kind`` so that callers
can filter on the tag (e.g. to locate the upgrade task) instead of
inspecting resource bodies.
"""
import copy
from typing import Any, Dict, Iterable, List, Optional, Type
from kubernetes_asyncio.client import V1DeleteOptions
from syndesis.resources.base import BaseResource
from syndesis.utils.errors import ManifestError, TaskNotFoundError

JSON = Dict[str, Any]


class ResourceTag:
    CONFIG = "ConfigResource"
    SERVICE = "ServiceResource"
    ACCOUNT = "AccountResource"
    VOLUME_CLAIM = "VolumeClaimResource"
    TASK = "TaskResource"


class TaskPhase:
    """Pod phases as reported in `status.phase`."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    TERMINAL = (SUCCEEDED, FAILED)


class Manifest:
    """A single rendered resource."""

    KIND: str = None
    TAG: str = None

    #: Replace an existing resource even when its content hash is unchanged.
    ALWAYS_REPLACE: bool = False
    #: Existing resources of this kind are kept as they are.
    KEEP_EXISTING: bool = False

    body: JSON

    def __init__(self, body: JSON) -> None:
        self.body = body

    @property
    def api_version(self) -> str:
        return self.body.get("apiVersion")

    @property
    def kind(self) -> str:
        return self.body.get("kind")

    @property
    def metadata(self) -> JSON:
        return self.body.setdefault("metadata", {})

    @property
    def name(self) -> str:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.setdefault("labels", {})

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.setdefault("annotations", {})

    def as_dict(self) -> JSON:
        return copy.deepcopy(self.body)

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        raise NotImplementedError()

    async def create(self, cluster: BaseResource) -> None:
        raise NotImplementedError()

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        raise NotImplementedError()

    def _carry_resource_version(self, existing: JSON) -> JSON:
        body = self.as_dict()
        resource_version = (existing.get("metadata") or {}).get("resourceVersion")
        if resource_version:
            body["metadata"]["resourceVersion"] = resource_version
        return body

    def __repr__(self) -> str:
        return f"{self.TAG}<{self.kind}/{self.name}>"


class ConfigResource(Manifest):
    KIND = "ConfigMap"
    TAG = ResourceTag.CONFIG

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        return await cluster.fetch_config_map(self.name, self.namespace)

    async def create(self, cluster: BaseResource) -> None:
        await cluster.create_config_map(self.namespace, self.as_dict())

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        await cluster.replace_config_map(
            self.name, self.namespace, self._carry_resource_version(existing)
        )


class ServiceResource(Manifest):
    KIND = "Service"
    TAG = ResourceTag.SERVICE

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        return await cluster.fetch_service(self.name, self.namespace)

    async def create(self, cluster: BaseResource) -> None:
        await cluster.create_service(self.namespace, self.as_dict())

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        body = self._carry_resource_version(existing)
        # clusterIP is immutable once allocated
        cluster_ip = (existing.get("spec") or {}).get("clusterIP")
        if cluster_ip:
            body.setdefault("spec", {})["clusterIP"] = cluster_ip
        await cluster.replace_service(self.name, self.namespace, body)


class AccountResource(Manifest):
    KIND = "ServiceAccount"
    TAG = ResourceTag.ACCOUNT

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        return await cluster.fetch_service_account(self.name, self.namespace)

    async def create(self, cluster: BaseResource) -> None:
        await cluster.create_service_account(self.namespace, self.as_dict())

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        await cluster.replace_service_account(
            self.name, self.namespace, self._carry_resource_version(existing)
        )


class VolumeClaimResource(Manifest):
    KIND = "PersistentVolumeClaim"
    TAG = ResourceTag.VOLUME_CLAIM
    KEEP_EXISTING = True

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        return await cluster.fetch_persistent_volume_claim(self.name, self.namespace)

    async def create(self, cluster: BaseResource) -> None:
        await cluster.create_persistent_volume_claim(self.namespace, self.as_dict())

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        # Claims hold data and their spec is immutable, an existing one is reused.
        return None


class TaskResource(Manifest):
    """The pod that performs the upgrade."""

    KIND = "Pod"
    TAG = ResourceTag.TASK
    ALWAYS_REPLACE = True

    @property
    def service_account_name(self) -> Optional[str]:
        return (self.body.get("spec") or {}).get("serviceAccountName")

    @service_account_name.setter
    def service_account_name(self, value: str) -> None:
        self.body.setdefault("spec", {})["serviceAccountName"] = value

    async def fetch(self, cluster: BaseResource) -> Optional[JSON]:
        return await cluster.fetch_pod(self.name, self.namespace)

    async def create(self, cluster: BaseResource) -> None:
        await cluster.create_pod(self.namespace, self.as_dict())

    async def replace(self, cluster: BaseResource, existing: JSON) -> None:
        # A pod spec cannot be updated, a re-run means a new pod.
        await cluster.delete_pod(
            self.name,
            self.namespace,
            V1DeleteOptions(grace_period_seconds=0, propagation_policy="Background"),
        )
        await self.create(cluster)

    @staticmethod
    def phase_of(pod: Optional[JSON]) -> Optional[str]:
        """Phase of a live task, None when the task is absent."""
        if pod is None:
            return None
        return (pod.get("status") or {}).get("phase") or TaskPhase.PENDING


MANIFEST_TYPES: Dict[str, Type[Manifest]] = {
    cls.KIND: cls
    for cls in (
        ConfigResource,
        ServiceResource,
        AccountResource,
        VolumeClaimResource,
        TaskResource,
    )
}


def load_manifest(raw: JSON) -> Manifest:
    """Parse a raw rendered manifest into its tagged variant."""
    if not isinstance(raw, dict):
        raise ManifestError(f"Manifest must be a mapping, got {type(raw).__name__}")
    kind = raw.get("kind")
    if not raw.get("apiVersion") or not kind:
        raise ManifestError("Manifest is missing apiVersion or kind")
    if not (raw.get("metadata") or {}).get("name"):
        raise ManifestError(f"{kind} manifest has no metadata.name")
    manifest_type = MANIFEST_TYPES.get(kind)
    if manifest_type is None:
        raise ManifestError(f"Unsupported manifest kind {kind}")
    return manifest_type(copy.deepcopy(raw))


def load_manifests(raws: Iterable[JSON]) -> List[Manifest]:
    return [load_manifest(raw) for raw in raws]


def locate_task(manifests: Iterable[Manifest]) -> TaskResource:
    """Return the first manifest tagged as the upgrade task."""
    task = next((m for m in manifests if m.TAG == ResourceTag.TASK), None)
    if task is None:
        raise TaskNotFoundError("Upgrade task not found in rendered manifests")
    return task
