import mmh3
import hashlib
from functools import cached_property
from typing import Any, Dict, Optional, Union
from syndesis.utils.errors import not_found_error
from syndesis.utils.helpers import canonicalize_dict
from syndesis.common.models.labels import Labels
from syndesis.sensors.base import OperatorSensor
from syndesis.types.settings import Settings
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1DeleteOptions,
    V1Deployment,
)
from kubernetes_asyncio.client.api_client import ApiClient

JSON = Dict[str, Any]


class BaseResource:
    """Access to the cluster API shared by everything that reads or writes resources."""

    SYNDESIS_OPERATOR_NAME = "syndesis-operator"

    conf: Settings = Settings()
    sensor: OperatorSensor = OperatorSensor()
    shared_api_client: ApiClient = None  # Shared across all resources

    _api_client: ApiClient = None

    def __init__(self, api_client: ApiClient = None):
        if api_client is not None:
            self._api_client = api_client

    @cached_property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            # Use the shared API client if available, otherwise create a new one
            if self.shared_api_client is not None:
                self._api_client = self.shared_api_client
            else:
                self._api_client = ApiClient()
        return self._api_client

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        return CoreV1Api(self.api_client)

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        return AppsV1Api(self.api_client)

    @cached_property
    def custom_objects_api(self) -> CustomObjectsApi:
        return CustomObjectsApi(self.api_client)

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
        full_hash = hash_obj.hexdigest()

        # First 16 characters keep annotations readable
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        """Prepare hash annotation for k8s resources."""
        return {Labels.SYNDESIS_RESOURCE_HASH_ANNOTATION: str(hash)}

    # Pods

    async def fetch_pod(self, name: str, namespace: str) -> Optional[JSON]:
        """Retrieve the latest state of a pod, None if it does not exist."""
        try:
            pod = await self.core_v1_api.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.api_client.sanitize_for_serialization(pod)

    async def create_pod(self, namespace: str, pod: JSON) -> None:
        await self.core_v1_api.create_namespaced_pod(namespace=namespace, body=pod)

    async def delete_pod(
        self, name: str, namespace: str, delete_options: V1DeleteOptions = None
    ) -> None:
        try:
            await self.core_v1_api.delete_namespaced_pod(
                name=name, namespace=namespace, body=delete_options
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    # Config maps

    async def fetch_config_map(self, name: str, namespace: str) -> Optional[JSON]:
        try:
            config_map = await self.core_v1_api.read_namespaced_config_map(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.api_client.sanitize_for_serialization(config_map)

    async def create_config_map(self, namespace: str, config_map: JSON) -> None:
        await self.core_v1_api.create_namespaced_config_map(
            namespace=namespace, body=config_map
        )

    async def replace_config_map(self, name: str, namespace: str, config_map: JSON) -> None:
        await self.core_v1_api.replace_namespaced_config_map(
            name=name, namespace=namespace, body=config_map
        )

    # Services

    async def fetch_service(self, name: str, namespace: str) -> Optional[JSON]:
        try:
            service = await self.core_v1_api.read_namespaced_service(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.api_client.sanitize_for_serialization(service)

    async def create_service(self, namespace: str, service: JSON) -> None:
        await self.core_v1_api.create_namespaced_service(namespace=namespace, body=service)

    async def replace_service(self, name: str, namespace: str, service: JSON) -> None:
        await self.core_v1_api.replace_namespaced_service(
            name=name, namespace=namespace, body=service
        )

    # Service accounts

    async def fetch_service_account(self, name: str, namespace: str) -> Optional[JSON]:
        try:
            service_account = await self.core_v1_api.read_namespaced_service_account(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.api_client.sanitize_for_serialization(service_account)

    async def create_service_account(self, namespace: str, service_account: JSON) -> None:
        await self.core_v1_api.create_namespaced_service_account(
            namespace=namespace, body=service_account
        )

    async def replace_service_account(
        self, name: str, namespace: str, service_account: JSON
    ) -> None:
        await self.core_v1_api.replace_namespaced_service_account(
            name=name, namespace=namespace, body=service_account
        )

    # Persistent volume claims

    async def fetch_persistent_volume_claim(
        self, name: str, namespace: str
    ) -> Optional[JSON]:
        try:
            pvc = await self.core_v1_api.read_namespaced_persistent_volume_claim(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.api_client.sanitize_for_serialization(pvc)

    async def create_persistent_volume_claim(self, namespace: str, pvc: JSON) -> None:
        await self.core_v1_api.create_namespaced_persistent_volume_claim(
            namespace=namespace, body=pvc
        )

    # Deployments

    async def fetch_deployment(self, name: str, namespace: str) -> Optional[V1Deployment]:
        try:
            return await self.apps_v1_api.read_namespaced_deployment(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    # Custom objects

    async def get_custom_object(
        self,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
    ) -> Optional[JSON]:
        try:
            return await self.custom_objects_api.get_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def replace_custom_object_status(
        self,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        body: JSON,
    ) -> JSON:
        return await self.custom_objects_api.replace_namespaced_custom_object_status(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body=body,
        )
