"""Unit tests for applying rendered manifests."""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from kubernetes_asyncio.client import ApiException
from syndesis.common.models.labels import Labels
from syndesis.resources.applier import ApplyOperation, ResourceApplier
from syndesis.resources.manifests import load_manifest
from syndesis.utils.errors import ApplyError


def already_exists():
    ex = ApiException(status=409, reason="Conflict")
    ex.body = json.dumps({"reason": "AlreadyExists"})
    return ex


def config_map(data=None):
    return load_manifest(
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "syndesis-upgrade-config", "namespace": "elsewhere"},
            "data": data or {"target-version": "1.5.0"},
        }
    )


def upgrade_pod():
    return load_manifest(
        {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": "syndesis-upgrade-1.5.0"},
            "spec": {"containers": [{"name": "upgrade", "image": "upgrade:1.5.0"}]},
        }
    )


def volume_claim():
    return load_manifest(
        {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": {"name": "syndesis-upgrade-backup"},
            "spec": {"resources": {"requests": {"storage": "1Gi"}}},
        }
    )


@pytest.fixture
def cluster():
    """Applier whose cluster calls are mocked."""
    applier = ResourceApplier(api_client=MagicMock())
    applier.create_config_map = AsyncMock()
    applier.replace_config_map = AsyncMock()
    applier.fetch_config_map = AsyncMock(return_value=None)
    applier.create_pod = AsyncMock()
    applier.delete_pod = AsyncMock()
    applier.fetch_pod = AsyncMock(return_value=None)
    applier.create_persistent_volume_claim = AsyncMock()
    applier.fetch_persistent_volume_claim = AsyncMock()
    return applier


class TestStamp:
    def test_stamp_binds_manifest_to_owner(self, cluster, installation_factory):
        owner = installation_factory()
        manifest = cluster.stamp(config_map(), owner)

        assert manifest.namespace == "myproject"
        refs = manifest.metadata["ownerReferences"]
        assert len(refs) == 1
        assert refs[0]["uid"] == owner.uid
        assert refs[0]["kind"] == "Syndesis"
        assert refs[0]["name"] == "app"
        assert manifest.labels[Labels.KUBERNETES_INSTANCE_LABEL] == "app"
        assert Labels.SYNDESIS_RESOURCE_HASH_ANNOTATION in manifest.annotations

    def test_stamp_is_stable(self, cluster, installation_factory):
        owner = installation_factory()
        first = cluster.stamp(config_map(), owner)
        again = cluster.stamp(cluster.stamp(config_map(), owner), owner)

        assert len(again.metadata["ownerReferences"]) == 1
        assert ResourceApplier.hash_of(first.body) == ResourceApplier.hash_of(again.body)

    def test_hash_follows_content(self, cluster, installation_factory):
        owner = installation_factory()
        a = cluster.stamp(config_map({"target-version": "1.5.0"}), owner)
        b = cluster.stamp(config_map({"target-version": "1.6.0"}), owner)

        assert ResourceApplier.hash_of(a.body) != ResourceApplier.hash_of(b.body)

    def test_existing_labels_win(self, cluster, installation_factory):
        manifest = config_map()
        manifest.labels[Labels.SYNDESIS_TYPE_LABEL] = "infrastructure"

        cluster.stamp(manifest, installation_factory())

        assert manifest.labels[Labels.SYNDESIS_TYPE_LABEL] == "infrastructure"


class TestApply:
    @pytest.mark.asyncio
    async def test_create(self, cluster, installation_factory):
        operation = await cluster.apply(config_map(), installation_factory(), force_replace=True)

        assert operation == ApplyOperation.CREATED
        namespace, body = cluster.create_config_map.call_args[0]
        assert namespace == "myproject"
        assert body["metadata"]["namespace"] == "myproject"

    @pytest.mark.asyncio
    async def test_existing_without_force_is_unchanged(self, cluster, installation_factory):
        cluster.create_config_map.side_effect = already_exists()

        operation = await cluster.apply(config_map(), installation_factory(), force_replace=False)

        assert operation == ApplyOperation.UNCHANGED
        cluster.fetch_config_map.assert_not_called()
        cluster.replace_config_map.assert_not_called()

    @pytest.mark.asyncio
    async def test_same_content_is_not_rewritten(self, cluster, installation_factory):
        """Test re-applying identical content performs no cluster write."""
        owner = installation_factory()
        live = cluster.stamp(config_map(), owner).as_dict()
        live["metadata"]["resourceVersion"] = "7"
        cluster.create_config_map.side_effect = already_exists()
        cluster.fetch_config_map.return_value = live

        operation = await cluster.apply(config_map(), owner, force_replace=True)

        assert operation == ApplyOperation.UNCHANGED
        cluster.replace_config_map.assert_not_called()

    @pytest.mark.asyncio
    async def test_changed_content_is_replaced(self, cluster, installation_factory):
        owner = installation_factory()
        live = cluster.stamp(config_map({"target-version": "1.4.2"}), owner).as_dict()
        live["metadata"]["resourceVersion"] = "7"
        cluster.create_config_map.side_effect = already_exists()
        cluster.fetch_config_map.return_value = live

        operation = await cluster.apply(config_map(), owner, force_replace=True)

        assert operation == ApplyOperation.REPLACED
        name, namespace, body = cluster.replace_config_map.call_args[0]
        assert (name, namespace) == ("syndesis-upgrade-config", "myproject")
        assert body["metadata"]["resourceVersion"] == "7"
        assert body["data"] == {"target-version": "1.5.0"}

    @pytest.mark.asyncio
    async def test_task_is_always_rerun(self, cluster, installation_factory):
        """Test an existing upgrade pod is deleted and created again."""
        owner = installation_factory()
        live = cluster.stamp(upgrade_pod(), owner).as_dict()
        cluster.create_pod.side_effect = [already_exists(), None]
        cluster.fetch_pod.return_value = live

        operation = await cluster.apply(upgrade_pod(), owner, force_replace=True)

        assert operation == ApplyOperation.REPLACED
        cluster.delete_pod.assert_awaited_once()
        assert cluster.create_pod.await_count == 2

    @pytest.mark.asyncio
    async def test_volume_claim_is_kept(self, cluster, installation_factory):
        cluster.create_persistent_volume_claim.side_effect = already_exists()

        operation = await cluster.apply(volume_claim(), installation_factory(), force_replace=True)

        assert operation == ApplyOperation.UNCHANGED
        cluster.fetch_persistent_volume_claim.assert_not_called()

    @pytest.mark.asyncio
    async def test_vanished_resource_is_created(self, cluster, installation_factory):
        cluster.create_config_map.side_effect = [already_exists(), None]
        cluster.fetch_config_map.return_value = None

        operation = await cluster.apply(config_map(), installation_factory(), force_replace=True)

        assert operation == ApplyOperation.CREATED

    @pytest.mark.asyncio
    async def test_rejection_is_apply_error(self, cluster, installation_factory):
        cluster.create_config_map.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(ApplyError) as exc_info:
            await cluster.apply(config_map(), installation_factory(), force_replace=True)

        assert exc_info.value.kind == "ConfigMap"
        assert exc_info.value.name == "syndesis-upgrade-config"

    @pytest.mark.asyncio
    async def test_apply_reports_to_sensor(self, cluster, installation_factory):
        cluster.sensor = MagicMock()
        cluster.sensor.on_resource_apply_start.return_value = {"start_time": 0}

        await cluster.apply(config_map(), installation_factory(), force_replace=True)

        cluster.sensor.on_resource_apply_complete.assert_called_once_with(
            "app",
            "myproject",
            "syndesis-upgrade-config",
            "ConfigMap",
            {"start_time": 0},
            ApplyOperation.CREATED,
            True,
            None,
        )


class TestApplyAll:
    @pytest.mark.asyncio
    async def test_applies_in_order(self, cluster, installation_factory):
        operations = await cluster.apply_all(
            [config_map(), volume_claim(), upgrade_pod()],
            installation_factory(),
            force_replace=True,
        )

        assert operations == [ApplyOperation.CREATED] * 3

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, cluster, installation_factory):
        cluster.create_persistent_volume_claim.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )

        with pytest.raises(ApplyError):
            await cluster.apply_all(
                [config_map(), volume_claim(), upgrade_pod()],
                installation_factory(),
                force_replace=True,
            )

        cluster.create_config_map.assert_awaited_once()
        cluster.create_pod.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_pass_has_no_effect(self, cluster, installation_factory):
        """Test re-applying without force leaves existing resources alone."""
        owner = installation_factory()
        await cluster.apply_all([config_map(), upgrade_pod()], owner, force_replace=False)
        cluster.create_config_map.side_effect = already_exists()
        cluster.create_pod.side_effect = already_exists()

        operations = await cluster.apply_all(
            [config_map(), upgrade_pod()], owner, force_replace=False
        )

        assert operations == [ApplyOperation.UNCHANGED] * 2
        cluster.delete_pod.assert_not_called()
        cluster.replace_config_map.assert_not_called()


class TestClusterReads:
    @pytest.fixture
    def pods(self):
        applier = ResourceApplier(api_client=MagicMock())
        applier.core_v1_api = MagicMock()
        return applier

    @pytest.mark.asyncio
    async def test_missing_pod(self, pods):
        pods.core_v1_api.read_namespaced_pod = AsyncMock(
            side_effect=ApiException(status=404, reason="Not Found")
        )

        assert await pods.fetch_pod("syndesis-upgrade-1.5.0", "myproject") is None

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, pods):
        pods.core_v1_api.read_namespaced_pod = AsyncMock(
            side_effect=ApiException(status=403, reason="Forbidden")
        )

        with pytest.raises(ApiException):
            await pods.fetch_pod("syndesis-upgrade-1.5.0", "myproject")

    @pytest.mark.asyncio
    async def test_delete_missing_pod(self, pods):
        pods.core_v1_api.delete_namespaced_pod = AsyncMock(
            side_effect=ApiException(status=404, reason="Not Found")
        )

        await pods.delete_pod("syndesis-upgrade-1.5.0", "myproject")
