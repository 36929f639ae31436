"""Shared fixtures for unit tests."""

import copy
import pytest
from unittest.mock import AsyncMock, MagicMock
from syndesis.common.models.version import Version
from syndesis.resources import (
    Installation,
    VersionResolver,
    ResourceApplier,
    StatusStore,
)

TARGET_VERSION = "1.5.0"
OLD_VERSION = "1.4.2"
NAMESPACE = "myproject"


def make_body(phase="Upgrading", **status):
    """Build a Syndesis resource body as returned by the API server."""
    body = {
        "apiVersion": "syndesis.io/v1alpha1",
        "kind": "Syndesis",
        "metadata": {
            "name": "app",
            "namespace": NAMESPACE,
            "uid": "8b4c1e4e-0000-4000-8000-000000000001",
            "resourceVersion": "100",
        },
        "spec": {
            "routeHostname": "syndesis.example.com",
            "registry": "docker.io",
        },
        "status": {"installationPhase": phase},
    }
    body["status"].update(status)
    return body


def make_pod(name, phase):
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": NAMESPACE},
        "status": {"phase": phase},
    }


@pytest.fixture
def installation_factory():
    def factory(phase="Upgrading", **status):
        return Installation.from_body(make_body(phase, **status))

    return factory


@pytest.fixture
def resolver():
    """Version resolver reporting target 1.5.0 and live 1.4.2."""
    resolver = MagicMock(spec=VersionResolver)
    resolver.target_version.return_value = Version(TARGET_VERSION)
    resolver.live_version = AsyncMock(return_value=Version(OLD_VERSION))
    return resolver


@pytest.fixture
def applier():
    """Applier without an upgrade task in the cluster."""
    applier = MagicMock(spec=ResourceApplier)
    applier.fetch_pod = AsyncMock(return_value=None)
    applier.apply_all = AsyncMock(return_value=[])
    return applier


@pytest.fixture
def store():
    """Status store backed by a fake API server accepting every write.

    Submitted bodies are recorded in `store.submitted`.
    """
    store = StatusStore(api_client=MagicMock())
    store.submitted = []

    async def replace(namespace, group, version, plural, name, body):
        store.submitted.append(copy.deepcopy(body))
        accepted = copy.deepcopy(body)
        rv = int(accepted["metadata"].get("resourceVersion") or 0)
        accepted["metadata"]["resourceVersion"] = str(rv + 1)
        return accepted

    store.replace_custom_object_status = AsyncMock(side_effect=replace)
    return store


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture(autouse=True)
def reset_target_version_cache():
    VersionResolver._target = None
    yield
    VersionResolver._target = None


@pytest.fixture
def body_factory():
    return make_body


@pytest.fixture
def pod_factory():
    return make_pod
