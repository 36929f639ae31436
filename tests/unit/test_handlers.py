"""Unit tests for the Syndesis kopf handlers."""

import asyncio
import copy
import json
import kopf
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from kubernetes_asyncio.client import ApiException
from syndesis.actions import (
    Action,
    Observation,
    Upgrade,
    UpgradeBackoff,
    run_actions,
)
from syndesis.handlers import probes, syndesis as handlers
from syndesis.resources import StatusStore, VersionResolver
from syndesis.types.models import InstallationPhase
from syndesis.utils.errors import (
    NamespaceStateUnreadableError,
    TaskNotFoundError,
    TemplateUnreadableError,
)

TASK_NAME = "syndesis-upgrade-1.5.0"


def fake_action(outcome=None, side_effect=None, accepts=True):
    action = MagicMock(spec=Action)
    action.can_execute.return_value = accepts
    action.execute = AsyncMock(return_value=outcome, side_effect=side_effect)
    return action


def conflict():
    ex = ApiException(status=409, reason="Conflict")
    ex.body = json.dumps({"reason": "Conflict"})
    return ex


def cluster_with(body):
    """Status store over an API server holding one installation.

    Status writes carrying a stale resourceVersion are rejected with 409.
    The stored body is kept in `store.stored`, None once deleted.
    """
    store = StatusStore(api_client=MagicMock())
    store.stored = copy.deepcopy(body)

    async def get(namespace, group, version, plural, name):
        return copy.deepcopy(store.stored)

    async def replace(namespace, group, version, plural, name, body):
        live = store.stored
        if body["metadata"]["resourceVersion"] != live["metadata"]["resourceVersion"]:
            raise conflict()
        live = copy.deepcopy(live)
        live["status"] = copy.deepcopy(body["status"])
        live["metadata"]["resourceVersion"] = str(int(live["metadata"]["resourceVersion"]) + 1)
        store.stored = live
        return copy.deepcopy(live)

    store.get_custom_object = AsyncMock(side_effect=get)
    store.replace_custom_object_status = AsyncMock(side_effect=replace)
    return store


@pytest.fixture(autouse=True)
def fresh_locks():
    # locks bind to the event loop of the test that first contends them
    handlers.reconciliation_locks.clear()
    yield
    handlers.reconciliation_locks.clear()


@pytest.fixture
def sensor():
    sensor = MagicMock()
    with patch.object(Action, "sensor", sensor):
        yield sensor


@pytest.fixture
def events():
    with patch.object(handlers.kopf, "event") as event, patch.object(
        handlers.kopf, "warn"
    ) as warn:
        yield event, warn


class TestRunActions:
    @pytest.mark.asyncio
    async def test_first_accepting_action_runs(self, installation_factory, logger):
        skipped = fake_action(accepts=False)
        first = fake_action(outcome="first")
        second = fake_action(outcome="second")

        action, outcome = await run_actions(
            installation_factory(), logger, [skipped, first, second]
        )

        assert action is first
        assert outcome == "first"
        skipped.execute.assert_not_called()
        second.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, installation_factory, logger):
        assert await run_actions(
            installation_factory(), logger, [fake_action(accepts=False)]
        ) == (None, None)


class TestReconcileInstallation:
    @pytest.mark.asyncio
    async def test_outcome_is_published(self, body_factory, logger, sensor, events):
        event, warn = events
        body = body_factory()

        await handlers.reconcile_installation(
            body,
            logger,
            "timer",
            actions=[fake_action(Observation.TASK_FAILED)],
            store=cluster_with(body),
        )

        warn.assert_called_once()
        assert warn.call_args.kwargs["reason"] == "UpgradePodFailed"
        event.assert_not_called()
        sensor.on_reconcile_start.assert_called_once_with(
            "app", "myproject", "Upgrading", "timer"
        )
        assert sensor.on_reconcile_complete.call_args[0][3] is True

    @pytest.mark.asyncio
    async def test_running_task_publishes_nothing(self, body_factory, logger, sensor, events):
        event, warn = events
        body = body_factory()

        await handlers.reconcile_installation(
            body,
            logger,
            actions=[fake_action(Observation.TASK_RUNNING)],
            store=cluster_with(body),
        )

        event.assert_not_called()
        warn.assert_not_called()

    @pytest.mark.asyncio
    async def test_actions_see_latest_state(self, body_factory, logger, sensor, events):
        """Test the installation is read again instead of trusting the given body."""
        body = body_factory(InstallationPhase.UPGRADING)
        action = fake_action()

        await handlers.reconcile_installation(
            body,
            logger,
            actions=[action],
            store=cluster_with(body_factory(InstallationPhase.INSTALLED)),
        )

        seen = action.execute.call_args[0][0]
        assert seen.phase == InstallationPhase.INSTALLED

    @pytest.mark.asyncio
    async def test_deleted_installation_is_skipped(self, body_factory, logger, sensor, events):
        store = cluster_with(body_factory())
        store.stored = None
        action = fake_action()

        await handlers.reconcile_installation(
            body_factory(), logger, actions=[action], store=store
        )

        action.can_execute.assert_not_called()
        sensor.on_reconcile_start.assert_not_called()

    @pytest.mark.asyncio
    async def test_controller_errors_are_retried(self, body_factory, logger, sensor, events):
        error = NamespaceStateUnreadableError("no server deployment")
        body = body_factory()

        with pytest.raises(kopf.TemporaryError):
            await handlers.reconcile_installation(
                body, logger, actions=[fake_action(side_effect=error)], store=cluster_with(body)
            )

        args = sensor.on_reconcile_complete.call_args[0]
        assert args[3] is False
        assert args[4] is error

    @pytest.mark.asyncio
    async def test_build_defects_are_logged_loudly(self, body_factory, logger, sensor, events):
        body = body_factory()

        with pytest.raises(kopf.TemporaryError):
            await handlers.reconcile_installation(
                body,
                logger,
                actions=[fake_action(side_effect=TaskNotFoundError("no task"))],
                store=cluster_with(body),
            )

        logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_api_errors_are_retried(self, body_factory, logger, sensor, events):
        error = ApiException(status=403, reason="Forbidden")
        body = body_factory()

        with pytest.raises(kopf.TemporaryError):
            await handlers.reconcile_installation(
                body, logger, actions=[fake_action(side_effect=error)], store=cluster_with(body)
            )

    @pytest.mark.asyncio
    async def test_unreadable_installation_is_retried(self, body_factory, logger, sensor, events):
        store = cluster_with(body_factory())
        store.get_custom_object = AsyncMock(
            side_effect=ApiException(status=500, reason="Internal Server Error")
        )

        with pytest.raises(kopf.TemporaryError):
            await handlers.reconcile_installation(
                body_factory(), logger, actions=[fake_action()], store=store
            )

    @pytest.mark.asyncio
    async def test_invalid_resource_is_permanent(self, body_factory, logger, sensor, events):
        body = body_factory(upgradeAttempts="many")

        with pytest.raises(kopf.PermanentError):
            await handlers.reconcile_installation(
                body, logger, actions=[fake_action()], store=cluster_with(body)
            )

    @pytest.mark.asyncio
    async def test_one_reconciliation_per_installation(
        self, body_factory, logger, sensor, events
    ):
        running = 0
        peak = 0

        async def slow(installation, logger):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        action = fake_action(side_effect=slow)
        store = cluster_with(body_factory())
        await asyncio.gather(
            *[
                handlers.reconcile_installation(
                    body_factory(), logger, actions=[action], store=store
                )
                for _ in range(3)
            ]
        )

        assert action.execute.await_count == 3
        assert peak == 1


class TestQueuedReconciliations:
    """Passes queued on one installation, all started from the same body."""

    @pytest.mark.asyncio
    async def test_forced_upgrade_is_applied_once(
        self, body_factory, pod_factory, resolver, applier, logger, sensor, events
    ):
        body = body_factory(forceUpgrade=True)
        store = cluster_with(body)
        applier.fetch_pod = AsyncMock(
            side_effect=[None, pod_factory(TASK_NAME, "Running")]
        )
        actions = [Upgrade(resolver=resolver, applier=applier, store=store)]

        await asyncio.gather(
            handlers.reconcile_installation(body, logger, actions=actions, store=store),
            handlers.reconcile_installation(body, logger, actions=actions, store=store),
        )

        applier.apply_all.assert_awaited_once()
        assert store.stored["status"]["forceUpgrade"] is False
        assert store.stored["status"]["installationPhase"] == InstallationPhase.UPGRADING

    @pytest.mark.asyncio
    async def test_task_failure_is_counted_once(
        self, body_factory, pod_factory, resolver, applier, logger, sensor, events
    ):
        body = body_factory(upgradeAttempts=0)
        store = cluster_with(body)
        applier.fetch_pod = AsyncMock(return_value=pod_factory(TASK_NAME, "Failed"))
        actions = [
            Upgrade(resolver=resolver, applier=applier, store=store),
            UpgradeBackoff(resolver=resolver, applier=applier, store=store),
        ]

        await asyncio.gather(
            handlers.reconcile_installation(body, logger, actions=actions, store=store),
            handlers.reconcile_installation(body, logger, actions=actions, store=store),
        )

        status = store.stored["status"]
        assert status["upgradeAttempts"] == 1
        assert status["installationPhase"] == InstallationPhase.UPGRADE_FAILURE_BACKOFF
        applier.fetch_pod.assert_awaited_once()


class TestOnDelete:
    @pytest.mark.asyncio
    async def test_lock_is_dropped(self, body_factory, logger):
        body = body_factory()
        handlers.reconciliation_locks["myproject/app"]
        handlers.reconciliation_locks["myproject/other"]

        await handlers.on_delete(body=body, logger=logger)

        assert list(handlers.reconciliation_locks) == ["myproject/other"]

    @pytest.mark.asyncio
    async def test_unknown_installation(self, body_factory, logger):
        await handlers.on_delete(body=body_factory(), logger=logger)

        assert not handlers.reconciliation_locks


class TestProbes:
    def test_target_version(self):
        assert probes.get_target_version() == "1.5.0"

    def test_unreadable_template(self):
        with patch.object(
            VersionResolver, "target_version", side_effect=TemplateUnreadableError("gone")
        ):
            assert probes.get_target_version() == "unreadable: gone"
