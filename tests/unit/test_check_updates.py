import pytest
from syndesis.actions.check_updates import CheckUpdates, UPDATE_AVAILABLE
from syndesis.common.models.version import Version
from syndesis.types.models import InstallationPhase


@pytest.fixture
def check_updates(resolver, applier, store):
    return CheckUpdates(resolver=resolver, applier=applier, store=store)


class TestCheckUpdates:
    def test_runs_only_when_installed(self, check_updates, installation_factory):
        assert check_updates.can_execute(installation_factory(InstallationPhase.INSTALLED))
        assert not check_updates.can_execute(installation_factory(InstallationPhase.UPGRADING))

    @pytest.mark.asyncio
    async def test_outdated_installation_starts_upgrade(
        self, check_updates, store, installation_factory, logger
    ):
        installation = installation_factory(InstallationPhase.INSTALLED, version="1.4.2")

        outcome = await check_updates.execute(installation, logger)

        assert outcome == UPDATE_AVAILABLE
        status = store.submitted[0]["status"]
        assert status["installationPhase"] == InstallationPhase.UPGRADING
        assert status["reason"] == ""
        assert status["version"] == "1.4.2"

    @pytest.mark.asyncio
    async def test_current_installation_is_left_alone(
        self, check_updates, resolver, store, installation_factory, logger
    ):
        resolver.live_version.return_value = Version("1.5.0")

        outcome = await check_updates.execute(
            installation_factory(InstallationPhase.INSTALLED, version="1.5.0"), logger
        )

        assert outcome is None
        assert store.submitted == []
