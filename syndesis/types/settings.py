import os
from pathlib import Path
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}

_BUNDLED_TEMPLATE = str(Path(__file__).parent.parent / "templates" / "upgrade.yml")


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Path of the upgrade template bundled with this operator build
SYNDESIS_TEMPLATE_PATH = str(_getenv("SYNDESIS_TEMPLATE_PATH", _BUNDLED_TEMPLATE))

#: Service account the upgrade pod runs as
UPGRADE_SERVICE_ACCOUNT = str(_getenv("UPGRADE_SERVICE_ACCOUNT", "syndesis-operator"))

#: Deployment whose version label tells which Syndesis version is live in a namespace
SERVER_DEPLOYMENT_NAME = str(_getenv("SERVER_DEPLOYMENT_NAME", "syndesis-server"))

#: Label carrying the live Syndesis version
VERSION_LABEL = str(_getenv("VERSION_LABEL", "syndesis.io/app-version"))

#: Seconds between periodic reconciliations of each Syndesis resource
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 30.0))

#: Seconds to wait after the first failed upgrade before trying again
UPGRADE_BACKOFF_INTERVAL_SECONDS = int(_getenv("UPGRADE_BACKOFF_INTERVAL_SECONDS", 600))

#: Upper bound for the exponential upgrade backoff
UPGRADE_BACKOFF_MAX_INTERVAL_SECONDS = int(
    _getenv("UPGRADE_BACKOFF_MAX_INTERVAL_SECONDS", 6 * 3600)
)

#: Failed upgrades tolerated before giving up, 0 retries forever
UPGRADE_MAX_ATTEMPTS = int(_getenv("UPGRADE_MAX_ATTEMPTS", 0))

#: Read-clone-mutate-submit cycles attempted before a status conflict is reported
STATUS_COMMIT_MAX_ATTEMPTS = int(_getenv("STATUS_COMMIT_MAX_ATTEMPTS", 3))

#: Seconds kopf waits before retrying a failed reconciliation
TEMPORARY_ERROR_DELAY_SECONDS = float(_getenv("TEMPORARY_ERROR_DELAY_SECONDS", 30.0))


class Settings:
    """Operator settings"""

    template_path: str = SYNDESIS_TEMPLATE_PATH
    upgrade_service_account: str = UPGRADE_SERVICE_ACCOUNT
    server_deployment_name: str = SERVER_DEPLOYMENT_NAME
    version_label: str = VERSION_LABEL
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    upgrade_backoff_interval_seconds: int = UPGRADE_BACKOFF_INTERVAL_SECONDS
    upgrade_backoff_max_interval_seconds: int = UPGRADE_BACKOFF_MAX_INTERVAL_SECONDS
    upgrade_max_attempts: int = UPGRADE_MAX_ATTEMPTS
    status_commit_max_attempts: int = STATUS_COMMIT_MAX_ATTEMPTS
    temporary_error_delay_seconds: float = TEMPORARY_ERROR_DELAY_SECONDS

    def __init__(
        self,
        *args,
        template_path: str = None,
        upgrade_service_account: str = None,
        server_deployment_name: str = None,
        version_label: str = None,
        reconcile_interval_seconds: float = None,
        upgrade_backoff_interval_seconds: int = None,
        upgrade_backoff_max_interval_seconds: int = None,
        upgrade_max_attempts: int = None,
        status_commit_max_attempts: int = None,
        temporary_error_delay_seconds: float = None,
        **kwargs,
    ):
        if template_path is not None:
            self.template_path = template_path

        if upgrade_service_account is not None:
            self.upgrade_service_account = upgrade_service_account

        if server_deployment_name is not None:
            self.server_deployment_name = server_deployment_name

        if version_label is not None:
            self.version_label = version_label

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if upgrade_backoff_interval_seconds is not None:
            self.upgrade_backoff_interval_seconds = upgrade_backoff_interval_seconds

        if upgrade_backoff_max_interval_seconds is not None:
            self.upgrade_backoff_max_interval_seconds = (
                upgrade_backoff_max_interval_seconds
            )

        if upgrade_max_attempts is not None:
            self.upgrade_max_attempts = upgrade_max_attempts

        if status_commit_max_attempts is not None:
            self.status_commit_max_attempts = status_commit_max_attempts

        if temporary_error_delay_seconds is not None:
            self.temporary_error_delay_seconds = temporary_error_delay_seconds
