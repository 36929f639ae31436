from datetime import datetime
from typing import Optional
from syndesis.types.base import BaseModel


class InstallationPhase:
    """Values of `status.installationPhase`."""

    MISSING = ""
    NOT_INSTALLED = "NotInstalled"
    INSTALLING = "Installing"
    STARTING = "Starting"
    STARTUP_FAILED = "StartupFailed"
    INSTALLED = "Installed"
    UPGRADING = "Upgrading"
    UPGRADE_FAILURE_BACKOFF = "UpgradeFailureBackoff"
    UPGRADE_FAILED = "UpgradeFailed"


class StatusReason:
    """Values of `status.reason`."""

    MISSING = ""
    UPGRADE_POD_FAILED = "UpgradePodFailed"
    TOO_MANY_UPGRADE_ATTEMPTS = "TooManyUpgradeAttempts"


class SyndesisStatus(BaseModel):
    """Syndesis CRD status"""

    installation_phase: Optional[str]
    reason: Optional[str]
    version: Optional[str]
    last_upgrade_failure_time: Optional[datetime]
    upgrade_attempts: int
    force_upgrade: bool
