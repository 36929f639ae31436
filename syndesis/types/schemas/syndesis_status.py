from datetime import timezone
from marshmallow import fields
from syndesis.types.base import BaseSchema
from syndesis.types.models.syndesis_status import InstallationPhase, SyndesisStatus


class SyndesisStatusSchema(BaseSchema):
    __model__ = SyndesisStatus

    installation_phase = fields.Str(
        data_key="installationPhase",
        allow_none=True,
        load_default=InstallationPhase.MISSING,
    )
    reason = fields.Str(data_key="reason", allow_none=True, load_default="")
    version = fields.Str(data_key="version", allow_none=True, load_default=None)
    last_upgrade_failure_time = fields.AwareDateTime(
        data_key="lastUpgradeFailureTime",
        format="iso",
        default_timezone=timezone.utc,
        allow_none=True,
        load_default=None,
    )
    upgrade_attempts = fields.Int(
        data_key="upgradeAttempts", allow_none=False, load_default=0
    )
    force_upgrade = fields.Bool(
        data_key="forceUpgrade", allow_none=False, load_default=False
    )
