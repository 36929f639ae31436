import datetime
import kopf
from syndesis.resources import VersionResolver
from syndesis.utils.errors import SyndesisError


# Liveness probe
@kopf.on.probe(id='now')
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id='targetVersion')
def get_target_version(**kwargs):
    """Version this operator build upgrades installations to."""
    try:
        return str(VersionResolver().target_version())
    except SyndesisError as ex:
        return f"unreadable: {ex}"
