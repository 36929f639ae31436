from .syndesis_spec import (
    ComponentResources,
    ComponentSpec,
    DatabaseComponentSpec,
    SyndesisComponents,
    SyndesisSpec,
)
from .syndesis_status import InstallationPhase, StatusReason, SyndesisStatus

__all__ = [
    "ComponentResources",
    "ComponentSpec",
    "DatabaseComponentSpec",
    "SyndesisComponents",
    "SyndesisSpec",
    "InstallationPhase",
    "StatusReason",
    "SyndesisStatus",
]
