from .installation import Installation
from .manifests import Manifest, TaskResource, TaskPhase, load_manifests, locate_task
from .version import VersionResolver
from .applier import ResourceApplier, ApplyOperation
from .status import StatusStore

__all__ = [
    "Installation",
    "Manifest",
    "TaskResource",
    "TaskPhase",
    "load_manifests",
    "locate_task",
    "VersionResolver",
    "ResourceApplier",
    "ApplyOperation",
    "StatusStore",
]
