from .syndesis_spec import (
    ComponentResourcesSchema,
    ComponentSpecSchema,
    DatabaseComponentSpecSchema,
    SyndesisComponentsSchema,
    SyndesisSpecSchema,
)
from .syndesis_status import SyndesisStatusSchema

__all__ = [
    "ComponentResourcesSchema",
    "ComponentSpecSchema",
    "DatabaseComponentSpecSchema",
    "SyndesisComponentsSchema",
    "SyndesisSpecSchema",
    "SyndesisStatusSchema",
]
