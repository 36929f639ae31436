import copy
from typing import Any, Dict, Optional
from syndesis.types.models import SyndesisSpec, SyndesisStatus
from syndesis.types.schemas import SyndesisSpecSchema, SyndesisStatusSchema

JSON = Dict[str, Any]


class Installation:
    """A Syndesis custom resource as seen by one reconciliation.

    Instances are snapshots: status changes are made on a `clone()` and
    submitted through the status store, never on the snapshot itself.
    """

    KIND = "Syndesis"
    GROUP_NAME = "syndesis.io"
    GROUP_VERSION = "v1alpha1"
    PLURAL_NAME = "syndesises"

    body: JSON
    spec: SyndesisSpec
    status: SyndesisStatus

    def __init__(self, body: JSON) -> None:
        self.body = body
        self.spec = SyndesisSpecSchema().load(body.get("spec") or {})
        self.status = SyndesisStatusSchema().load(body.get("status") or {})

    @classmethod
    def from_body(cls, body) -> "Installation":
        """Build from a kopf body or a plain dict, the body is copied."""
        return cls(copy.deepcopy(dict(body)))

    @property
    def metadata(self) -> JSON:
        return self.body.get("metadata") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace")

    @property
    def uid(self) -> Optional[str]:
        return self.metadata.get("uid")

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.get("resourceVersion")

    @property
    def api_version(self) -> str:
        return self.body.get("apiVersion") or f"{self.GROUP_NAME}/{self.GROUP_VERSION}"

    @property
    def phase(self) -> str:
        return self.status.installation_phase

    def owner(self) -> JSON:
        """Minimal body used to point owner references at this installation."""
        return {
            "apiVersion": self.api_version,
            "kind": self.body.get("kind") or self.KIND,
            "metadata": {"name": self.name, "uid": self.uid},
        }

    def clone(self) -> "Installation":
        return Installation(self.as_body())

    def as_body(self) -> JSON:
        """Full resource body with the current status model serialized into it."""
        body = copy.deepcopy(self.body)
        status = dict(body.get("status") or {})
        status.update(SyndesisStatusSchema().dump(self.status))
        body["status"] = status
        return body

    def __repr__(self) -> str:
        return f"{self.KIND}<{self.namespace}/{self.name}>"
