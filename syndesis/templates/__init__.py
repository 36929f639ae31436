"""Rendering of the upgrade template bundled with the operator.

The template follows the OpenShift ``Template`` layout: a list of
``parameters`` (name, default ``value``, ``required`` flag) and a list of
``objects`` in which ``${NAME}`` placeholders are substituted.
"""
import yaml
from functools import lru_cache
from typing import Any, Dict, List, Optional
from syndesis.utils.errors import TemplateUnreadableError, TemplateRenderError
from syndesis.utils.helpers import substitute_params, collect_params
from syndesis.types.models import SyndesisSpec

TEMPLATE_KIND = "Template"
VERSION_PARAMETER = "SYNDESIS_VERSION"
DEFAULT_REGISTRY = "docker.io"


class UpgradeTemplate:
    """Parsed upgrade template."""

    path: str
    parameters: List[Dict[str, Any]]
    objects: List[Dict[str, Any]]

    def __init__(self, path: str, parameters: List[Dict], objects: List[Dict]):
        self.path = path
        self.parameters = parameters
        self.objects = objects

    @classmethod
    def load(cls, path: str) -> "UpgradeTemplate":
        try:
            with open(path, "r") as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as ex:
            raise TemplateUnreadableError(f"Cannot read template {path}: {ex}") from ex

        if not isinstance(document, dict) or document.get("kind") != TEMPLATE_KIND:
            raise TemplateUnreadableError(f"{path} is not a {TEMPLATE_KIND}")
        objects = document.get("objects")
        if not isinstance(objects, list):
            raise TemplateUnreadableError(f"{path} has no objects")
        return cls(path, document.get("parameters") or [], objects)

    def parameter(self, name: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.parameters if p.get("name") == name), None)

    @property
    def version(self) -> str:
        """Syndesis version this template installs."""
        param = self.parameter(VERSION_PARAMETER)
        value = str(param.get("value") or "").strip() if param else ""
        if not value:
            raise TemplateUnreadableError(
                f"{self.path} does not define a default for {VERSION_PARAMETER}"
            )
        return value

    def default_params(self) -> Dict[str, str]:
        return {
            p["name"]: str(p["value"])
            for p in self.parameters
            if p.get("value") is not None
        }

    def render(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """Return the template objects with every parameter substituted."""
        values = self.default_params()
        values.update({k: str(v) for k, v in params.items() if v is not None})

        missing = [
            p["name"]
            for p in self.parameters
            if p.get("required") and not values.get(p["name"])
        ]
        if missing:
            raise TemplateRenderError(
                f"Missing required template parameters: {', '.join(sorted(missing))}"
            )

        rendered = substitute_params(self.objects, values)
        unresolved = collect_params(rendered)
        if unresolved:
            raise TemplateRenderError(
                f"Undeclared template parameters: {', '.join(sorted(unresolved))}"
            )
        return rendered


@lru_cache(maxsize=4)
def load_template(path: str) -> UpgradeTemplate:
    return UpgradeTemplate.load(path)


def upgrade_params(spec: SyndesisSpec, target_version: str) -> Dict[str, str]:
    """Template parameters derived from an installation's declared spec."""
    params = {
        VERSION_PARAMETER: target_version,
        "SYNDESIS_REGISTRY": spec.registry or DEFAULT_REGISTRY,
        "ROUTE_HOSTNAME": spec.route_hostname,
        "IMAGE_STREAM_NAMESPACE": spec.image_stream_namespace,
    }
    db = spec.components.db if spec.components else None
    if db is not None:
        params["POSTGRESQL_USER"] = db.user
        params["POSTGRESQL_DATABASE"] = db.database
        if db.resources is not None:
            params["UPGRADE_VOLUME_CAPACITY"] = db.resources.volume_capacity
    return params


def render_upgrade_resources(
    spec: SyndesisSpec, target_version: str, template_path: str
) -> List[Dict[str, Any]]:
    """Render the raw upgrade manifests for an installation."""
    template = load_template(template_path)
    return template.render(upgrade_params(spec, str(target_version)))
