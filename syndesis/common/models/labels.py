from typing import Dict


class ResourceLabels:
    SYNDESIS_DOMAIN: str = "syndesis.io/"

    SYNDESIS_APP_LABEL = SYNDESIS_DOMAIN + "app"

    SYNDESIS_TYPE_LABEL = SYNDESIS_DOMAIN + "type"

    SYNDESIS_RESOURCE_HASH_ANNOTATION = SYNDESIS_DOMAIN + "resource-hash"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    APPLICATION_NAME = "syndesis"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_syndesis_app(self) -> "Labels":
        return self.include(self.SYNDESIS_APP_LABEL, self.APPLICATION_NAME)

    def include_syndesis_type(self, type: str) -> "Labels":
        return self.include(self.SYNDESIS_TYPE_LABEL, type)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def include_kubernetes_part_of(self) -> "Labels":
        return self.include(self.KUBERNETES_PART_OF_LABEL, self.APPLICATION_NAME)

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def generate_default_labels(
        cls,
        instance_name: str,
        resource_type: str,
        managed_by: str,
    ) -> "Labels":
        labels = Labels()
        return (
            labels.include_syndesis_app()
            .include_syndesis_type(resource_type)
            .include_kubernetes_instance(instance_name)
            .include_kubernetes_part_of()
            .include_kubernetes_managed_by(managed_by)
        )
