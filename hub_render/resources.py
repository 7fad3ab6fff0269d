"""Conversion between rendered manifests and structured kubernetes resources.

A rendered manifest is text that may contain multiple YAML documents. The
resource list holds each document as a mutable `Resource` so that labels can
be inspected or updated before the resources are serialized again.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import logging
from typing import Any

import yaml

from .exceptions import FailedToConvertManifestsError

__all__ = [
    "Manifest",
    "Resource",
    "NamedResource",
    "resource_list",
    "manifests_from_resources",
    "with_labels",
]

_LOGGER = logging.getLogger(__name__)

LIST_KIND = "List"


@dataclass
class Manifest:
    """A rendered text document describing one or more resources."""

    name: str
    """The name of the template or file the manifest was rendered from."""

    content: str
    """YAML content, possibly containing multiple documents."""


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


class Resource:
    """An unstructured kubernetes object."""

    def __init__(self, obj: dict[str, Any]) -> None:
        """Initialize Resource."""
        self._obj = obj

    @property
    def obj(self) -> dict[str, Any]:
        """The underlying object."""
        return self._obj

    @property
    def kind(self) -> str:
        return str(self._obj.get("kind", ""))

    @property
    def api_version(self) -> str:
        return str(self._obj.get("apiVersion", ""))

    @property
    def metadata(self) -> dict[str, Any]:
        return self._obj.get("metadata") or {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name", ""))

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace")

    @property
    def named_resource(self) -> NamedResource:
        return NamedResource(kind=self.kind, namespace=self.namespace, name=self.name)

    @property
    def labels(self) -> dict[str, str]:
        """A copy of the labels on the object."""
        return dict(self.metadata.get("labels") or {})

    @labels.setter
    def labels(self, labels: Mapping[str, str]) -> None:
        if not isinstance(self._obj.get("metadata"), dict):
            self._obj["metadata"] = {}
        self._obj["metadata"]["labels"] = dict(labels)

    def set_label(self, key: str, value: str) -> None:
        """Set a label, creating the labels mapping if needed."""
        labels = self.labels
        labels[key] = value
        self.labels = labels

    def has_labels(self, required: Mapping[str, str]) -> bool:
        """Return True if the object carries every required label."""
        labels = self.labels
        return all(labels.get(key) == value for key, value in required.items())

    def yaml(self) -> str:
        """Return the object as a YAML document."""
        return yaml.dump(self._obj, sort_keys=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self._obj == other._obj

    def __repr__(self) -> str:
        return f"Resource({self.named_resource})"


def _parse_doc(manifest: Manifest, doc: Any) -> list[Resource]:
    """Convert a single parsed document into resources."""
    if not isinstance(doc, dict):
        raise FailedToConvertManifestsError(
            manifest.name, f"expected a mapping, found {type(doc).__name__}"
        )
    if not doc.get("kind") or not doc.get("apiVersion"):
        raise FailedToConvertManifestsError(
            manifest.name, f"object is missing kind or apiVersion: {doc}"
        )
    if doc["kind"] == LIST_KIND:
        resources: list[Resource] = []
        for item in doc.get("items") or ():
            resources.extend(_parse_doc(manifest, item))
        return resources
    return [Resource(doc)]


def resource_list(manifests: Iterable[Manifest]) -> list[Resource]:
    """Parse the manifests into resources, preserving order."""
    resources: list[Resource] = []
    for manifest in manifests:
        try:
            docs = list(yaml.safe_load_all(manifest.content))
        except yaml.YAMLError as err:
            raise FailedToConvertManifestsError(manifest.name, str(err)) from err
        for doc in docs:
            if doc is None:
                continue
            resources.extend(_parse_doc(manifest, doc))
    _LOGGER.debug("Converted manifests to %d resources", len(resources))
    return resources


def manifests_from_resources(resources: Iterable[Resource]) -> list[Manifest]:
    """Serialize each resource as its own manifest, preserving order."""
    return [
        Manifest(name=str(resource.named_resource), content=resource.yaml())
        for resource in resources
    ]


def with_labels(
    resources: Iterable[Resource], labels: Mapping[str, str]
) -> list[Resource]:
    """Return the resources that carry every one of the labels."""
    return [resource for resource in resources if resource.has_labels(labels)]
