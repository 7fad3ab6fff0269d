"""The per-request inputs used to render an application.

A `ValuesInputs` bundle is built fresh for every render request and threaded
through each stage of the pipeline. Stages that change it return a modified
copy rather than mutating the caller's object.
"""

from dataclasses import dataclass, field
from typing import Any

from .manifest import CustomizationLayer, Flavor, Parameter, ResourceRef

__all__ = [
    "LayerInput",
    "ValuesInputs",
]

# Template context names for each field, as written in existing application specs.
_CONTEXT_ALIASES = {
    "name": "Name",
    "install_namespace": "InstallNamespace",
    "mesh_ref": "MeshRef",
    "flavor": "Flavor",
    "layers": "Layers",
    "params": "Params",
    "spec_defined_values": "SpecDefinedValues",
    "user_defined_values": "UserDefinedValues",
}


@dataclass(frozen=True)
class LayerInput:
    """A user selection of an option within a customization layer."""

    layer_id: str
    """The id of the selected layer."""

    option_id: str
    """The id of the option selected within the layer."""


@dataclass
class ValuesInputs:
    """Inputs to a single render request."""

    name: str
    """Release name of the installed application."""

    install_namespace: str
    """Namespace the application is installed into."""

    flavor: Flavor | None = None
    """The selected flavor, treated as having no layers when unset."""

    layers: list[LayerInput] = field(default_factory=list)
    """Layer option selections, in the order supplied by the caller."""

    mesh_ref: ResourceRef | None = None
    """The mesh the application is installed for."""

    user_defined_values: str = ""
    """Values document supplied by the user, applied last."""

    spec_defined_values: str = ""
    """Values document from the versioned spec, applied first."""

    params: dict[str, str] = field(default_factory=dict)
    """Parameter values keyed by the names declared on the spec, flavor or options."""

    @property
    def flavor_layers(self) -> list[CustomizationLayer]:
        """Customization layers of the selected flavor."""
        return list(self.flavor.customization_layers) if self.flavor else []

    @property
    def flavor_parameters(self) -> list[Parameter]:
        """Parameters declared by the selected flavor."""
        return list(self.flavor.parameters) if self.flavor else []

    def template_context(self) -> dict[str, Any]:
        """Return the data available to template expressions in the inputs.

        Each field is available under its snake_case name and under the
        CamelCase name used by existing application specs, e.g.
        `{{ install_namespace }}` and `{{ .InstallNamespace }}`.
        """
        mesh_name = self.mesh_ref.name if self.mesh_ref else ""
        mesh_namespace = self.mesh_ref.namespace if self.mesh_ref else ""
        flavor_name = self.flavor.name if self.flavor else ""
        values: dict[str, Any] = {
            "name": self.name,
            "install_namespace": self.install_namespace,
            "mesh_ref": {
                "name": mesh_name,
                "namespace": mesh_namespace,
                "Name": mesh_name,
                "Namespace": mesh_namespace,
            },
            "flavor": {"name": flavor_name, "Name": flavor_name},
            "layers": [
                {
                    "layer_id": layer.layer_id,
                    "option_id": layer.option_id,
                    "LayerId": layer.layer_id,
                    "OptionId": layer.option_id,
                }
                for layer in self.layers
            ],
            "params": dict(self.params),
            "spec_defined_values": self.spec_defined_values,
            "user_defined_values": self.user_defined_values,
        }
        for key, alias in _CONTEXT_ALIASES.items():
            values[alias] = values[key]
        return values
