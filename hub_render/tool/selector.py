"""Library for the flags that select what to render."""

from argparse import (
    Action,
    ArgumentError,
    ArgumentParser,
    BooleanOptionalAction,
    Namespace,
)
import logging
import pathlib
from typing import Any

import aiofiles

from hub_render.config import HelmConfig, RenderConfig
from hub_render.exceptions import InputException
from hub_render.inputs import LayerInput, ValuesInputs
from hub_render.manifest import (
    ResourceRef,
    VersionedApplicationSpec,
    read_application_spec,
)

_LOGGER = logging.getLogger(__name__)


def _split_pair(action: Action, value: str) -> tuple[str, str]:
    if "=" not in value:
        raise ArgumentError(action, f"Expected key=value format but got '{value}'")
    key, _, val = value.partition("=")
    if not key:
        raise ArgumentError(action, f"Expected non-empty key in '{value}'")
    return key, val


class LayerAppendAction(Action):
    """Append a layer=option pair to the argument list."""

    def __call__(
        self,
        parser: ArgumentParser,
        namespace: Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        result = getattr(namespace, self.dest) or []
        layer_id, option_id = _split_pair(self, values)
        result.append(LayerInput(layer_id=layer_id, option_id=option_id))
        setattr(namespace, self.dest, result)


class ParamAppendAction(Action):
    """Add a key=value pair to the argument dict."""

    def __call__(
        self,
        parser: ArgumentParser,
        namespace: Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        result = getattr(namespace, self.dest) or {}
        key, value = _split_pair(self, values)
        result[key] = value
        setattr(namespace, self.dest, result)


def add_selection_flags(args: ArgumentParser) -> None:
    """Add flags that select the spec version, flavor and inputs."""
    args.add_argument(
        "spec_file",
        help="Path to the application spec YAML file",
        type=pathlib.Path,
    )
    args.add_argument(
        "--version",
        type=str,
        required=True,
        help="The application version to render",
    )
    args.add_argument(
        "--flavor",
        type=str,
        default=None,
        help="The flavor of the version to render, defaults to the only flavor",
    )
    args.add_argument(
        "--name",
        type=str,
        required=True,
        help="Release name of the installed application",
    )
    args.add_argument(
        "--namespace",
        "-n",
        type=str,
        required=True,
        help="Namespace the application is installed into",
    )
    args.add_argument(
        "--layer",
        dest="layers",
        action=LayerAppendAction,
        help="Select an option for a layer in layer=option format, may be repeated",
    )
    args.add_argument(
        "--param",
        dest="params",
        action=ParamAppendAction,
        help="Set a parameter value in key=value format, may be repeated",
    )
    args.add_argument(
        "--values",
        dest="values_file",
        type=pathlib.Path,
        default=None,
        help="Path to a YAML file with user defined values overrides",
    )
    args.add_argument(
        "--mesh-name",
        type=str,
        default=None,
        help="Name of the mesh the application is installed for",
    )
    args.add_argument(
        "--mesh-namespace",
        type=str,
        default="",
        help="Namespace of the mesh the application is installed for",
    )
    args.add_argument(
        "--helm-binary",
        type=str,
        default="helm",
        help="The helm executable used to render charts",
    )
    args.add_argument(
        "--filter-labels",
        default=True,
        action=BooleanOptionalAction,
        help="Only output resources with the labels required by the application spec",
    )


def render_config(**kwargs: Any) -> RenderConfig:
    """Build the renderer configuration from the command line flags."""
    return RenderConfig(
        helm=HelmConfig(helm_binary=kwargs.get("helm_binary") or "helm"),
        filter_by_label=kwargs.get("filter_labels", True),
    )


async def build_inputs(
    spec_file: pathlib.Path,
    version: str,
    name: str,
    namespace: str,
    **kwargs: Any,
) -> tuple[ValuesInputs, VersionedApplicationSpec]:
    """Load the spec and build the render inputs from the command line flags."""
    app_spec = await read_application_spec(spec_file)
    versioned_spec = app_spec.get_version(version)

    flavor = None
    if flavor_name := kwargs.get("flavor"):
        flavor = versioned_spec.get_flavor(flavor_name)
    elif len(versioned_spec.flavors) == 1:
        flavor = versioned_spec.flavors[0]
    elif versioned_spec.flavors:
        raise InputException(
            f"Version '{version}' has multiple flavors, select one with --flavor"
        )

    user_values = ""
    if values_file := kwargs.get("values_file"):
        async with aiofiles.open(str(values_file)) as user_file:
            user_values = await user_file.read()

    mesh_ref = None
    if mesh_name := kwargs.get("mesh_name"):
        mesh_ref = ResourceRef(
            name=mesh_name, namespace=kwargs.get("mesh_namespace") or ""
        )

    inputs = ValuesInputs(
        name=name,
        install_namespace=namespace,
        flavor=flavor,
        layers=kwargs.get("layers") or [],
        mesh_ref=mesh_ref,
        user_defined_values=user_values,
        spec_defined_values=versioned_spec.values_yaml,
        params=kwargs.get("params") or {},
    )
    _LOGGER.debug("Built inputs for %s version %s", app_spec.name, version)
    return inputs, versioned_spec
