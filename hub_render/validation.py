"""Validation of render inputs against a versioned application spec."""

from collections.abc import Callable
import logging
from typing import Any

from .exceptions import (
    IncorrectNumberOfInputLayersError,
    LayerOptionNotFoundError,
    MissingInputForRequiredLayerError,
    MissingInputForRequiredParameterError,
    UnrecognizedParameterError,
)
from .inputs import ValuesInputs
from .manifest import (
    CustomizationLayer,
    LayerOption,
    Parameter,
    VersionedApplicationSpec,
)

__all__ = [
    "ValidateResourceDependencies",
    "noop_validate_resources",
    "validate_inputs",
    "selected_options",
    "parameter_namespace",
]

_LOGGER = logging.getLogger(__name__)


ValidateResourceDependencies = Callable[[list[dict[str, Any]]], None]
"""Checks the resource dependencies of a selected option, raising on failure."""


def noop_validate_resources(dependencies: list[dict[str, Any]]) -> None:
    """A dependency validator that accepts everything."""


def _find_option_id(layer: CustomizationLayer, inputs: ValuesInputs) -> str | None:
    """Return the option id of the first input that selects the layer."""
    return next(
        (
            layer_input.option_id
            for layer_input in inputs.layers
            if layer_input.layer_id == layer.id
        ),
        None,
    )


def selected_options(
    inputs: ValuesInputs,
    validate: ValidateResourceDependencies | None = None,
) -> list[LayerOption]:
    """Resolve the selected option of each flavor layer, in declaration order.

    Optional layers without a resolvable option are skipped. If a validator is
    given it is called with the dependencies of every option as it is resolved.
    """
    options: list[LayerOption] = []
    for layer in inputs.flavor_layers:
        option_id = _find_option_id(layer, inputs)
        try:
            option = layer.get_option(option_id)
        except LayerOptionNotFoundError as err:
            if not layer.optional:
                raise MissingInputForRequiredLayerError(layer.id, err) from err
            _LOGGER.debug("Skipping optional layer %s", layer.id)
            continue
        options.append(option)
        if validate is not None:
            validate(option.resource_dependencies)
    return options


def parameter_namespace(
    spec: VersionedApplicationSpec,
    inputs: ValuesInputs,
    options: list[LayerOption],
) -> dict[str, Parameter]:
    """Return all declared parameters keyed by name.

    Spec parameters are overridden by flavor parameters, which are overridden
    by the parameters of the selected options.
    """
    params: dict[str, Parameter] = {}
    for param in spec.parameters:
        params[param.name] = param
    for param in inputs.flavor_parameters:
        params[param.name] = param
    for option in options:
        for param in option.parameters:
            params[param.name] = param
    return params


def validate_inputs(
    inputs: ValuesInputs,
    spec: VersionedApplicationSpec,
    validate: ValidateResourceDependencies = noop_validate_resources,
) -> None:
    """Validate the layer selections and parameters of the inputs.

    Raises the error from the first failing check.
    """
    required_layers = inputs.flavor.required_layer_count if inputs.flavor else 0
    if len(inputs.layers) < required_layers:
        raise IncorrectNumberOfInputLayersError(len(inputs.layers), required_layers)

    options = selected_options(inputs, validate)

    all_params = parameter_namespace(spec, inputs, options)
    for name in sorted(all_params):
        if all_params[name].required and not inputs.params.get(name):
            raise MissingInputForRequiredParameterError(name)
    for name in inputs.params:
        if name not in all_params:
            raise UnrecognizedParameterError(name)
