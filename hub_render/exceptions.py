"""Exceptions related to hub-render."""

from enum import Enum
from typing import Any

__all__ = [
    "HubRenderException",
    "InputException",
    "RenderException",
    "CommandException",
    "FetchException",
]


class ValuesSource(str, Enum):
    """The origin of a values document, used when reporting parse errors."""

    SPEC = "spec"
    LAYER = "layer"
    PARAM = "param"
    USER = "user"


class HubRenderException(Exception):
    """Generic base exception used for this library."""


class InputException(HubRenderException):
    """Raised when the input spec or values are not formatted as expected."""


class RenderException(HubRenderException):
    """Raised when manifests could not be produced from valid inputs."""


class CommandException(HubRenderException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class FetchException(HubRenderException):
    """Raised when a chart or manifest source could not be retrieved."""


class MissingInstallSpecError(InputException):
    """Raised when no installation source variant is set."""

    def __init__(self, owner: str | None = None) -> None:
        message = "missing installation spec"
        if owner:
            message = f"{message} for {owner}"
        super().__init__(message)
        self.owner = owner


class LayerNotFoundError(InputException):
    """Raised when a flavor does not declare the requested layer."""

    def __init__(self, layer_id: str, flavor_name: str) -> None:
        super().__init__(f"Layer '{layer_id}' not found in flavor '{flavor_name}'")
        self.layer_id = layer_id
        self.flavor_name = flavor_name


class LayerOptionNotFoundError(InputException):
    """Raised when a layer has no option with the requested id."""

    def __init__(self, layer_id: str, option_id: str | None) -> None:
        super().__init__(
            f"Option '{option_id or ''}' not found in layer '{layer_id}'"
        )
        self.layer_id = layer_id
        self.option_id = option_id


class MissingInputForRequiredLayerError(InputException):
    """Raised when a required layer has no resolvable option."""

    def __init__(self, layer_id: str, cause: Exception) -> None:
        super().__init__(
            f"error retrieving input for required layer '{layer_id}': {cause}"
        )
        self.layer_id = layer_id
        self.cause = cause


class MissingInputForRequiredParameterError(InputException):
    """Raised when a required parameter has no value."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing input for required parameter {name}")
        self.name = name


class UnrecognizedParameterError(InputException):
    """Raised when an input parameter is not declared anywhere."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Parameter {name} is not specified on the selected versioned "
            "application spec, flavor, or layer option"
        )
        self.name = name


class IncorrectNumberOfInputLayersError(InputException):
    """Raised when fewer layer inputs are supplied than required layers."""

    def __init__(self, supplied: int, required: int) -> None:
        super().__init__(
            f"incorrect number of input layers: got {supplied}, "
            f"flavor requires at least {required}"
        )
        self.supplied = supplied
        self.required = required


class ValuesParseError(InputException):
    """Raised when a values document or parameter path cannot be parsed."""

    def __init__(self, source: ValuesSource, content: Any, message: str) -> None:
        super().__init__(f"Unable to parse {source.value} values: {message}")
        self.source = source
        self.content = content


class InvalidInstallationStepsError(InputException):
    """Raised when the installation steps of a spec are malformed."""


class DuplicateStepNameError(InvalidInstallationStepsError):
    """Raised when two installation steps share the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"step names must be unique; {name} duplicated")
        self.name = name


class ResourceDependencyError(InputException):
    """Raised by dependency validators when a layer option dependency is unmet."""


class FailedToRenderManifestsError(RenderException):
    """Raised when the rendering engine or archive fetch fails."""

    def __init__(
        self,
        cause: Exception,
        *,
        source: str,
        release_name: str,
        namespace: str,
        values: str | None = None,
    ) -> None:
        super().__init__(f"error rendering manifests from {source}: {cause}")
        self.cause = cause
        self.source = source
        self.release_name = release_name
        self.namespace = namespace
        self.values = values


class FailedToConvertManifestsError(RenderException):
    """Raised when rendered manifests cannot be converted to resources."""

    def __init__(self, manifest_name: str, message: str) -> None:
        super().__init__(
            f"error converting manifest '{manifest_name}' to raw resources: {message}"
        )
        self.manifest_name = manifest_name


class FailedRenderValueTemplatesError(RenderException):
    """Raised when a template expression in the input values fails."""

    def __init__(self, field_name: str, cause: Exception) -> None:
        super().__init__(
            f"error rendering input value templates in {field_name}: {cause}"
        )
        self.field_name = field_name
        self.cause = cause
