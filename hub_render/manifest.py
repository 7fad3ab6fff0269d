"""Representation of an application spec and its customization profiles.

An application spec describes every published version of an application. Each
version declares exactly one installation source, the parameters a user may
supply, the labels used to select installed resources, and a set of flavors.
A flavor is an ordered list of customization layers, and each layer offers
mutually exclusive options that contribute values overrides and parameters.

These objects are parsed from YAML documents and are immutable once loaded, so
they may be shared by concurrent render requests.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import aiofiles
import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import (
    InputException,
    LayerNotFoundError,
    LayerOptionNotFoundError,
)

__all__ = [
    "read_application_spec",
    "ApplicationSpec",
    "VersionedApplicationSpec",
    "Flavor",
    "CustomizationLayer",
    "LayerOption",
    "Parameter",
    "GithubChart",
    "HelmArchive",
    "ManifestsArchive",
    "InstallationSteps",
    "InstallationStep",
    "ResourceRef",
]

_LOGGER = logging.getLogger(__name__)


GITHUB_CHART_KEY = "githubChart"
HELM_ARCHIVE_KEY = "helmArchive"
MANIFESTS_ARCHIVE_KEY = "manifestsArchive"
INSTALLATION_STEPS_KEY = "installationSteps"


@dataclass(frozen=True)
class BaseSpec(DataClassDictMixin):
    """Base class for all spec objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


def _from_dict(cls: type[Any], doc: Any) -> Any:
    """Deserialize a spec object, reporting schema problems as input errors."""
    if not isinstance(doc, dict):
        raise InputException(f"Invalid {cls.__name__} expected a mapping: {doc}")
    try:
        return cls.from_dict(doc)
    except (MissingField, InvalidFieldValue) as err:
        raise InputException(f"Invalid {cls.__name__}: {err}") from err


@dataclass(frozen=True)
class ResourceRef(BaseSpec):
    """A reference to a named object in a namespace."""

    name: str
    """The name of the object."""

    namespace: str = ""
    """The namespace of the object."""


@dataclass(frozen=True)
class Parameter(BaseSpec):
    """A named input a user may supply when installing an application."""

    name: str
    """The name of the parameter, unique within its declaring scope."""

    display_name: str = field(metadata=field_options(alias="displayName"), default="")
    """Human readable name of the parameter."""

    description: str = ""
    """Description of the parameter."""

    default: str | None = None
    """Default value suggested to the user."""

    required: bool = False
    """Whether a non-empty value must be supplied."""

    user_facing: bool = field(metadata=field_options(alias="userFacing"), default=False)
    """Whether the parameter is shown to users."""


@dataclass(frozen=True)
class LayerOption(BaseSpec):
    """One concrete choice within a customization layer."""

    id: str
    """Identifier of the option, unique within its layer."""

    display_name: str = field(metadata=field_options(alias="displayName"), default="")
    """Human readable name of the option."""

    description: str = ""
    """Description of the option."""

    helm_values: str = field(metadata=field_options(alias="helmValues"), default="")
    """Values override fragment applied when the option is selected."""

    resource_dependencies: list[dict[str, Any]] = field(
        metadata=field_options(alias="resourceDependencies"), default_factory=list
    )
    """Resources that must exist for the option, checked by a validator."""

    parameters: list[Parameter] = field(default_factory=list)
    """Parameters introduced by selecting this option."""


@dataclass(frozen=True)
class CustomizationLayer(BaseSpec):
    """An installation dimension with a set of mutually exclusive options."""

    id: str
    """Identifier of the layer, unique within the flavor."""

    display_name: str = field(metadata=field_options(alias="displayName"), default="")
    """Human readable name of the layer."""

    description: str = ""
    """Description of the layer."""

    optional: bool = False
    """Whether the layer may be left unselected."""

    options: list[LayerOption] = field(default_factory=list)
    """The options available for this layer."""

    parameters: list[Parameter] = field(default_factory=list)
    """Parameters scoped to this layer."""

    def get_option(self, option_id: str | None) -> LayerOption:
        """Return the option with the specified id."""
        if option_id:
            for option in self.options:
                if option.id == option_id:
                    return option
        raise LayerOptionNotFoundError(self.id, option_id)


@dataclass(frozen=True)
class Flavor(BaseSpec):
    """A named customization profile composed of ordered layers."""

    name: str
    """The name of the flavor."""

    description: str = ""
    """Description of the flavor."""

    customization_layers: list[CustomizationLayer] = field(
        metadata=field_options(alias="customizationLayers"), default_factory=list
    )
    """Layers in declaration order."""

    parameters: list[Parameter] = field(default_factory=list)
    """Parameters declared by the flavor itself."""

    @property
    def required_layer_count(self) -> int:
        """Number of layers that must have a selected option."""
        return sum(1 for layer in self.customization_layers if not layer.optional)

    def get_layer(self, layer_id: str) -> CustomizationLayer:
        """Return the layer with the specified id."""
        for layer in self.customization_layers:
            if layer.id == layer_id:
                return layer
        raise LayerNotFoundError(layer_id, self.name)

    def get_layer_option(self, layer_id: str, option_id: str) -> LayerOption:
        """Return the option selected within the specified layer."""
        return self.get_layer(layer_id).get_option(option_id)


@dataclass(frozen=True)
class GithubChart(BaseSpec):
    """A helm chart stored in a directory of a github repository."""

    org: str
    """The github organization that owns the repository."""

    repo: str
    """The name of the repository."""

    ref: str = "master"
    """The git ref (branch, tag or commit) to render from."""

    directory: str = ""
    """Path of the chart directory within the repository."""

    @property
    def url(self) -> str:
        """Clone url of the repository."""
        return f"https://github.com/{self.org}/{self.repo}.git"

    def __str__(self) -> str:
        return f"github.com/{self.org}/{self.repo}@{self.ref}:{self.directory or '.'}"


@dataclass(frozen=True)
class TgzLocation(BaseSpec):
    """A gzipped tarball addressed by uri."""

    uri: str
    """Url or local path of the archive."""

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class HelmArchive(TgzLocation):
    """A packaged helm chart archive."""


@dataclass(frozen=True)
class ManifestsArchive(TgzLocation):
    """An archive of already rendered kubernetes manifests."""


StepSource = GithubChart | HelmArchive | ManifestsArchive

_STEP_SOURCE_TYPES: dict[str, type[GithubChart] | type[TgzLocation]] = {
    GITHUB_CHART_KEY: GithubChart,
    HELM_ARCHIVE_KEY: HelmArchive,
    MANIFESTS_ARCHIVE_KEY: ManifestsArchive,
}


@dataclass(frozen=True)
class InstallationStep:
    """One named unit of a multi-step install."""

    name: str
    """The step name, stamped onto every resource the step produces."""

    source: StepSource | None = None
    """Where the step's manifests come from."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "InstallationStep":
        """Parse an InstallationStep from a spec document."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid installation step: {doc}")
        name = doc.get("name") or ""
        source = _parse_installation_source(doc, f"step '{name}'", allow_steps=False)
        return cls(name=name, source=source)  # type: ignore[arg-type]


@dataclass(frozen=True)
class InstallationSteps:
    """An ordered list of installation steps."""

    steps: list[InstallationStep] = field(default_factory=list)
    """Steps in installation order."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "InstallationSteps":
        """Parse InstallationSteps from a spec document."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid {INSTALLATION_STEPS_KEY}: {doc}")
        return cls(
            steps=[InstallationStep.parse_doc(step) for step in doc.get("steps") or ()]
        )


InstallationSource = StepSource | InstallationSteps


def _parse_installation_source(
    doc: dict[str, Any], owner: str, allow_steps: bool = True
) -> InstallationSource | None:
    """Parse the single installation source variant set on a document."""
    keys = list(_STEP_SOURCE_TYPES)
    if allow_steps:
        keys.append(INSTALLATION_STEPS_KEY)
    found = [key for key in keys if doc.get(key) is not None]
    if not allow_steps and doc.get(INSTALLATION_STEPS_KEY) is not None:
        raise InputException(f"Nested installation steps are not supported in {owner}")
    if len(found) > 1:
        raise InputException(
            f"Expected exactly one installation source in {owner}, found {found}"
        )
    if not found:
        return None
    key = found[0]
    if key == INSTALLATION_STEPS_KEY:
        return InstallationSteps.parse_doc(doc[key])
    return _from_dict(_STEP_SOURCE_TYPES[key], doc[key])  # type: ignore[no-any-return]


@dataclass(frozen=True)
class VersionedApplicationSpec:
    """A single published version of an application."""

    version: str
    """The version identifier."""

    installation_spec: InstallationSource | None = None
    """Where the manifests for this version come from."""

    values_yaml: str = ""
    """Default values document for the version."""

    flavors: list[Flavor] = field(default_factory=list)
    """Customization profiles available for this version."""

    parameters: list[Parameter] = field(default_factory=list)
    """Parameters declared at the version scope."""

    required_labels: dict[str, str] = field(default_factory=dict)
    """Labels a rendered resource must carry to be installed."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "VersionedApplicationSpec":
        """Parse a VersionedApplicationSpec from a spec document."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid {cls.__name__}: {doc}")
        if not (version := doc.get("version")):
            raise InputException(f"Invalid {cls.__name__} missing version: {doc}")
        labels = doc.get("requiredLabels") or {}
        if not isinstance(labels, dict):
            raise InputException(
                f"Invalid {cls.__name__} requiredLabels must be a mapping: {labels}"
            )
        return cls(
            version=str(version),
            installation_spec=_parse_installation_source(doc, f"version '{version}'"),
            values_yaml=doc.get("valuesYaml") or "",
            flavors=[_from_dict(Flavor, flavor) for flavor in doc.get("flavors") or ()],
            parameters=[
                _from_dict(Parameter, param) for param in doc.get("parameters") or ()
            ],
            required_labels={str(k): str(v) for k, v in labels.items()},
        )

    def get_flavor(self, name: str) -> Flavor:
        """Return the flavor with the specified name."""
        for flavor in self.flavors:
            if flavor.name == name:
                return flavor
        raise InputException(f"Flavor '{name}' not found in version '{self.version}'")


@dataclass(frozen=True)
class ApplicationSpec:
    """An application and all of its published versions."""

    name: str
    """The name of the application."""

    display_name: str = ""
    """Human readable name of the application."""

    description: str = ""
    """Description of the application."""

    versions: list[VersionedApplicationSpec] = field(default_factory=list)
    """Published versions."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ApplicationSpec":
        """Parse an ApplicationSpec from a spec document."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid {cls.__name__}: {doc}")
        if not (name := doc.get("name")):
            raise InputException(f"Invalid {cls.__name__} missing name: {doc}")
        return cls(
            name=name,
            display_name=doc.get("displayName") or "",
            description=doc.get("description") or "",
            versions=[
                VersionedApplicationSpec.parse_doc(version)
                for version in doc.get("versions") or ()
            ],
        )

    def get_version(self, version: str) -> VersionedApplicationSpec:
        """Return the spec for the specified version."""
        for versioned_spec in self.versions:
            if versioned_spec.version == version:
                return versioned_spec
        raise InputException(f"Version '{version}' not found in '{self.name}'")


async def read_application_spec(spec_path: Path) -> ApplicationSpec:
    """Return the contents of an application spec file."""
    async with aiofiles.open(str(spec_path)) as spec_file:
        content = await spec_file.read()
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse spec file {spec_path}: {err}") from err
    _LOGGER.debug("Loaded application spec %s", spec_path)
    return ApplicationSpec.parse_doc(doc)
