"""Library for computing the resources installed for an application version.

Rendering is a fixed pipeline that stops at the first error:

1. Validate the layer selections and parameters against the application spec.
2. Expand template expressions in the input values and parameters.
3. Acquire manifests from the installation source of the application spec. Chart sources
   are rendered with the coalesced values document; installation steps are
   acquired in order and every resource is labeled with its step name.
4. Keep only the resources carrying the labels required by the application spec.

```python
from hub_render.inputs import ValuesInputs
from hub_render.render import ManifestRenderer

renderer = ManifestRenderer()
resources = await renderer.compute_resources_for_application(
    ValuesInputs(name="demo", install_namespace="app", flavor=flavor), spec
)
for resource in resources:
    print(f"Rendered {resource.named_resource}")
```
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
import contextvars
import logging
from time import perf_counter
import warnings

from .config import RenderConfig
from .exceptions import (
    DuplicateStepNameError,
    FailedToRenderManifestsError,
    HubRenderException,
    InvalidInstallationStepsError,
    MissingInstallSpecError,
)
from .helm import ChartRenderer, HelmChartRenderer
from .inputs import ValuesInputs
from .manifest import (
    GithubChart,
    HelmArchive,
    InstallationStep,
    InstallationSteps,
    ManifestsArchive,
    StepSource,
    VersionedApplicationSpec,
)
from .resources import (
    Manifest,
    Resource,
    manifests_from_resources,
    resource_list,
    with_labels,
)
from .source import ArchiveManifestFetcher, ManifestFetcher
from .template import exec_input_values_templates
from .validation import (
    ValidateResourceDependencies,
    noop_validate_resources,
    validate_inputs,
)
from .values import compute_value_overrides

__all__ = [
    "ManifestRenderer",
    "compute_resources_for_application",
    "get_manifests_from_application_spec",
    "filter_by_label",
    "INSTALLATION_STEP_LABEL",
]

_LOGGER = logging.getLogger(__name__)

INSTALLATION_STEP_LABEL = "service-mesh-hub.solo.io/installation_step"

_STAGES: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "render_stages", default=()
)


@contextmanager
def _stage(name: str) -> Iterator[str]:
    """Time a pipeline stage, yielding its path such as `render demo > crds`."""
    path = (*_STAGES.get(), name)
    token = _STAGES.set(path)
    label = " > ".join(path)
    start = perf_counter()
    try:
        yield label
    finally:
        _STAGES.reset(token)
        _LOGGER.debug("Stage %s took %0.3fs", label, perf_counter() - start)


async def _render_chart(
    source: GithubChart | HelmArchive,
    inputs: ValuesInputs,
    chart_renderer: ChartRenderer,
) -> list[Manifest]:
    """Render a chart source with the coalesced values for the inputs."""
    values = compute_value_overrides(inputs)
    _LOGGER.info("Rendering %s with values:\n%s", source, values)
    try:
        return await chart_renderer.render(
            source,
            values,
            inputs.name,
            inputs.install_namespace,
            "",
        )
    except HubRenderException as err:
        wrapped = FailedToRenderManifestsError(
            err,
            source=str(source),
            values=values,
            release_name=inputs.name,
            namespace=inputs.install_namespace,
        )
        _LOGGER.error(
            "%s (source=%s, releaseName=%s, namespace=%s, kubeVersion='')\nvalues:\n%s",
            wrapped,
            source,
            inputs.name,
            inputs.install_namespace,
            values,
        )
        raise wrapped from err


async def _fetch_archive(
    source: ManifestsArchive,
    inputs: ValuesInputs,
    manifest_fetcher: ManifestFetcher,
) -> list[Manifest]:
    """Fetch the manifests from a raw manifest archive."""
    try:
        return await manifest_fetcher.fetch_manifests(source.uri)
    except HubRenderException as err:
        wrapped = FailedToRenderManifestsError(
            err,
            source=str(source),
            release_name=inputs.name,
            namespace=inputs.install_namespace,
        )
        _LOGGER.error(
            "%s (manifestsArchiveUrl=%s, releaseName=%s, namespace=%s)",
            wrapped,
            source.uri,
            inputs.name,
            inputs.install_namespace,
        )
        raise wrapped from err


async def _manifests_from_source(
    source: StepSource | None,
    inputs: ValuesInputs,
    chart_renderer: ChartRenderer,
    manifest_fetcher: ManifestFetcher,
    owner: str,
) -> list[Manifest]:
    """Acquire manifests from a chart, chart archive or manifest archive."""
    if isinstance(source, (GithubChart, HelmArchive)):
        return await _render_chart(source, inputs, chart_renderer)
    if isinstance(source, ManifestsArchive):
        return await _fetch_archive(source, inputs, manifest_fetcher)
    raise MissingInstallSpecError(owner)


def _check_step_names(steps: list[InstallationStep]) -> None:
    """Verify every step is named and no name is repeated."""
    if not steps:
        raise InvalidInstallationStepsError(
            "must provide at least one installation step"
        )
    seen: set[str] = set()
    for step in steps:
        if not step.name:
            raise InvalidInstallationStepsError("step must be named")
        if step.name in seen:
            raise DuplicateStepNameError(step.name)
        seen.add(step.name)


async def _manifests_from_steps(
    steps: InstallationSteps,
    inputs: ValuesInputs,
    chart_renderer: ChartRenderer,
    manifest_fetcher: ManifestFetcher,
) -> list[Manifest]:
    """Acquire the manifests of each step, labeling resources with the step name."""
    _check_step_names(steps.steps)
    combined: list[Manifest] = []
    for step in steps.steps:
        with _stage(step.name) as stage:
            try:
                manifests = await _manifests_from_source(
                    step.source,
                    inputs,
                    chart_renderer,
                    manifest_fetcher,
                    f"step '{step.name}'",
                )
            except HubRenderException:
                _LOGGER.error("Installation step failed: %s", stage)
                raise
            resources = resource_list(manifests)
            for resource in resources:
                resource.set_label(INSTALLATION_STEP_LABEL, step.name)
            combined.extend(manifests_from_resources(resources))
    return combined


async def get_manifests_from_application_spec(
    inputs: ValuesInputs,
    spec: VersionedApplicationSpec,
    chart_renderer: ChartRenderer | None = None,
    manifest_fetcher: ManifestFetcher | None = None,
) -> list[Manifest]:
    """Acquire the manifests for the installation source of the application spec."""
    chart_renderer = chart_renderer or HelmChartRenderer()
    manifest_fetcher = manifest_fetcher or ArchiveManifestFetcher()
    source = spec.installation_spec
    if isinstance(source, InstallationSteps):
        return await _manifests_from_steps(
            source, inputs, chart_renderer, manifest_fetcher
        )
    return await _manifests_from_source(
        source,
        inputs,
        chart_renderer,
        manifest_fetcher,
        f"version '{spec.version}'",
    )


def filter_by_label(
    spec: VersionedApplicationSpec, resources: Iterable[Resource]
) -> list[Resource]:
    """Return the resources carrying every label required by the application spec."""
    if labels := spec.required_labels:
        _LOGGER.info("Filtering installed resources by label %s", labels)
        return with_labels(resources, labels)
    return list(resources)


class ManifestRenderer:
    """Computes the resources that make up an install of an application version."""

    def __init__(
        self,
        validate: ValidateResourceDependencies = noop_validate_resources,
        chart_renderer: ChartRenderer | None = None,
        manifest_fetcher: ManifestFetcher | None = None,
        config: RenderConfig | None = None,
    ) -> None:
        """Initialize ManifestRenderer."""
        self._config = config or RenderConfig()
        self._validate = validate
        self._chart_renderer = chart_renderer or HelmChartRenderer(self._config.helm)
        self._manifest_fetcher = manifest_fetcher or ArchiveManifestFetcher(
            self._config.fetch
        )

    async def compute_resources_for_application(
        self, inputs: ValuesInputs, spec: VersionedApplicationSpec
    ) -> list[Resource]:
        """Return the exact set of resources to install for the inputs and spec."""
        with _stage(f"render {inputs.name}"):
            with _stage("validate"):
                validate_inputs(inputs, spec, self._validate)
            with _stage("templates"):
                inputs = exec_input_values_templates(inputs)
            with _stage("manifests"):
                manifests = await get_manifests_from_application_spec(
                    inputs, spec, self._chart_renderer, self._manifest_fetcher
                )
            resources = resource_list(manifests)
            if not self._config.filter_by_label:
                return resources
            return filter_by_label(spec, resources)


async def compute_resources_for_application(
    inputs: ValuesInputs, spec: VersionedApplicationSpec
) -> list[Resource]:
    """Return the resources to install for the inputs and spec.

    Deprecated: use `ManifestRenderer.compute_resources_for_application`.
    """
    warnings.warn(
        "compute_resources_for_application is deprecated, use "
        "ManifestRenderer.compute_resources_for_application",
        DeprecationWarning,
        stacklevel=2,
    )
    renderer = ManifestRenderer(noop_validate_resources)
    return await renderer.compute_resources_for_application(inputs, spec)
