"""Configuration objects for hub-render."""

from dataclasses import dataclass, field


@dataclass
class HelmConfig:
    """Configuration for rendering charts with the helm binary."""

    helm_binary: str = "helm"
    """Path or name of the helm executable."""

    skip_tests: bool = True
    """Don't render chart test hooks."""

    skip_crds: bool = False
    """Don't render CRDs from the chart crds/ directory."""

    timeout: float = 60.0
    """Seconds before a helm invocation is abandoned."""


@dataclass
class FetchConfig:
    """Configuration for retrieving remote archives."""

    timeout: float = 30.0
    """Seconds before an archive download is abandoned."""


@dataclass
class RenderConfig:
    """Configuration for the manifest renderer and its collaborators."""

    helm: HelmConfig = field(default_factory=HelmConfig)

    fetch: FetchConfig = field(default_factory=FetchConfig)

    filter_by_label: bool = True
    """Restrict output to resources carrying the application spec's required labels."""
