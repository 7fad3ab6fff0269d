"""Library for running `helm template` to produce the manifests of a chart.

A chart may come from a packaged archive, which helm reads directly from its
url or local path, or from a directory of a github repository, which is cloned
locally first. The values document computed for the render request is written
to a temporary file and passed with `--values`.

```python
from hub_render.helm import HelmChartRenderer
from hub_render.manifest import HelmArchive

renderer = HelmChartRenderer()
manifests = await renderer.render(
    HelmArchive(uri="https://example.com/charts/podinfo-6.0.0.tgz"),
    values="replicaCount: 2\n",
    release_name="podinfo",
    namespace="apps",
)
for manifest in manifests:
    print(f"Rendered {manifest.name}")
```
"""

from abc import ABC, abstractmethod
import logging
from pathlib import Path
import re
import tempfile

import aiofiles

from . import command
from .config import HelmConfig
from .exceptions import HelmException
from .manifest import GithubChart, HelmArchive
from .resources import Manifest
from .source import SourceCache, fetch_github_chart

__all__ = [
    "ChartRenderer",
    "HelmChartRenderer",
    "split_rendered_manifests",
]

_LOGGER = logging.getLogger(__name__)

ChartSource = GithubChart | HelmArchive

_DOC_SEPARATOR_RE = re.compile(r"^---\s*$", re.MULTILINE)
_SOURCE_COMMENT_RE = re.compile(r"^# Source: (?P<name>.+)$", re.MULTILINE)


class ChartRenderer(ABC):
    """A rendering engine that turns a chart and values into manifests."""

    @abstractmethod
    async def render(
        self,
        source: ChartSource,
        values: str,
        release_name: str,
        namespace: str,
        kube_version: str = "",
    ) -> list[Manifest]:
        """Render the chart, returning the manifests in template order.

        An empty kube_version defers to the engine's default.
        """


def split_rendered_manifests(output: str, default_name: str) -> list[Manifest]:
    """Split `helm template` output into one manifest per document.

    Each manifest is named after the template it came from when helm reports it.
    """
    manifests: list[Manifest] = []
    for index, doc in enumerate(_DOC_SEPARATOR_RE.split(output)):
        if not doc.strip():
            continue
        if match := _SOURCE_COMMENT_RE.search(doc):
            name = match.group("name").strip()
        else:
            name = f"{default_name}-{index}"
        manifests.append(Manifest(name=name, content=doc.lstrip("\n")))
    return manifests


class HelmChartRenderer(ChartRenderer):
    """Renders charts with the helm command line tool."""

    def __init__(
        self,
        config: HelmConfig | None = None,
        source_cache: SourceCache | None = None,
    ) -> None:
        """Initialize HelmChartRenderer."""
        self._config = config or HelmConfig()
        self._source_cache = source_cache

    async def _chart_name(self, source: ChartSource) -> str:
        """Return the chart argument used for the helm template command."""
        if isinstance(source, GithubChart):
            return str(await fetch_github_chart(source, self._source_cache))
        if isinstance(source, HelmArchive):
            return source.uri
        raise HelmException(f"Unsupported chart source {source!r}")

    def _template_args(self, kube_version: str) -> list[str]:
        args: list[str] = []
        if self._config.skip_tests:
            args.append("--skip-tests")
        if self._config.skip_crds:
            args.append("--skip-crds")
        else:
            args.append("--include-crds")
        if kube_version:
            args.extend(["--kube-version", kube_version])
        return args

    async def render(
        self,
        source: ChartSource,
        values: str,
        release_name: str,
        namespace: str,
        kube_version: str = "",
    ) -> list[Manifest]:
        """Render the chart with `helm template`."""
        chart_name = await self._chart_name(source)
        with tempfile.TemporaryDirectory(prefix="hub-render-") as tmp_dir:
            values_path = Path(tmp_dir) / f"{release_name}-values.yaml"
            async with aiofiles.open(values_path, mode="w") as values_file:
                await values_file.write(values)
            args: list[str] = [
                self._config.helm_binary,
                "template",
                release_name,
                chart_name,
                "--namespace",
                namespace,
                "--values",
                str(values_path),
            ]
            args.extend(self._template_args(kube_version))
            output = await command.run(
                command.Command(args, exc=HelmException, timeout=self._config.timeout)
            )
        manifests = split_rendered_manifests(output, release_name)
        _LOGGER.debug("Rendered %d manifests from %s", len(manifests), source)
        return manifests
