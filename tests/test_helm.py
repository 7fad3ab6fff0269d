"""Tests for helm library."""

from pathlib import Path
from typing import Any

import pytest

from hub_render import command, helm
from hub_render.config import HelmConfig
from hub_render.exceptions import HelmException
from hub_render.helm import HelmChartRenderer, split_rendered_manifests
from hub_render.manifest import GithubChart, HelmArchive

TEMPLATE_OUTPUT = """\
---
# Source: podinfo/templates/service.yaml
apiVersion: v1
kind: Service
metadata:
  name: podinfo
---
# Source: podinfo/templates/deployment.yaml
apiVersion: apps/v1
kind: Deployment
metadata:
  name: podinfo
"""


def test_split_rendered_manifests() -> None:
    """Test splitting helm template output by document."""
    manifests = split_rendered_manifests(TEMPLATE_OUTPUT, "podinfo")
    assert [manifest.name for manifest in manifests] == [
        "podinfo/templates/service.yaml",
        "podinfo/templates/deployment.yaml",
    ]
    assert manifests[0].content.startswith("# Source: podinfo/templates/service.yaml")
    assert "kind: Deployment" in manifests[1].content


def test_split_without_source_comments() -> None:
    """Test documents without a source comment are named by position."""
    manifests = split_rendered_manifests("kind: A\n---\n\n---\nkind: B\n", "demo")
    assert [manifest.name for manifest in manifests] == ["demo-0", "demo-2"]


@pytest.fixture(name="commands")
def commands_fixture(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Capture helm invocations instead of running them."""
    calls: list[dict[str, Any]] = []

    async def fake_run(cmd: command.Command) -> str:
        values_path = Path(cmd.cmd[cmd.cmd.index("--values") + 1])
        calls.append(
            {"args": cmd.cmd, "values": values_path.read_text(), "exc": cmd.exc}
        )
        return TEMPLATE_OUTPUT

    monkeypatch.setattr(command, "run", fake_run)
    return calls


async def test_render_helm_archive(commands: list[dict[str, Any]]) -> None:
    """Test the helm template command for a chart archive."""
    renderer = HelmChartRenderer(HelmConfig(helm_binary="/opt/helm"))
    manifests = await renderer.render(
        HelmArchive(uri="https://example.com/podinfo-6.0.0.tgz"),
        "replicaCount: 2\n",
        "podinfo",
        "apps",
        "1.29.0",
    )
    assert len(manifests) == 2
    assert len(commands) == 1
    args = commands[0]["args"]
    values_file = args[args.index("--values") + 1]
    assert args == [
        "/opt/helm",
        "template",
        "podinfo",
        "https://example.com/podinfo-6.0.0.tgz",
        "--namespace",
        "apps",
        "--values",
        values_file,
        "--skip-tests",
        "--include-crds",
        "--kube-version",
        "1.29.0",
    ]
    assert commands[0]["values"] == "replicaCount: 2\n"
    assert commands[0]["exc"] is HelmException
    assert not Path(values_file).exists()


async def test_render_skip_crds(commands: list[dict[str, Any]]) -> None:
    """Test flags from the helm configuration."""
    renderer = HelmChartRenderer(HelmConfig(skip_crds=True, skip_tests=False))
    await renderer.render(HelmArchive(uri="chart.tgz"), "", "demo", "app")
    args = commands[0]["args"]
    assert "--skip-crds" in args
    assert "--include-crds" not in args
    assert "--skip-tests" not in args
    assert "--kube-version" not in args


async def test_render_github_chart(
    commands: list[dict[str, Any]],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Test a github chart is rendered from its local checkout."""
    chart_dir = tmp_path / "charts" / "podinfo"

    async def fake_fetch(chart: GithubChart, cache: Any = None) -> Path:
        assert chart.ref == "6.0.0"
        return chart_dir

    monkeypatch.setattr(helm, "fetch_github_chart", fake_fetch)
    renderer = HelmChartRenderer()
    await renderer.render(
        GithubChart(org="stefanprodan", repo="podinfo", ref="6.0.0"),
        "",
        "podinfo",
        "apps",
    )
    assert commands[0]["args"][:4] == ["helm", "template", "podinfo", str(chart_dir)]
