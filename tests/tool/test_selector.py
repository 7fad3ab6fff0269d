"""Tests for the flags that select what to render."""

import argparse
import pathlib

import pytest

from hub_render.exceptions import InputException
from hub_render.inputs import LayerInput
from hub_render.manifest import ResourceRef
from hub_render.tool.selector import add_selection_flags, build_inputs, render_config


@pytest.fixture(name="parser")
def parser_fixture() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    add_selection_flags(parser)
    return parser


def test_parse_flags(parser: argparse.ArgumentParser) -> None:
    """Test layer and parameter flags are collected in order."""
    args = parser.parse_args(
        [
            "spec.yaml",
            "--version=1.0.0",
            "--name=demo",
            "-n",
            "app",
            "--layer",
            "mesh=istio",
            "--layer",
            "size=small",
            "--param",
            "a.b=c=d",
            "--param",
            "empty=",
        ]
    )
    assert args.spec_file == pathlib.Path("spec.yaml")
    assert args.layers == [LayerInput("mesh", "istio"), LayerInput("size", "small")]
    assert args.params == {"a.b": "c=d", "empty": ""}
    assert args.filter_labels


@pytest.mark.parametrize("flag", ["--layer=mesh", "--param==value"])
def test_invalid_pair(parser: argparse.ArgumentParser, flag: str) -> None:
    """Test flags that are not in key=value format."""
    with pytest.raises(SystemExit):
        parser.parse_args(["spec.yaml", "--version=1", "--name=a", "-n", "b", flag])


def test_render_config() -> None:
    """Test the renderer configuration built from flags."""
    config = render_config(helm_binary="/usr/local/bin/helm", filter_labels=False)
    assert config.helm.helm_binary == "/usr/local/bin/helm"
    assert not config.filter_by_label


async def test_build_inputs(spec_file: pathlib.Path) -> None:
    """Test building the inputs selects the only flavor."""
    inputs, spec = await build_inputs(
        spec_file,
        "1.0.0",
        "demo",
        "app",
        layers=[LayerInput("size", "small")],
        params={"image.tag": "v1"},
        mesh_name="istio",
        mesh_namespace="istio-system",
    )
    assert spec.version == "1.0.0"
    assert inputs.flavor is not None
    assert inputs.flavor.name == "default"
    assert inputs.spec_defined_values == spec.values_yaml
    assert inputs.user_defined_values == ""
    assert inputs.mesh_ref == ResourceRef(name="istio", namespace="istio-system")
    assert inputs.params == {"image.tag": "v1"}


async def test_build_inputs_unknown_flavor(spec_file: pathlib.Path) -> None:
    """Test selecting a flavor the version does not declare."""
    with pytest.raises(InputException, match="Flavor 'other' not found"):
        await build_inputs(spec_file, "1.0.0", "demo", "app", flavor="other")
