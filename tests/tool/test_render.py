"""Tests for the hub-render `render` command."""

import pathlib

import pytest
import yaml

from hub_render.exceptions import CommandException

from . import run_command


def _selection(spec_file: pathlib.Path) -> list[str]:
    return [
        str(spec_file),
        "--version",
        "1.0.0",
        "--name",
        "demo",
        "--namespace",
        "app",
        "--layer",
        "size=small",
    ]


async def test_render(spec_file: pathlib.Path) -> None:
    """Test rendering resources filtered by the required labels."""
    result = await run_command(["render"] + _selection(spec_file))
    assert result.startswith("---\n")
    docs = list(yaml.safe_load_all(result))
    assert [(doc["kind"], doc["metadata"]["name"]) for doc in docs] == [
        ("ConfigMap", "settings")
    ]
    assert docs[0]["data"] == {"key": "value"}


async def test_render_no_filter_labels(spec_file: pathlib.Path) -> None:
    """Test rendering every resource when label filtering is disabled."""
    result = await run_command(
        ["render", "--no-filter-labels"] + _selection(spec_file)
    )
    docs = list(yaml.safe_load_all(result))
    assert [doc["kind"] for doc in docs] == ["ConfigMap", "Secret"]


async def test_render_output_file(
    spec_file: pathlib.Path, tmp_path: pathlib.Path
) -> None:
    """Test writing the rendered resources to a file."""
    output_file = tmp_path / "out.yaml"
    result = await run_command(
        ["render", "--output-file", str(output_file)] + _selection(spec_file)
    )
    assert result == ""
    docs = list(yaml.safe_load_all(output_file.read_text()))
    assert len(docs) == 1


async def test_render_missing_layer(spec_file: pathlib.Path) -> None:
    """Test a failure when the required layer is not selected."""
    with pytest.raises(CommandException, match="hub-render error"):
        await run_command(
            [
                "render",
                str(spec_file),
                "--version",
                "1.0.0",
                "--name",
                "demo",
                "-n",
                "app",
            ]
        )


async def test_render_unknown_version(spec_file: pathlib.Path) -> None:
    """Test a failure when the version is not in the spec."""
    with pytest.raises(CommandException, match="Version '9.9.9' not found"):
        await run_command(
            [
                "render",
                str(spec_file),
                "--version",
                "9.9.9",
                "--name",
                "demo",
                "-n",
                "app",
            ]
        )
