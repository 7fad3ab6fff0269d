"""Tests for the hub-render `values` command."""

import pathlib

import pytest
import yaml

from hub_render.exceptions import CommandException

from . import run_command


async def test_values(spec_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
    """Test printing the coalesced values document."""
    user_values = tmp_path / "values.yaml"
    user_values.write_text("replicaCount: 3\n")
    result = await run_command(
        [
            "values",
            str(spec_file),
            "--version",
            "1.0.0",
            "--name",
            "demo",
            "--namespace",
            "app",
            "--layer",
            "size=large",
            "--param",
            "image.tag=v2",
            "--values",
            str(user_values),
        ]
    )
    assert yaml.safe_load(result) == {
        "replicaCount": 3,
        "namespace": "app",
        "resources": {"cpu": "1"},
        "image": {"tag": "v2"},
    }


async def test_values_unknown_param(spec_file: pathlib.Path) -> None:
    """Test a failure for a parameter the spec does not declare."""
    with pytest.raises(CommandException, match="Parameter other is not specified"):
        await run_command(
            [
                "values",
                str(spec_file),
                "--version",
                "1.0.0",
                "--name",
                "demo",
                "-n",
                "app",
                "--layer",
                "size=small",
                "--param",
                "other=value",
            ]
        )
